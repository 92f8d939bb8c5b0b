from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from database import get_db
from models.bill_reminder import BillStatus
from models.users import User
from schemas.bill_reminders import BillReminder, BillReminderCreate, BillReminderUpdate, BillPayment
from schemas.transactions import TransactionDetail
from crud import bill_reminders as bills_crud
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/bill-reminders",
    tags=["Bill Reminders"],
)


def _get_bill_or_404(db: Session, bill_id: int, tenant_id: str):
    bill = bills_crud.get_bill(db, bill_id, tenant_id)
    if not bill:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Bill reminder with id {bill_id} not found")
    return bill


@router.get("/", response_model=List[BillReminder])
def get_bills(
    status_filter: Optional[BillStatus] = Query(None, alias="status"),
    due_before: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    bills = bills_crud.get_bills(db, tenant_id, status=status_filter, due_before=due_before)
    return [bills_crud.with_due_info(bill) for bill in bills]


@router.get("/upcoming")
def get_upcoming_bills(
    days: int = Query(7, ge=0, le=365),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    result = bills_crud.get_upcoming_bills(db, tenant_id, days=days)
    amount = sum(bill.amount for bill in result["upcoming"])
    return {
        **result,
        "upcoming_count": len(result["upcoming"]),
        "overdue_count": len(result["overdue"]),
        "upcoming_total": round(amount, 2),
    }


@router.post("/", response_model=BillReminder, status_code=status.HTTP_201_CREATED)
def create_bill(
    bill: BillReminderCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    db_bill = bills_crud.create_bill(db, bill, tenant_id, get_user_identifier(current_user))
    return bills_crud.with_due_info(db_bill)


@router.get("/{bill_id}", response_model=BillReminder)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return bills_crud.with_due_info(_get_bill_or_404(db, bill_id, tenant_id))


@router.patch("/{bill_id}", response_model=BillReminder)
def update_bill(
    bill_id: int,
    bill_update: BillReminderUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    bill = _get_bill_or_404(db, bill_id, tenant_id)
    bill = bills_crud.update_bill(db, bill, bill_update, get_user_identifier(current_user))
    return bills_crud.with_due_info(bill)


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    bill = _get_bill_or_404(db, bill_id, tenant_id)
    bills_crud.delete_bill(db, bill, get_user_identifier(current_user))


@router.post("/{bill_id}/pay")
def pay_bill(
    bill_id: int,
    payment: Optional[BillPayment] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    bill = _get_bill_or_404(db, bill_id, tenant_id)
    try:
        bill, transaction = bills_crud.pay_bill(db, bill, payment or BillPayment(), current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {
        "bill": bills_crud.with_due_info(bill),
        "transaction": TransactionDetail.model_validate(transaction) if transaction else None,
    }
