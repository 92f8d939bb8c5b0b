from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.users import User
from schemas.accounts import Account, AccountCreate, AccountUpdate, BalancePoint
from schemas.transactions import Transaction
from crud import accounts as accounts_crud
from crud import ledger
from utils.auth_utils import get_current_user, get_user_identifier
from utils.pagination import pagination_info
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"],
)


def _get_account_or_404(db: Session, account_id: int, tenant_id: str):
    account = accounts_crud.get_account(db, account_id, tenant_id)
    if not account:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Account with id {account_id} not found"
        )
    return account


@router.get("/")
def get_accounts(
    type: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    include_system: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    accounts, total = accounts_crud.get_accounts(
        db, tenant_id,
        account_type=type,
        is_active=is_active,
        search=search,
        include_system=include_system,
        skip=(page - 1) * limit,
        limit=limit
    )
    return {
        "data": accounts,
        "pagination": pagination_info(page, limit, total),
        "summary": accounts_crud.get_accounts_summary(db, tenant_id),
    }


@router.post("/", response_model=Account, status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    if accounts_crud.get_account_by_name(db, account.name, tenant_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An account named '{account.name}' already exists"
        )
    try:
        db_account = accounts_crud.create_account(db, account, tenant_id, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return accounts_crud.serialize_account(db_account, ledger.get_account_balance(db, db_account))


@router.get("/{account_id}")
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    account = _get_account_or_404(db, account_id, tenant_id)
    recent = accounts_crud.get_recent_transactions(db, account.id, tenant_id)
    return {
        **accounts_crud.serialize_account(account, ledger.get_account_balance(db, account)).model_dump(),
        "recent_transactions": [Transaction.model_validate(t) for t in recent],
    }


@router.patch("/{account_id}", response_model=Account)
def update_account(
    account_id: int,
    account_update: AccountUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    account = _get_account_or_404(db, account_id, tenant_id)
    if account_update.name:
        existing = accounts_crud.get_account_by_name(db, account_update.name, tenant_id)
        if existing and existing.id != account.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"An account named '{account_update.name}' already exists"
            )
    try:
        account = accounts_crud.update_account(db, account, account_update, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return accounts_crud.serialize_account(account, ledger.get_account_balance(db, account))


@router.delete("/{account_id}")
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    account = _get_account_or_404(db, account_id, tenant_id)
    try:
        result = accounts_crud.delete_account(db, account, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if result == "deactivated":
        message = "Account has transactions and was deactivated"
    else:
        message = "Account deleted"
    return {"id": account_id, "result": result, "message": message}


@router.get("/{account_id}/balance-history", response_model=List[BalancePoint])
def get_balance_history(
    account_id: int,
    days: int = Query(30, ge=1, le=366),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    account = _get_account_or_404(db, account_id, tenant_id)
    return ledger.get_balance_history(db, account, days)
