import io
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Literal

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.encoders import jsonable_encoder
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from database import get_db
from models.transaction import TransactionType, TransactionStatus
from models.users import User
from schemas.transactions import (
    Transaction,
    TransactionCreate,
    TransactionDetail,
    TransactionReverse,
    TransactionUpdate,
    ImportResult,
)
from crud import transactions as transactions_crud
from utils.auth_utils import get_current_user
from utils.pagination import pagination_info
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
)
logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    ("id", "ID", 8),
    ("date", "Date", 12),
    ("description", "Description", 40),
    ("amount", "Amount", 14),
    ("type", "Type", 12),
    ("status", "Status", 12),
    ("from_account", "From Account", 20),
    ("to_account", "To Account", 20),
    ("category", "Category", 20),
    ("tags", "Tags", 20),
    ("notes", "Notes", 30),
]


def _get_transaction_or_404(db: Session, transaction_id: int, tenant_id: str):
    transaction = transactions_crud.get_transaction(db, transaction_id, tenant_id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transaction with id {transaction_id} not found")
    return transaction


@router.get("/")
def get_transactions(
    type: Optional[TransactionType] = None,
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    sort_by: Literal["date", "amount", "description"] = "date",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be on or before end_date")

    filters = {
        "type": type,
        "status": status_filter,
        "account_id": account_id,
        "category_id": category_id,
        "start_date": start_date,
        "end_date": end_date,
        "search": search,
        "tag": tag,
        "min_amount": min_amount,
        "max_amount": max_amount,
    }
    transactions, total, summary = transactions_crud.get_transactions(
        db, tenant_id, filters,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit
    )
    return {
        "data": [Transaction.model_validate(t) for t in transactions],
        "pagination": pagination_info(page, limit, total),
        "summary": summary,
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    """
    Create a transaction and post its entries.

    With `installments` the amount is split over several dated transactions and
    the response lists all of them. Repeating an `external_id` returns what was
    created the first time with status 200.
    """
    try:
        created, is_new = transactions_crud.create_transaction(db, transaction, tenant_id, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if len(created) > 1:
        body = {
            "installment_group": created[0].installment_group,
            "transactions": [TransactionDetail.model_validate(t) for t in created],
        }
    else:
        body = TransactionDetail.model_validate(created[0])
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if is_new else status.HTTP_200_OK,
        content=jsonable_encoder(body)
    )


@router.get("/export")
def export_transactions(
    format: Literal["xlsx", "csv"] = "xlsx",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    rows = transactions_crud.get_export_rows(db, tenant_id, start_date, end_date)
    filename = f"transactions_{date.today().isoformat()}.{format}"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}

    if format == "csv":
        df = pd.DataFrame(rows, columns=[key for key, _, _ in EXPORT_HEADERS])
        df.columns = [title for _, title, _ in EXPORT_HEADERS]
        output = io.StringIO()
        df.to_csv(output, index=False)
        return StreamingResponse(io.BytesIO(output.getvalue().encode("utf-8")), media_type="text/csv", headers=headers)

    wb = Workbook()
    ws = wb.active
    ws.title = "Transactions"

    header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    ws.append([title for _, title, _ in EXPORT_HEADERS])
    for col_idx, (_, _, width) in enumerate(EXPORT_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for row in rows:
        ws.append([row[key] for key, _, _ in EXPORT_HEADERS])
    amount_col = get_column_letter([key for key, _, _ in EXPORT_HEADERS].index("amount") + 1)
    for cell in ws[amount_col][1:]:
        cell.number_format = '#,##0.00'

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers
    )


@router.post("/import", response_model=ImportResult)
def import_transactions(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    """
    Upload an .xlsx or .csv file with columns date, description, amount, type,
    account and optionally category, to_account, external_id.
    """
    filename = (file.filename or "").lower()
    contents = file.file.read()
    try:
        if filename.endswith(".csv"):
            df = pd.read_csv(io.BytesIO(contents))
        elif filename.endswith(".xlsx") or filename.endswith(".xls"):
            df = pd.read_excel(io.BytesIO(contents))
        else:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only .xlsx and .csv files are supported")
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Could not read file: {e}")

    try:
        return transactions_crud.import_transactions(db, df, tenant_id, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{transaction_id}", response_model=TransactionDetail)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _get_transaction_or_404(db, transaction_id, tenant_id)


@router.patch("/{transaction_id}", response_model=TransactionDetail)
def update_transaction(
    transaction_id: int,
    transaction_update: TransactionUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    transaction = _get_transaction_or_404(db, transaction_id, tenant_id)
    try:
        return transactions_crud.update_transaction(db, transaction, transaction_update, current_user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    transaction = _get_transaction_or_404(db, transaction_id, tenant_id)
    try:
        transactions_crud.delete_transaction(db, transaction, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{transaction_id}/reverse", response_model=TransactionDetail, status_code=status.HTTP_201_CREATED)
def reverse_transaction(
    transaction_id: int,
    reverse: Optional[TransactionReverse] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    transaction = _get_transaction_or_404(db, transaction_id, tenant_id)
    try:
        return transactions_crud.reverse_transaction(db, transaction, reverse.reason if reverse else None, current_user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
