import logging
import re
import uuid
from collections import defaultdict
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from dateutil import parser as date_parser
from sqlalchemy import or_, asc, desc
from sqlalchemy.orm import Session

from models.account import Account
from models.category import Category
from models.transaction import Transaction, TransactionType, TransactionStatus
from schemas.transactions import TransactionCreate, TransactionUpdate
from crud import ledger
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.dates import today_local, add_interval, now_local
from utils.formatting import to_money, money_float, percentage, split_amount

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "date": Transaction.date,
    "amount": Transaction.amount,
    "description": Transaction.description,
}

ALLOWED_STATUS_CHANGES = {
    TransactionStatus.PENDING: {TransactionStatus.COMPLETED, TransactionStatus.CANCELLED},
    TransactionStatus.COMPLETED: {TransactionStatus.CANCELLED},
    TransactionStatus.CANCELLED: {TransactionStatus.COMPLETED},
}

CATEGORY_TYPE_FOR = {
    TransactionType.INCOME: "INCOME",
    TransactionType.EXPENSE: "EXPENSE",
}


def get_transaction(db: Session, transaction_id: int, tenant_id: str):
    return db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.tenant_id == tenant_id
    ).first()


def get_transaction_by_external_id(db: Session, external_id: str, tenant_id: str):
    # deleted transactions keep their external_id
    return db.query(Transaction).execution_options(include_deleted=True).filter(
        Transaction.tenant_id == tenant_id,
        Transaction.external_id == external_id
    ).first()


def get_installment_group(db: Session, installment_group: str, tenant_id: str):
    return db.query(Transaction).filter(
        Transaction.tenant_id == tenant_id,
        Transaction.installment_group == installment_group
    ).order_by(Transaction.installment_number).all()


def _get_user_account(db: Session, account_id: int, tenant_id: str, role: str) -> Account:
    account = db.query(Account).filter(Account.id == account_id, Account.tenant_id == tenant_id).first()
    if not account or account.is_system:
        raise LookupError(f"{role} account {account_id} not found")
    if not account.is_active:
        raise ValueError(f"{role} account '{account.name}' is inactive")
    return account


def _check_category(db: Session, category_id: int, transaction_type: TransactionType, tenant_id: str) -> Category:
    category = db.query(Category).filter(Category.id == category_id, Category.tenant_id == tenant_id).first()
    if not category:
        raise LookupError(f"Category {category_id} not found")
    if not category.is_active:
        raise ValueError(f"Category '{category.name}' is inactive")
    expected = CATEGORY_TYPE_FOR.get(transaction_type)
    if expected and category.type != expected:
        raise ValueError(f"A {transaction_type.value} transaction needs an {expected} category")
    return category


def validate_transaction_data(db: Session, transaction_type: TransactionType, from_account_id: Optional[int],
                              to_account_id: Optional[int], category_id: Optional[int], tenant_id: str) -> None:
    """
    Check the accounts and category a transaction refers to.

    Raises ValueError for rule violations and LookupError for references that
    do not exist in the tenant.
    """
    if transaction_type == TransactionType.INCOME and not to_account_id:
        raise ValueError("Income transactions require a destination account (to_account_id)")
    if transaction_type == TransactionType.EXPENSE and not from_account_id:
        raise ValueError("Expense transactions require a source account (from_account_id)")
    if transaction_type == TransactionType.TRANSFER:
        if not from_account_id or not to_account_id:
            raise ValueError("Transfers require both from_account_id and to_account_id")
        if from_account_id == to_account_id:
            raise ValueError("Source and destination accounts must be different")

    if transaction_type in (TransactionType.EXPENSE, TransactionType.TRANSFER):
        _get_user_account(db, from_account_id, tenant_id, "Source")
    if transaction_type in (TransactionType.INCOME, TransactionType.TRANSFER):
        _get_user_account(db, to_account_id, tenant_id, "Destination")
    if category_id is not None:
        _check_category(db, category_id, transaction_type, tenant_id)


def _new_transaction(db: Session, data: dict, tenant_id: str, user) -> Transaction:
    """Insert one transaction and post its entries. Does not commit."""
    # only the account that matches the type is kept
    transaction_type = data["type"]
    if transaction_type == TransactionType.INCOME:
        data["from_account_id"] = None
    elif transaction_type == TransactionType.EXPENSE:
        data["to_account_id"] = None

    db_transaction = Transaction(
        **data,
        tenant_id=tenant_id,
        user_id=user.id if user else None,
        created_by=user.email if user else "system"
    )
    db.add(db_transaction)
    db.flush()
    ledger.post_transaction(db, db_transaction, db_transaction.created_by)
    return db_transaction


def create_transaction(db: Session, transaction: TransactionCreate, tenant_id: str, user=None):
    """
    Create a transaction (or a run of installments) and post it to the ledger.

    Returns (transactions, created). When `external_id` was already used by the
    tenant, even by a since deleted transaction, nothing is written and the
    existing transactions come back with created=False.
    """
    if transaction.external_id:
        existing = get_transaction_by_external_id(db, transaction.external_id, tenant_id)
        if existing:
            logger.info(f"Transaction with external_id '{transaction.external_id}' already exists for tenant '{tenant_id}'")
            if existing.installment_group and existing.deleted_at is None:
                return get_installment_group(db, existing.installment_group, tenant_id), False
            return [existing], False

    validate_transaction_data(
        db, transaction.type, transaction.from_account_id, transaction.to_account_id,
        transaction.category_id, tenant_id
    )

    data = transaction.model_dump(exclude={"installments"})
    data["date"] = data["date"] or today_local()
    data["tags"] = list(dict.fromkeys(data.get("tags") or []))

    created = []
    try:
        if transaction.installments:
            created = _create_installments(db, data, transaction.installments.count,
                                           transaction.installments.frequency, tenant_id, user)
        else:
            created = [_new_transaction(db, data, tenant_id, user)]
        db.commit()
    except Exception:
        db.rollback()
        raise

    for db_transaction in created:
        db.refresh(db_transaction)
        record_audit(db, tenant_id, 'transactions', db_transaction.id, 'CREATE',
                     db_transaction.created_by, new_values=sqlalchemy_to_dict(db_transaction))
    logger.info(
        f"{len(created)} {transaction.type.value} transaction(s) created for tenant '{tenant_id}' "
        f"totalling {transaction.amount}"
    )
    return created, True


def _create_installments(db: Session, data: dict, count: int, frequency: str, tenant_id: str, user) -> List[Transaction]:
    shares = split_amount(data["amount"], count)
    if any(share <= 0 for share in shares):
        raise ValueError("Amount is too small to split into that many installments")

    group = str(uuid.uuid4())
    first_date = data["date"]
    base_description = data["description"]
    tags = data["tags"] if "installment" in data["tags"] else data["tags"] + ["installment"]

    installments = []
    for index, share in enumerate(shares):
        installment_data = dict(data)
        installment_data.update(
            amount=share,
            date=add_interval(first_date, frequency, index),
            description=f"{base_description} ({index + 1}/{count})"[:255],
            tags=list(tags),
            installment_number=index + 1,
            installment_total=count,
            installment_group=group,
            # the idempotency key belongs to the first installment only
            external_id=data.get("external_id") if index == 0 else None,
        )
        installments.append(_new_transaction(db, installment_data, tenant_id, user))
    return installments


def _filtered_query(db: Session, tenant_id: str, filters: dict):
    query = db.query(Transaction).filter(Transaction.tenant_id == tenant_id)

    if filters.get("type"):
        query = query.filter(Transaction.type == filters["type"])
    if filters.get("status"):
        query = query.filter(Transaction.status == filters["status"])
    if filters.get("account_id"):
        query = query.filter(or_(
            Transaction.from_account_id == filters["account_id"],
            Transaction.to_account_id == filters["account_id"]
        ))
    if filters.get("category_id"):
        query = query.filter(Transaction.category_id == filters["category_id"])
    if filters.get("start_date"):
        query = query.filter(Transaction.date >= filters["start_date"])
    if filters.get("end_date"):
        query = query.filter(Transaction.date <= filters["end_date"])
    if filters.get("search"):
        query = query.filter(Transaction.description.ilike(f"%{filters['search']}%"))
    if filters.get("min_amount") is not None:
        query = query.filter(Transaction.amount >= filters["min_amount"])
    if filters.get("max_amount") is not None:
        query = query.filter(Transaction.amount <= filters["max_amount"])
    return query


def get_transactions(db: Session, tenant_id: str, filters: dict, sort_by: str = "date",
                     sort_order: str = "desc", skip: int = 0, limit: int = 50):
    """Return (page, total, summary) for the filtered transactions."""
    query = _filtered_query(db, tenant_id, filters)
    tag = filters.get("tag")

    sort_column = SORT_FIELDS.get(sort_by, Transaction.date)
    direction = asc if sort_order == "asc" else desc
    ordered = query.order_by(direction(sort_column), direction(Transaction.id))

    if tag:
        # tags live in a JSON column; filter in Python to stay portable
        matching = [t for t in ordered.all() if tag in (t.tags or [])]
        total = len(matching)
        page = matching[skip:skip + limit]
        summary = _summarize(db, tenant_id, matching)
    else:
        total = query.count()
        page = ordered.offset(skip).limit(limit).all()
        summary = _summarize(db, tenant_id, query.all())
    return page, total, summary


def _summarize(db: Session, tenant_id: str, transactions: List[Transaction]) -> dict:
    totals = {t_type: Decimal("0") for t_type in TransactionType}
    expense_by_category = defaultdict(Decimal)
    for transaction in transactions:
        if transaction.status != TransactionStatus.COMPLETED or transaction.reversal_of_id is not None:
            continue
        totals[transaction.type] += transaction.amount
        if transaction.type == TransactionType.EXPENSE:
            expense_by_category[transaction.category_id] += transaction.amount

    names = {}
    category_ids = [category_id for category_id in expense_by_category if category_id is not None]
    if category_ids:
        names = dict(db.query(Category.id, Category.name).filter(
            Category.tenant_id == tenant_id,
            Category.id.in_(category_ids)
        ).all())

    total_expense = totals[TransactionType.EXPENSE]
    return {
        "total_income": money_float(totals[TransactionType.INCOME]),
        "total_expense": money_float(total_expense),
        "total_transfer": money_float(totals[TransactionType.TRANSFER]),
        "net": money_float(totals[TransactionType.INCOME] - total_expense),
        "count": len(transactions),
        "expenses_by_category": sorted(
            [
                {
                    "category_id": category_id,
                    "category_name": names.get(category_id, "Other"),
                    "total": money_float(amount),
                    "percentage": percentage(amount, total_expense),
                }
                for category_id, amount in expense_by_category.items()
            ],
            key=lambda item: item["total"],
            reverse=True
        ),
    }


def update_transaction(db: Session, db_transaction: Transaction, transaction: TransactionUpdate, user=None):
    if db_transaction.status == TransactionStatus.REVERSED or db_transaction.reversal_of_id is not None:
        raise ValueError("Reversed transactions and reversals cannot be modified")

    update_data = transaction.model_dump(exclude_unset=True)
    new_status = update_data.get("status")
    if new_status and new_status != db_transaction.status:
        if new_status not in ALLOWED_STATUS_CHANGES.get(db_transaction.status, set()):
            raise ValueError(
                f"Cannot change status from {db_transaction.status.value} to {new_status.value}"
                + ("; use the reverse endpoint instead" if new_status == TransactionStatus.REVERSED else "")
            )
    if update_data.get("category_id") is not None:
        _check_category(db, update_data["category_id"], db_transaction.type, db_transaction.tenant_id)
    if "tags" in update_data and update_data["tags"] is not None:
        update_data["tags"] = list(dict.fromkeys(update_data["tags"]))

    repost = (
        ("amount" in update_data and to_money(update_data["amount"]) != to_money(db_transaction.amount))
        or ("category_id" in update_data and update_data["category_id"] != db_transaction.category_id)
    )

    user_id = user.email if user else None
    old_values = sqlalchemy_to_dict(db_transaction)
    try:
        for key, value in update_data.items():
            setattr(db_transaction, key, value)
        db_transaction.updated_by = user_id
        db.flush()
        if repost:
            ledger.repost_transaction(db, db_transaction, user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_transaction)

    record_audit(db, db_transaction.tenant_id, 'transactions', db_transaction.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_transaction))
    return db_transaction


def delete_transaction(db: Session, db_transaction: Transaction, user=None) -> None:
    if db_transaction.status == TransactionStatus.REVERSED or db_transaction.reversal_of_id is not None:
        raise ValueError("Reversed transactions and reversals cannot be deleted")

    user_id = user.email if user else None
    old_values = sqlalchemy_to_dict(db_transaction)
    ledger.void_entries(db, db_transaction, user_id)
    db_transaction.deleted_at = now_local()
    db_transaction.deleted_by = user_id
    db.commit()
    logger.info(f"Transaction {db_transaction.id} deleted for tenant '{db_transaction.tenant_id}'")

    record_audit(db, db_transaction.tenant_id, 'transactions', db_transaction.id, 'DELETE', user_id,
                 old_values=old_values)


def reverse_transaction(db: Session, db_transaction: Transaction, reason: str = None, user=None) -> Transaction:
    user_id = user.email if user else None
    try:
        reversal = ledger.reverse_transaction(db, db_transaction, reason, user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(reversal)

    record_audit(db, db_transaction.tenant_id, 'transactions', db_transaction.id, 'REVERSE', user_id,
                 old_values={"status": TransactionStatus.COMPLETED.name},
                 new_values={"status": TransactionStatus.REVERSED.name, "reversal_id": reversal.id, "reason": reason})
    return reversal


def get_export_rows(db: Session, tenant_id: str, start_date: date = None, end_date: date = None) -> List[dict]:
    query = _filtered_query(db, tenant_id, {"start_date": start_date, "end_date": end_date})
    transactions = query.order_by(Transaction.date, Transaction.id).all()

    account_names = dict(db.query(Account.id, Account.name).filter(Account.tenant_id == tenant_id).all())
    category_names = dict(db.query(Category.id, Category.name).filter(Category.tenant_id == tenant_id).all())
    return [
        {
            "id": t.id,
            "date": t.date.isoformat(),
            "description": t.description,
            "amount": money_float(t.amount),
            "type": t.type.value,
            "status": t.status.value,
            "from_account": account_names.get(t.from_account_id, ""),
            "to_account": account_names.get(t.to_account_id, ""),
            "category": category_names.get(t.category_id, ""),
            "tags": ", ".join(t.tags or []),
            "notes": t.notes or "",
        }
        for t in transactions
    ]


IMPORT_REQUIRED_COLUMNS = ["date", "description", "amount", "type", "account"]
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def import_transactions(db: Session, df, tenant_id: str, user=None) -> dict:
    """
    Create COMPLETED transactions from a spreadsheet already loaded into a DataFrame.

    Expected columns: date, description, amount, type, account and optionally
    category, to_account (transfers) and external_id. Bad rows are skipped and
    reported with their spreadsheet row number.
    """
    df.columns = [str(column).strip().lower() for column in df.columns]
    missing = [column for column in IMPORT_REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    accounts = {
        account.name.lower(): account
        for account in db.query(Account).filter(Account.tenant_id == tenant_id, Account.is_system == False).all()
    }
    categories = {
        (category.name.lower(), category.type): category
        for category in db.query(Category).filter(Category.tenant_id == tenant_id).all()
    }

    imported, skipped, errors = 0, 0, []
    for index, row in df.iterrows():
        row_number = index + 2  # header is row 1
        try:
            data = _parse_import_row(row, accounts, categories)
        except (ValueError, LookupError) as e:
            skipped += 1
            errors.append(f"Row {row_number}: {e}")
            continue

        if data.get("external_id") and get_transaction_by_external_id(db, data["external_id"], tenant_id):
            skipped += 1
            continue

        try:
            validate_transaction_data(db, data["type"], data.get("from_account_id"), data.get("to_account_id"),
                                      data.get("category_id"), tenant_id)
            _new_transaction(db, data, tenant_id, user)
            db.flush()
            imported += 1
        except (ValueError, LookupError) as e:
            skipped += 1
            errors.append(f"Row {row_number}: {e}")

    db.commit()
    logger.info(f"Imported {imported} transactions for tenant '{tenant_id}' ({skipped} skipped)")
    return {"imported": imported, "skipped": skipped, "errors": errors}


def _cell(row, column):
    value = row.get(column)
    if value is None:
        return None
    if isinstance(value, float) and value != value:  # NaN
        return None
    text = str(value).strip()
    return text or None


def _parse_date(text: str) -> date:
    """ISO dates first, then day-first formats such as 15/03/2024."""
    try:
        if ISO_DATE.match(text):
            return date.fromisoformat(text[:10])
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        raise ValueError(f"invalid date '{text}'")


def _parse_import_row(row, accounts: dict, categories: dict) -> dict:
    description = _cell(row, "description")
    if not description:
        raise ValueError("description is required")

    raw_date = row.get("date")
    if hasattr(raw_date, "date") and callable(raw_date.date):
        transaction_date = raw_date.date()
    elif _cell(row, "date"):
        transaction_date = _parse_date(_cell(row, "date"))
    else:
        raise ValueError("date is required")

    try:
        amount = to_money(Decimal(str(_cell(row, "amount")).replace(",", ".")))
    except (InvalidOperation, TypeError):
        raise ValueError(f"invalid amount '{row.get('amount')}'")
    if amount <= 0:
        raise ValueError("amount must be greater than zero")

    type_name = (_cell(row, "type") or "").upper()
    try:
        transaction_type = TransactionType[type_name]
    except KeyError:
        raise ValueError(f"invalid type '{type_name}'")

    account = accounts.get((_cell(row, "account") or "").lower())
    if not account:
        raise LookupError(f"account '{_cell(row, 'account')}' not found")

    data = {
        "description": description[:255],
        "amount": amount,
        "type": transaction_type,
        "status": TransactionStatus.COMPLETED,
        "date": transaction_date,
        "from_account_id": None,
        "to_account_id": None,
        "category_id": None,
        "tags": ["import"],
        "external_id": _cell(row, "external_id"),
    }
    if transaction_type == TransactionType.INCOME:
        data["to_account_id"] = account.id
    else:
        data["from_account_id"] = account.id
    if transaction_type == TransactionType.TRANSFER:
        destination = accounts.get((_cell(row, "to_account") or "").lower())
        if not destination:
            raise LookupError(f"to_account '{_cell(row, 'to_account')}' not found")
        data["to_account_id"] = destination.id

    category_name = _cell(row, "category")
    if category_name and transaction_type in CATEGORY_TYPE_FOR:
        category = categories.get((category_name.lower(), CATEGORY_TYPE_FOR[transaction_type]))
        if not category:
            raise LookupError(f"category '{category_name}' not found")
        data["category_id"] = category.id
    return data
