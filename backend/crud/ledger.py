"""
Double-entry posting and balances.

Every transaction posts a balanced set of entries:

    INCOME    debit the destination account, credit the tenant's income ledger
    EXPENSE   debit the tenant's expense ledger, credit the source account
    TRANSFER  debit the destination account, credit the source account

Only entries of COMPLETED and REVERSED transactions count towards balances;
a reversal is itself a COMPLETED transaction with the entries swapped, so a
reversed pair nets to zero.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from models.account import Account
from models.entry import Entry
from models.transaction import Transaction, TransactionType, TransactionStatus
from utils.dates import now_local, today_local
from utils.formatting import to_money, money_float

logger = logging.getLogger(__name__)

POSTED_STATUSES = (TransactionStatus.COMPLETED, TransactionStatus.REVERSED)
BALANCE_TOLERANCE = Decimal("0.01")

SYSTEM_ACCOUNTS = {
    "INCOME": "System Income",
    "EXPENSE": "System Expenses",
}
# Ledger accounts whose balance grows with credits.
CREDIT_NORMAL_TYPES = ("INCOME",)


def ensure_system_accounts(db: Session, tenant_id: str) -> Dict[str, Account]:
    """Create the tenant's INCOME/EXPENSE ledger accounts if missing. Flushes, does not commit."""
    existing = {
        account.type: account
        for account in db.query(Account).filter(
            Account.tenant_id == tenant_id,
            Account.is_system == True
        ).all()
    }
    for account_type, name in SYSTEM_ACCOUNTS.items():
        if account_type not in existing:
            account = Account(
                tenant_id=tenant_id,
                name=name,
                type=account_type,
                opening_balance=0,
                is_system=True,
                is_active=True,
                created_by="system"
            )
            db.add(account)
            existing[account_type] = account
            logger.info(f"Created {account_type} ledger account for tenant '{tenant_id}'")
    db.flush()
    return existing


def build_entries(transaction_type: TransactionType, amount: Decimal, from_account_id: Optional[int],
                  to_account_id: Optional[int], system_accounts: Dict[str, Account]) -> List[dict]:
    amount = to_money(amount)
    if transaction_type == TransactionType.INCOME:
        debit_account, credit_account = to_account_id, system_accounts["INCOME"].id
    elif transaction_type == TransactionType.EXPENSE:
        debit_account, credit_account = system_accounts["EXPENSE"].id, from_account_id
    elif transaction_type == TransactionType.TRANSFER:
        debit_account, credit_account = to_account_id, from_account_id
    else:
        raise ValueError(f"Unsupported transaction type: {transaction_type}")

    if debit_account is None or credit_account is None:
        raise ValueError("Transaction is missing an account for its type")

    return [
        {"account_id": debit_account, "debit": amount, "credit": Decimal("0")},
        {"account_id": credit_account, "debit": Decimal("0"), "credit": amount},
    ]


def validate_entries(entries: List[dict]) -> None:
    if len(entries) < 2:
        raise ValueError("A transaction needs at least two entries")
    for entry in entries:
        debit, credit = entry["debit"], entry["credit"]
        if debit < 0 or credit < 0:
            raise ValueError("Entry amounts cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValueError("Each entry must be either a debit or a credit")
    total_debit = sum(entry["debit"] for entry in entries)
    total_credit = sum(entry["credit"] for entry in entries)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise ValueError(
            f"Entries are not balanced: debits {total_debit} != credits {total_credit}"
        )


def post_transaction(db: Session, transaction: Transaction, created_by: str = None) -> List[Entry]:
    """Attach balanced entries to a flushed transaction. Does not commit."""
    system_accounts = ensure_system_accounts(db, transaction.tenant_id)
    entries = build_entries(
        transaction.type,
        transaction.amount,
        transaction.from_account_id,
        transaction.to_account_id,
        system_accounts
    )
    validate_entries(entries)

    db_entries = []
    for entry in entries:
        db_entry = Entry(
            tenant_id=transaction.tenant_id,
            transaction_id=transaction.id,
            category_id=transaction.category_id,
            description=transaction.description,
            created_by=created_by,
            **entry
        )
        db.add(db_entry)
        db_entries.append(db_entry)
    db.flush()
    return db_entries


def void_entries(db: Session, transaction: Transaction, deleted_by: str = None) -> None:
    """Soft delete the live entries of a transaction."""
    now = now_local()
    for entry in _live_entries(db, transaction):
        entry.deleted_at = now
        entry.deleted_by = deleted_by
    db.flush()


def repost_transaction(db: Session, transaction: Transaction, updated_by: str = None) -> List[Entry]:
    void_entries(db, transaction, updated_by)
    return post_transaction(db, transaction, updated_by)


def reverse_transaction(db: Session, transaction: Transaction, reason: str = None, created_by: str = None) -> Transaction:
    """
    Post the mirror image of a completed transaction and mark it REVERSED.

    Raises ValueError when the transaction cannot be reversed. Does not commit.
    """
    if transaction.reversal_of_id is not None:
        raise ValueError("A reversal cannot be reversed")
    if transaction.status == TransactionStatus.REVERSED:
        raise ValueError("Transaction has already been reversed")
    if transaction.status != TransactionStatus.COMPLETED:
        raise ValueError("Only completed transactions can be reversed")

    original_entries = _live_entries(db, transaction)
    if not original_entries:
        raise ValueError("Transaction has no entries to reverse")

    notes = f"Reversal of transaction {transaction.id}"
    if reason:
        notes = f"{notes}: {reason}"

    reversal = Transaction(
        tenant_id=transaction.tenant_id,
        user_id=transaction.user_id,
        description=f"REVERSAL: {transaction.description}"[:255],
        amount=transaction.amount,
        type=transaction.type,
        status=TransactionStatus.COMPLETED,
        date=today_local(),
        from_account_id=transaction.from_account_id,
        to_account_id=transaction.to_account_id,
        category_id=transaction.category_id,
        reference=transaction.reference,
        tags=list(transaction.tags or []) + ["reversal"],
        notes=notes,
        reversal_of_id=transaction.id,
        created_by=created_by
    )
    db.add(reversal)
    db.flush()

    swapped = [
        {"account_id": entry.account_id, "debit": entry.credit, "credit": entry.debit}
        for entry in original_entries
    ]
    validate_entries(swapped)
    for entry, original in zip(swapped, original_entries):
        db.add(Entry(
            tenant_id=transaction.tenant_id,
            transaction_id=reversal.id,
            category_id=original.category_id,
            description=reversal.description,
            created_by=created_by,
            **entry
        ))

    transaction.status = TransactionStatus.REVERSED
    transaction.updated_by = created_by
    db.flush()
    logger.info(f"Transaction {transaction.id} reversed by {reversal.id} for tenant '{transaction.tenant_id}'")
    return reversal


def _live_entries(db: Session, transaction: Transaction) -> List[Entry]:
    return db.query(Entry).filter(
        Entry.transaction_id == transaction.id,
        Entry.deleted_at.is_(None)
    ).order_by(Entry.id).all()


def _posted_entries_query(db: Session, tenant_id: str, *columns):
    return db.query(*columns).join(
        Transaction, Entry.transaction_id == Transaction.id
    ).filter(
        Entry.tenant_id == tenant_id,
        Entry.deleted_at.is_(None),
        Transaction.deleted_at.is_(None),
        Transaction.status.in_(POSTED_STATUSES)
    )


def get_entry_totals(db: Session, tenant_id: str, account_ids: List[int] = None,
                     as_of_date: date = None, before_date: date = None) -> Dict[int, tuple]:
    """account_id -> (total_debit, total_credit) over posted entries."""
    query = _posted_entries_query(
        db, tenant_id,
        Entry.account_id,
        func.coalesce(func.sum(Entry.debit), 0),
        func.coalesce(func.sum(Entry.credit), 0)
    )
    if account_ids is not None:
        if not account_ids:
            return {}
        query = query.filter(Entry.account_id.in_(account_ids))
    if as_of_date:
        query = query.filter(Transaction.date <= as_of_date)
    if before_date:
        query = query.filter(Transaction.date < before_date)

    return {
        account_id: (to_money(debit), to_money(credit))
        for account_id, debit, credit in query.group_by(Entry.account_id).all()
    }


def balance_from_totals(account: Account, debit: Decimal, credit: Decimal) -> Decimal:
    if account.type in CREDIT_NORMAL_TYPES:
        return to_money(account.opening_balance) + credit - debit
    return to_money(account.opening_balance) + debit - credit


def get_account_balances(db: Session, tenant_id: str, accounts: List[Account], as_of_date: date = None) -> Dict[int, Decimal]:
    totals = get_entry_totals(db, tenant_id, [account.id for account in accounts], as_of_date=as_of_date)
    zero = (Decimal("0"), Decimal("0"))
    return {
        account.id: balance_from_totals(account, *totals.get(account.id, zero))
        for account in accounts
    }


def get_account_balance(db: Session, account: Account, as_of_date: date = None) -> Decimal:
    return get_account_balances(db, account.tenant_id, [account], as_of_date)[account.id]


def account_has_entries(db: Session, account_id: int, tenant_id: str) -> bool:
    # voided entries still reference the account
    return db.query(Entry.id).execution_options(include_deleted=True).filter(
        Entry.tenant_id == tenant_id,
        Entry.account_id == account_id
    ).first() is not None


def get_balance_history(db: Session, account: Account, days: int = 30, end_date: date = None) -> List[dict]:
    """One point per day for the last `days` days, oldest first."""
    end_date = end_date or today_local()
    start_date = end_date - timedelta(days=days - 1)

    opening_totals = get_entry_totals(db, account.tenant_id, [account.id], before_date=start_date)
    debit, credit = opening_totals.get(account.id, (Decimal("0"), Decimal("0")))
    running = balance_from_totals(account, debit, credit)

    daily_rows = _posted_entries_query(
        db, account.tenant_id,
        Transaction.date,
        func.coalesce(func.sum(Entry.debit), 0),
        func.coalesce(func.sum(Entry.credit), 0),
        func.count(distinct(Entry.transaction_id))
    ).filter(
        Entry.account_id == account.id,
        Transaction.date >= start_date,
        Transaction.date <= end_date
    ).group_by(Transaction.date).all()

    by_day = defaultdict(lambda: (Decimal("0"), 0))
    for day, day_debit, day_credit, count in daily_rows:
        day_debit, day_credit = to_money(day_debit), to_money(day_credit)
        if account.type in CREDIT_NORMAL_TYPES:
            change = day_credit - day_debit
        else:
            change = day_debit - day_credit
        by_day[day] = (change, count)

    history = []
    current = start_date
    while current <= end_date:
        change, count = by_day[current]
        running += change
        history.append({
            "date": current.isoformat(),
            "balance": money_float(running),
            "daily_change": money_float(change),
            "transactions": count,
        })
        current += timedelta(days=1)
    return history


def get_trial_balance(db: Session, tenant_id: str, as_of_date: date = None) -> dict:
    accounts = db.query(Account).filter(Account.tenant_id == tenant_id).order_by(Account.is_system, Account.name).all()
    totals = get_entry_totals(db, tenant_id, as_of_date=as_of_date)

    lines = []
    total_debit = Decimal("0")
    total_credit = Decimal("0")
    for account in accounts:
        debit, credit = totals.get(account.id, (Decimal("0"), Decimal("0")))
        if debit == 0 and credit == 0 and account.opening_balance == 0:
            continue
        total_debit += debit
        total_credit += credit
        lines.append({
            "account_id": account.id,
            "account_name": account.name,
            "account_type": account.type,
            "is_system": account.is_system,
            "debit": money_float(debit),
            "credit": money_float(credit),
            "balance": money_float(balance_from_totals(account, debit, credit)),
        })

    difference = total_debit - total_credit
    return {
        "as_of_date": (as_of_date or today_local()).isoformat(),
        "accounts": lines,
        "total_debit": money_float(total_debit),
        "total_credit": money_float(total_credit),
        "difference": money_float(difference),
        "balanced": abs(difference) < BALANCE_TOLERANCE,
    }
