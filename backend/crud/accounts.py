import logging
from collections import defaultdict
from decimal import Decimal
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from models.account import Account
from models.transaction import Transaction
from schemas.accounts import AccountCreate, AccountUpdate, Account as AccountSchema
from crud import ledger
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.formatting import money_float, percentage

logger = logging.getLogger(__name__)


def get_account(db: Session, account_id: int, tenant_id: str):
    return db.query(Account).filter(
        Account.id == account_id,
        Account.tenant_id == tenant_id
    ).first()


def get_account_by_name(db: Session, name: str, tenant_id: str):
    return db.query(Account).filter(
        Account.tenant_id == tenant_id,
        func.lower(Account.name) == name.strip().lower()
    ).first()


def serialize_account(account: Account, balance: Decimal) -> AccountSchema:
    return AccountSchema.model_validate(account).model_copy(update={"balance": money_float(balance)})


def get_accounts(db: Session, tenant_id: str, account_type: str = None, is_active: bool = None,
                 search: str = None, include_system: bool = False, skip: int = 0, limit: int = 100):
    query = db.query(Account).filter(Account.tenant_id == tenant_id)
    if not include_system:
        query = query.filter(Account.is_system == False)
    if account_type:
        query = query.filter(Account.type == account_type.upper())
    if is_active is not None:
        query = query.filter(Account.is_active == is_active)
    if search:
        query = query.filter(Account.name.ilike(f"%{search}%"))

    total = query.count()
    accounts = query.order_by(Account.name).offset(skip).limit(limit).all()
    balances = ledger.get_account_balances(db, tenant_id, accounts)
    return [serialize_account(account, balances[account.id]) for account in accounts], total


def get_accounts_summary(db: Session, tenant_id: str):
    """Totals over every user account of the tenant, regardless of the current page."""
    accounts = db.query(Account).filter(
        Account.tenant_id == tenant_id,
        Account.is_system == False
    ).all()
    balances = ledger.get_account_balances(db, tenant_id, accounts)

    total_balance = Decimal("0")
    by_type = defaultdict(lambda: {"count": 0, "balance": Decimal("0")})
    active = 0
    for account in accounts:
        if account.is_active:
            active += 1
            total_balance += balances[account.id]
            by_type[account.type]["count"] += 1
            by_type[account.type]["balance"] += balances[account.id]

    return {
        "total_balance": money_float(total_balance),
        "total_accounts": len(accounts),
        "active_accounts": active,
        "inactive_accounts": len(accounts) - active,
        "by_type": [
            {
                "type": account_type,
                "count": values["count"],
                "balance": money_float(values["balance"]),
                "percentage": percentage(values["balance"], total_balance),
            }
            for account_type, values in sorted(by_type.items())
        ],
    }


def get_recent_transactions(db: Session, account_id: int, tenant_id: str, limit: int = 10):
    return db.query(Transaction).filter(
        Transaction.tenant_id == tenant_id,
        or_(Transaction.from_account_id == account_id, Transaction.to_account_id == account_id)
    ).order_by(Transaction.date.desc(), Transaction.id.desc()).limit(limit).all()


def create_account(db: Session, account: AccountCreate, tenant_id: str, user_id: str = None):
    if account.opening_balance < 0 and account.type != "CREDIT_CARD":
        raise ValueError("Only credit card accounts can start with a negative balance")

    db_account = Account(**account.model_dump(), tenant_id=tenant_id, created_by=user_id)
    db.add(db_account)
    db.commit()
    db.refresh(db_account)
    logger.info(f"Account {db_account.id} ({db_account.type}) created for tenant '{tenant_id}'")

    record_audit(db, tenant_id, 'accounts', db_account.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_account))
    return db_account


def update_account(db: Session, db_account: Account, account_update: AccountUpdate, user_id: str = None):
    if db_account.is_system:
        raise ValueError("System ledger accounts cannot be modified")

    update_data = account_update.model_dump(exclude_unset=True)
    new_type = update_data.get("type")
    if new_type and new_type != db_account.type:
        if ledger.account_has_entries(db, db_account.id, db_account.tenant_id):
            raise ValueError("Account type cannot change once the account has transactions")
        if db_account.opening_balance < 0 and new_type != "CREDIT_CARD":
            raise ValueError("Only credit card accounts can have a negative opening balance")

    old_values = sqlalchemy_to_dict(db_account)
    for key, value in update_data.items():
        setattr(db_account, key, value.strip() if key == "name" else value)
    db_account.updated_by = user_id
    db.commit()
    db.refresh(db_account)

    record_audit(db, db_account.tenant_id, 'accounts', db_account.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_account))
    return db_account


def delete_account(db: Session, db_account: Account, user_id: str = None) -> str:
    """Deactivate an account with ledger history, delete it otherwise."""
    if db_account.is_system:
        raise ValueError("System ledger accounts cannot be deleted")

    old_values = sqlalchemy_to_dict(db_account)
    if ledger.account_has_entries(db, db_account.id, db_account.tenant_id):
        db_account.is_active = False
        db_account.updated_by = user_id
        action = "deactivated"
    else:
        db.delete(db_account)
        action = "deleted"
    db.commit()
    logger.info(f"Account {old_values['id']} {action} for tenant '{old_values['tenant_id']}'")

    record_audit(db, old_values["tenant_id"], 'accounts', old_values["id"], 'DELETE', user_id,
                 old_values=old_values, new_values={"result": action})
    return action
