import logging
from datetime import date
from sqlalchemy.orm import Session
from models.bill_reminder import BillReminder, BillStatus
from models.transaction import TransactionType
from schemas.bill_reminders import BillReminderCreate, BillReminderUpdate, BillPayment, BillReminder as BillReminderSchema
from schemas.transactions import TransactionCreate
from crud import transactions as transactions_crud
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.dates import today_local, now_local, add_interval

logger = logging.getLogger(__name__)

RECURRENCE_FREQUENCIES = {
    "WEEKLY": "weekly",
    "MONTHLY": "monthly",
    "YEARLY": "yearly",
}


def get_bill(db: Session, bill_id: int, tenant_id: str):
    return db.query(BillReminder).filter(BillReminder.id == bill_id, BillReminder.tenant_id == tenant_id).first()


def with_due_info(bill: BillReminder, today: date = None) -> BillReminderSchema:
    today = today or today_local()
    days_until_due = (bill.due_date - today).days
    is_open = bill.status != BillStatus.PAID
    return BillReminderSchema.model_validate(bill).model_copy(update={
        "days_until_due": days_until_due,
        "is_due_soon": is_open and 0 <= days_until_due <= bill.remind_days_before,
    })


def get_bills(db: Session, tenant_id: str, status: BillStatus = None, due_before: date = None):
    query = db.query(BillReminder).filter(BillReminder.tenant_id == tenant_id)
    if status:
        query = query.filter(BillReminder.status == status)
    if due_before:
        query = query.filter(BillReminder.due_date <= due_before)
    return query.order_by(BillReminder.due_date, BillReminder.id).all()


def get_upcoming_bills(db: Session, tenant_id: str, days: int = 7, today: date = None):
    """Unpaid bills due in the next `days` days plus the ones already overdue."""
    today = today or today_local()
    bills = db.query(BillReminder).filter(
        BillReminder.tenant_id == tenant_id,
        BillReminder.status != BillStatus.PAID
    ).order_by(BillReminder.due_date, BillReminder.id).all()

    upcoming, overdue = [], []
    for bill in bills:
        info = with_due_info(bill, today)
        if info.days_until_due < 0:
            overdue.append(info)
        elif info.days_until_due <= days:
            upcoming.append(info)
    return {"upcoming": upcoming, "overdue": overdue}


def create_bill(db: Session, bill: BillReminderCreate, tenant_id: str, user_id: str = None):
    db_bill = BillReminder(**bill.model_dump(), tenant_id=tenant_id, created_by=user_id)
    db.add(db_bill)
    db.commit()
    db.refresh(db_bill)

    record_audit(db, tenant_id, 'bill_reminders', db_bill.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_bill))
    return db_bill


def update_bill(db: Session, db_bill: BillReminder, bill: BillReminderUpdate, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_bill)
    for key, value in bill.model_dump(exclude_unset=True).items():
        setattr(db_bill, key, value)
    db_bill.updated_by = user_id
    db.commit()
    db.refresh(db_bill)

    record_audit(db, db_bill.tenant_id, 'bill_reminders', db_bill.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_bill))
    return db_bill


def delete_bill(db: Session, db_bill: BillReminder, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_bill)
    db.delete(db_bill)
    db.commit()
    record_audit(db, old_values["tenant_id"], 'bill_reminders', old_values["id"], 'DELETE', user_id,
                 old_values=old_values)


def pay_bill(db: Session, db_bill: BillReminder, payment: BillPayment, user=None):
    """
    Mark a bill as paid, optionally posting the matching expense.

    Recurring bills move to their next due date and stay open; one-off bills
    become PAID. Returns (bill, transaction or None).
    """
    if db_bill.status == BillStatus.PAID:
        raise ValueError("Bill is already paid")

    transaction = None
    if payment.create_transaction:
        account_id = payment.account_id or db_bill.account_id
        if not account_id:
            raise ValueError("An account is required to record the payment")
        created, _ = transactions_crud.create_transaction(
            db,
            TransactionCreate(
                description=f"Bill: {db_bill.name}"[:255],
                amount=db_bill.amount,
                type=TransactionType.EXPENSE,
                date=payment.date or today_local(),
                from_account_id=account_id,
                category_id=db_bill.category_id,
                tags=["bill"],
            ),
            db_bill.tenant_id,
            user
        )
        transaction = created[0]

    user_id = user.email if user else None
    old_values = sqlalchemy_to_dict(db_bill)
    db_bill.last_paid_at = now_local()
    frequency = RECURRENCE_FREQUENCIES.get(db_bill.recurrence)
    if frequency:
        db_bill.due_date = add_interval(db_bill.due_date, frequency)
        db_bill.status = BillStatus.PENDING
    else:
        db_bill.status = BillStatus.PAID
    db_bill.updated_by = user_id
    db.commit()
    db.refresh(db_bill)
    logger.info(f"Bill {db_bill.id} paid for tenant '{db_bill.tenant_id}'")

    record_audit(db, db_bill.tenant_id, 'bill_reminders', db_bill.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_bill))
    return db_bill, transaction


def mark_overdue_bills(db: Session, tenant_id: str, today: date = None) -> int:
    today = today or today_local()
    bills = db.query(BillReminder).filter(
        BillReminder.tenant_id == tenant_id,
        BillReminder.status == BillStatus.PENDING,
        BillReminder.due_date < today
    ).all()
    for bill in bills:
        bill.status = BillStatus.OVERDUE
        bill.updated_by = "system"
    db.commit()
    return len(bills)
