import logging
from datetime import date
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.budget import Budget
from models.category import Category
from models.transaction import Transaction, TransactionType, TransactionStatus
from schemas.budgets import BudgetCreate, BudgetUpdate, Budget as BudgetSchema
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.dates import today_local, month_bounds, year_bounds
from utils.formatting import format_brl_currency, to_money, money_float, percentage

logger = logging.getLogger(__name__)


def get_budget(db: Session, budget_id: int, tenant_id: str):
    return db.query(Budget).filter(Budget.id == budget_id, Budget.tenant_id == tenant_id).first()


def get_active_budget_for_category(db: Session, category_id: int, period: str, tenant_id: str, exclude_id: int = None):
    query = db.query(Budget).filter(
        Budget.tenant_id == tenant_id,
        Budget.category_id == category_id,
        Budget.period == period,
        Budget.is_active == True
    )
    if exclude_id is not None:
        query = query.filter(Budget.id != exclude_id)
    return query.first()


def get_period_window(budget: Budget, today: date = None):
    """Current calendar month/year, clipped to the budget's own start and end dates."""
    today = today or today_local()
    start, end = month_bounds(today) if budget.period == "MONTHLY" else year_bounds(today)
    if budget.start_date and budget.start_date > start:
        start = budget.start_date
    if budget.end_date and budget.end_date < end:
        end = budget.end_date
    return start, end


def get_spent(db: Session, budget: Budget, start: date, end: date) -> Decimal:
    if start > end:
        return Decimal("0")
    spent = db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
        Transaction.tenant_id == budget.tenant_id,
        Transaction.category_id == budget.category_id,
        Transaction.type == TransactionType.EXPENSE,
        Transaction.status == TransactionStatus.COMPLETED,
        Transaction.reversal_of_id.is_(None),
        Transaction.deleted_at.is_(None),
        Transaction.date >= start,
        Transaction.date <= end
    ).scalar()
    return to_money(spent)


def budget_status(used_percentage: float, alert_threshold: int) -> str:
    if used_percentage > 100:
        return "exceeded"
    if used_percentage >= alert_threshold:
        return "warning"
    return "good"


def with_progress(db: Session, budget: Budget, today: date = None) -> BudgetSchema:
    start, end = get_period_window(budget, today)
    spent = get_spent(db, budget, start, end)
    used = percentage(spent, budget.amount)
    return BudgetSchema.model_validate(budget).model_copy(update={
        "category_name": budget.category.name if budget.category else None,
        "spent": money_float(spent),
        "remaining": money_float(max(to_money(budget.amount) - spent, Decimal("0"))),
        "percentage": used,
        "status": budget_status(used, budget.alert_threshold),
        "period_start": start,
        "period_end": end,
    })


def get_budgets(db: Session, tenant_id: str, period: str = None, is_active: bool = None, category_id: int = None):
    query = db.query(Budget).filter(Budget.tenant_id == tenant_id)
    if period:
        query = query.filter(Budget.period == period.upper())
    if is_active is not None:
        query = query.filter(Budget.is_active == is_active)
    if category_id:
        query = query.filter(Budget.category_id == category_id)
    return query.order_by(Budget.id).all()


def _check_category(db: Session, category_id: int, tenant_id: str) -> Category:
    category = db.query(Category).filter(Category.id == category_id, Category.tenant_id == tenant_id).first()
    if not category:
        raise LookupError(f"Category {category_id} not found")
    if category.type != "EXPENSE":
        raise ValueError("Budgets can only be set for expense categories")
    return category


def _check_dates(start_date, end_date):
    if start_date and end_date and start_date > end_date:
        raise ValueError("start_date must be on or before end_date")


def create_budget(db: Session, budget: BudgetCreate, tenant_id: str, user_id: str = None):
    _check_category(db, budget.category_id, tenant_id)
    _check_dates(budget.start_date, budget.end_date)

    db_budget = Budget(**budget.model_dump(), tenant_id=tenant_id, created_by=user_id)
    db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    logger.info(f"Budget {db_budget.id} created for category {db_budget.category_id}, tenant '{tenant_id}'")

    record_audit(db, tenant_id, 'budgets', db_budget.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_budget))
    return db_budget


def update_budget(db: Session, db_budget: Budget, budget: BudgetUpdate, user_id: str = None):
    update_data = budget.model_dump(exclude_unset=True)
    _check_dates(update_data.get("start_date", db_budget.start_date), update_data.get("end_date", db_budget.end_date))

    old_values = sqlalchemy_to_dict(db_budget)
    for key, value in update_data.items():
        setattr(db_budget, key, value)
    db_budget.updated_by = user_id
    db.commit()
    db.refresh(db_budget)

    record_audit(db, db_budget.tenant_id, 'budgets', db_budget.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_budget))
    return db_budget


def delete_budget(db: Session, db_budget: Budget, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_budget)
    db.delete(db_budget)
    db.commit()
    record_audit(db, old_values["tenant_id"], 'budgets', old_values["id"], 'DELETE', user_id,
                 old_values=old_values)


def get_budget_summary(db: Session, tenant_id: str, today: date = None) -> dict:
    budgets = [with_progress(db, budget, today) for budget in get_budgets(db, tenant_id, is_active=True)]

    total_budgeted = sum(Decimal(str(b.amount)) for b in budgets)
    total_spent = sum(Decimal(str(b.spent)) for b in budgets)
    counts = {"good": 0, "warning": 0, "exceeded": 0}
    for budget in budgets:
        counts[budget.status] += 1

    return {
        "total_budgeted": money_float(total_budgeted),
        "total_spent": money_float(total_spent),
        "total_remaining": money_float(max(total_budgeted - total_spent, Decimal("0"))),
        "overall_percentage": percentage(total_spent, total_budgeted),
        "budget_count": len(budgets),
        "by_status": counts,
        "budgets": budgets,
    }


def get_budget_alerts(db: Session, tenant_id: str, today: date = None) -> list:
    alerts = []
    for budget in get_budgets(db, tenant_id, is_active=True):
        progress = with_progress(db, budget, today)
        if progress.status == "good":
            continue
        severity = "critical" if progress.percentage > 100 else "warning"
        name = progress.category_name or f"Category {budget.category_id}"
        if severity == "critical":
            message = (f"Budget for {name} exceeded: {format_brl_currency(progress.spent)} of "
                       f"{format_brl_currency(progress.amount)} ({progress.percentage}% used)")
        else:
            message = (f"Budget for {name} at {progress.percentage}% of the limit: "
                       f"{format_brl_currency(progress.spent)} of {format_brl_currency(progress.amount)}")
        alerts.append({
            "budget_id": budget.id,
            "category_id": budget.category_id,
            "category_name": progress.category_name,
            "amount": progress.amount,
            "spent": progress.spent,
            "percentage": progress.percentage,
            "severity": severity,
            "message": message,
        })
    return sorted(alerts, key=lambda alert: alert["percentage"], reverse=True)
