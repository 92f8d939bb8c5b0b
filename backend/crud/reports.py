"""
Report aggregations over posted ledger data.

Reports only read COMPLETED transactions that are not reversals, so a
reversed transaction (status REVERSED) and its reversal drop out together.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.account import Account
from models.category import Category
from models.transaction import Transaction, TransactionType, TransactionStatus
from models.goal import GoalStatus
from crud import accounts as accounts_crud
from crud import goals as goals_crud
from crud import investments as investments_crud
from utils.dates import group_by_for_period, period_key, previous_period
from utils.formatting import money_float, percentage

logger = logging.getLogger(__name__)

CATEGORY_COLORS = [
    '#8884d8', '#82ca9d', '#ffc658', '#ff7300', '#00ff00',
    '#ff00ff', '#00ffff', '#ff0000', '#0000ff', '#ffff00',
]
UNCATEGORIZED = "Other"
TREND_THRESHOLD = 5


def get_report_transactions(db: Session, tenant_id: str, start_date: date, end_date: date,
                            transaction_type: TransactionType = None, account_id: int = None,
                            account_type: str = None, category: str = None) -> List[Transaction]:
    query = db.query(Transaction).filter(
        Transaction.tenant_id == tenant_id,
        Transaction.status == TransactionStatus.COMPLETED,
        Transaction.reversal_of_id.is_(None),
        Transaction.date >= start_date,
        Transaction.date <= end_date
    )
    if transaction_type:
        query = query.filter(Transaction.type == transaction_type)
    if account_id:
        query = query.filter(or_(Transaction.from_account_id == account_id, Transaction.to_account_id == account_id))
    if account_type:
        account_ids = [row[0] for row in db.query(Account.id).filter(
            Account.tenant_id == tenant_id,
            Account.type == account_type.upper()
        ).all()]
        query = query.filter(or_(Transaction.from_account_id.in_(account_ids), Transaction.to_account_id.in_(account_ids)))
    if category:
        category_ids = [row[0] for row in db.query(Category.id).filter(
            Category.tenant_id == tenant_id,
            Category.name == category
        ).all()]
        query = query.filter(Transaction.category_id.in_(category_ids))
    return query.order_by(Transaction.date, Transaction.id).all()


def _category_lookup(db: Session, tenant_id: str) -> dict:
    return {category.id: category for category in db.query(Category).filter(Category.tenant_id == tenant_id).all()}


def _category_name(categories: dict, category_id) -> str:
    category = categories.get(category_id)
    return category.name if category else UNCATEGORIZED


def _brief(transaction: Transaction, categories: dict) -> dict:
    return {
        "id": transaction.id,
        "date": transaction.date.isoformat(),
        "description": transaction.description,
        "amount": money_float(transaction.amount),
        "type": transaction.type.value,
        "category": _category_name(categories, transaction.category_id),
    }


def _totals(transactions) -> dict:
    totals = {t_type: Decimal("0") for t_type in TransactionType}
    for transaction in transactions:
        totals[transaction.type] += transaction.amount
    return {
        "income": money_float(totals[TransactionType.INCOME]),
        "expense": money_float(totals[TransactionType.EXPENSE]),
        "transfer": money_float(totals[TransactionType.TRANSFER]),
        "net": money_float(totals[TransactionType.INCOME] - totals[TransactionType.EXPENSE]),
        "count": len(transactions),
    }


def _period(start_date: date, end_date: date, period: str = None) -> dict:
    return {"period": period, "start_date": start_date.isoformat(), "end_date": end_date.isoformat()}


def get_cash_flow(db: Session, tenant_id: str, start_date: date, end_date: date, period: str = "month",
                  account_id: int = None, account_type: str = None) -> dict:
    group_by = group_by_for_period(period)
    transactions = get_report_transactions(db, tenant_id, start_date, end_date,
                                           account_id=account_id, account_type=account_type)
    categories = _category_lookup(db, tenant_id)

    timeline = defaultdict(list)
    by_category = defaultdict(list)
    for transaction in transactions:
        timeline[period_key(transaction.date, group_by)].append(transaction)
        if transaction.type != TransactionType.TRANSFER:
            by_category[transaction.category_id].append(transaction)

    category_rows = []
    for category_id, items in by_category.items():
        totals = _totals(items)
        category_rows.append({
            "category_id": category_id,
            "category_name": _category_name(categories, category_id),
            "income": totals["income"],
            "expense": totals["expense"],
            "net": totals["net"],
            "count": totals["count"],
        })

    return {
        **_period(start_date, end_date, period),
        "group_by": group_by,
        "totals": _totals(transactions),
        "timeline": [{"period": key, **_totals(timeline[key])} for key in sorted(timeline)],
        "by_category": sorted(category_rows, key=lambda row: abs(row["net"]), reverse=True),
    }


def _trend(change: float) -> str:
    if change > TREND_THRESHOLD:
        return "up"
    if change < -TREND_THRESHOLD:
        return "down"
    return "stable"


def _sum(transactions) -> Decimal:
    return sum((transaction.amount for transaction in transactions), Decimal("0"))


def get_category_spending(db: Session, tenant_id: str, start_date: date, end_date: date) -> dict:
    previous_start, previous_end = previous_period(start_date, end_date)
    current = get_report_transactions(db, tenant_id, start_date, end_date, TransactionType.EXPENSE)
    previous = get_report_transactions(db, tenant_id, previous_start, previous_end, TransactionType.EXPENSE)
    categories = _category_lookup(db, tenant_id)

    grouped = defaultdict(list)
    for transaction in current:
        grouped[transaction.category_id].append(transaction)
    previous_totals = defaultdict(Decimal)
    for transaction in previous:
        previous_totals[transaction.category_id] += transaction.amount

    total_spent = _sum(current)
    rows = []
    for category_id, items in grouped.items():
        total = _sum(items)
        previous_total = previous_totals.get(category_id, Decimal("0"))
        change = percentage(total - previous_total, previous_total) if previous_total > 0 else 0.0
        latest = sorted(items, key=lambda t: (t.date, t.id), reverse=True)[:5]
        rows.append({
            "category_id": category_id,
            "category_name": _category_name(categories, category_id),
            "total": money_float(total),
            "count": len(items),
            "average": money_float(total / len(items)),
            "percentage": percentage(total, total_spent),
            "transactions": [_brief(t, categories) for t in latest],
            "previous_period": money_float(previous_total),
            "change": change,
            "trend": _trend(change),
        })
    rows.sort(key=lambda row: row["total"], reverse=True)
    for rank, row in enumerate(rows):
        row["color"] = CATEGORY_COLORS[rank % len(CATEGORY_COLORS)]

    average_per_category = total_spent / len(rows) if rows else Decimal("0")
    insights = {
        "most_expensive": None,
        "most_frequent": None,
        "categories_above_average": sum(1 for row in rows if row["total"] > float(average_per_category)),
    }
    if rows:
        most_expensive = rows[0]
        most_frequent = max(rows, key=lambda row: row["count"])
        insights["most_expensive"] = {"category_name": most_expensive["category_name"], "total": most_expensive["total"]}
        insights["most_frequent"] = {"category_name": most_frequent["category_name"], "count": most_frequent["count"]}

    return {
        **_period(start_date, end_date),
        "previous_start_date": previous_start.isoformat(),
        "previous_end_date": previous_end.isoformat(),
        "summary": {
            "total_spent": money_float(total_spent),
            "category_count": len(rows),
            "transaction_count": len(current),
            "average_per_category": money_float(average_per_category),
            "top_category": rows[0]["category_name"] if rows else None,
        },
        "categories": rows,
        "insights": insights,
    }


def get_expenses(db: Session, tenant_id: str, start_date: date, end_date: date, period: str = "month",
                 account_id: int = None, account_type: str = None, category: str = None) -> dict:
    expenses = get_report_transactions(db, tenant_id, start_date, end_date, TransactionType.EXPENSE,
                                       account_id=account_id, account_type=account_type, category=category)
    categories = _category_lookup(db, tenant_id)
    total = _sum(expenses)

    by_category = defaultdict(list)
    by_month = defaultdict(list)
    for expense in expenses:
        by_category[expense.category_id].append(expense)
        by_month[period_key(expense.date, "month")].append(expense)

    category_rows = []
    for category_id, items in by_category.items():
        category_total = _sum(items)
        category_rows.append({
            "category_id": category_id,
            "category_name": _category_name(categories, category_id),
            "total": money_float(category_total),
            "count": len(items),
            "percentage": percentage(category_total, total),
            "top_transactions": [
                _brief(t, categories) for t in sorted(items, key=lambda t: t.amount, reverse=True)[:5]
            ],
        })

    month_rows = [
        {"month": month, "total": money_float(_sum(by_month[month])), "count": len(by_month[month])}
        for month in sorted(by_month)
    ]
    monthly_growth = 0.0
    if len(month_rows) >= 2 and month_rows[-2]["total"] > 0:
        monthly_growth = percentage(
            Decimal(str(month_rows[-1]["total"])) - Decimal(str(month_rows[-2]["total"])),
            Decimal(str(month_rows[-2]["total"]))
        )

    largest = max(expenses, key=lambda t: t.amount) if expenses else None
    return {
        **_period(start_date, end_date, period),
        "summary": {
            "total": money_float(total),
            "count": len(expenses),
            "average": money_float(total / len(expenses)) if expenses else 0.0,
            "largest": money_float(largest.amount) if largest else 0.0,
        },
        "by_category": sorted(category_rows, key=lambda row: row["total"], reverse=True),
        "by_month": month_rows,
        "top_expenses": [_brief(t, categories) for t in sorted(expenses, key=lambda t: t.amount, reverse=True)[:10]],
        "monthly_growth": monthly_growth,
    }


def get_investment_report(db: Session, tenant_id: str, investment_type: str = None) -> dict:
    portfolio = investments_crud.get_portfolio(db, tenant_id, investment_type=investment_type, performers=10)
    return {
        "portfolio": portfolio["summary"],
        "allocation": portfolio["allocation"],
        "top_performers": portfolio["top_performers"],
        "worst_performers": portfolio["worst_performers"],
        "investments": portfolio["investments"],
    }


def get_goals_report(db: Session, tenant_id: str, status: GoalStatus = None, category: str = None, today: date = None) -> dict:
    goals = goals_crud.get_goals(db, tenant_id, status=status, category=category, today=today)
    needs_attention = [
        goal for goal in goals
        if goal.status == GoalStatus.ACTIVE and (goal.is_overdue or not goal.is_on_track)
    ]
    return {
        "summary": goals_crud.summarize_goals(goals),
        "by_status": goals_crud.group_goals(goals, lambda goal: goal.status.value),
        "by_category": goals_crud.group_goals(goals, lambda goal: goal.category or goals_crud.NO_CATEGORY),
        "needs_attention": needs_attention,
        "goals": goals,
    }


def get_dashboard(db: Session, tenant_id: str, start_date: date, end_date: date, period: str = "month") -> dict:
    transactions = get_report_transactions(db, tenant_id, start_date, end_date)
    categories = _category_lookup(db, tenant_id)
    accounts_summary = accounts_crud.get_accounts_summary(db, tenant_id)
    portfolio = investments_crud.get_portfolio(db, tenant_id)["summary"]
    active_goals = goals_crud.get_goals(db, tenant_id, status=GoalStatus.ACTIVE)
    goals_summary = goals_crud.summarize_goals(active_goals)

    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
    total_expense = _sum(expenses)
    expense_groups = defaultdict(Decimal)
    for expense in expenses:
        expense_groups[expense.category_id] += expense.amount
    ranked = sorted(expense_groups.items(), key=lambda item: item[1], reverse=True)[:10]
    expenses_by_category = [
        {
            "category_id": category_id,
            "category_name": _category_name(categories, category_id),
            "total": money_float(amount),
            "percentage": percentage(amount, total_expense),
            "color": CATEGORY_COLORS[rank % len(CATEGORY_COLORS)],
        }
        for rank, (category_id, amount) in enumerate(ranked)
    ]

    daily = defaultdict(list)
    for transaction in transactions:
        daily[transaction.date].append(transaction)
    daily_flow = []
    current = start_date
    while current <= end_date:
        totals = _totals(daily[current])
        daily_flow.append({
            "date": current.isoformat(),
            "income": totals["income"],
            "expense": totals["expense"],
            "net": totals["net"],
        })
        current += timedelta(days=1)

    recent = db.query(Transaction).filter(
        Transaction.tenant_id == tenant_id
    ).order_by(Transaction.date.desc(), Transaction.id.desc()).limit(10).all()

    return {
        **_period(start_date, end_date, period),
        "summary": {
            "accounts": {
                "total_balance": accounts_summary["total_balance"],
                "count": accounts_summary["active_accounts"],
                "by_type": accounts_summary["by_type"],
            },
            "transactions": _totals(transactions),
            "investments": {
                "total_invested": portfolio["total_invested"],
                "current_value": portfolio["current_value"],
                "gain_loss": portfolio["gain_loss"],
                "gain_loss_percentage": portfolio["gain_loss_percentage"],
                "count": portfolio["investment_count"],
            },
            "goals": {
                "total_target": goals_summary["total_target"],
                "total_current": goals_summary["total_current"],
                "progress": goals_summary["overall_progress"],
                "count": goals_summary["total_goals"],
            },
        },
        "charts": {
            "expenses_by_category": expenses_by_category,
            "daily_flow": daily_flow,
        },
        "recent_transactions": [
            {**_brief(t, categories), "status": t.status.value} for t in recent
        ],
    }
