import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.goal import Goal, GoalStatus
from schemas.goals import GoalCreate, GoalUpdate, Goal as GoalSchema
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.dates import today_local, now_local
from utils.formatting import to_money, money_float, percentage

logger = logging.getLogger(__name__)

ON_TRACK_TOLERANCE = -10
URGENT_DAYS = 30
NEAR_COMPLETION = 80
NO_CATEGORY = "Uncategorized"

METRIC_SORT_FIELDS = ["progress_percentage", "days_remaining"]
COLUMN_SORT_FIELDS = {
    "target_date": Goal.target_date,
    "priority": Goal.priority,
    "target_amount": Goal.target_amount,
    "current_amount": Goal.current_amount,
    "name": Goal.name,
    "created_at": Goal.created_at,
}


def get_goal(db: Session, goal_id: int, tenant_id: str):
    return db.query(Goal).filter(Goal.id == goal_id, Goal.tenant_id == tenant_id).first()


def get_goal_by_name(db: Session, name: str, tenant_id: str, exclude_id: int = None):
    query = db.query(Goal).filter(Goal.tenant_id == tenant_id, func.lower(Goal.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.filter(Goal.id != exclude_id)
    return query.first()


def calculate_metrics(goal: Goal, today: date = None) -> dict:
    today = today or today_local()
    target = to_money(goal.target_amount)
    current = to_money(goal.current_amount)

    progress = min(percentage(current, target), 100.0)
    remaining = max(target - current, Decimal("0"))
    days_remaining = (goal.target_date - today).days
    is_completed = goal.status == GoalStatus.COMPLETED
    is_overdue = days_remaining < 0 and not is_completed

    if days_remaining > 0:
        daily_target = remaining / days_remaining
    else:
        daily_target = remaining

    start = goal.created_at.date() if goal.created_at else today
    total_days = (goal.target_date - start).days
    elapsed_days = (today - start).days
    if total_days > 0:
        expected = min(max(elapsed_days * 100.0 / total_days, 0.0), 100.0)
    else:
        expected = 100.0
    progress_vs_expected = round(progress - expected, 2)

    return {
        "progress_percentage": progress,
        "remaining_amount": money_float(remaining),
        "days_remaining": days_remaining,
        "daily_target": money_float(daily_target),
        "is_overdue": is_overdue,
        "expected_progress": round(expected, 2),
        "progress_vs_expected": progress_vs_expected,
        "is_on_track": is_completed or progress_vs_expected >= ON_TRACK_TOLERANCE,
    }


def with_metrics(goal: Goal, today: date = None) -> GoalSchema:
    return GoalSchema.model_validate(goal).model_copy(update=calculate_metrics(goal, today))


def get_goals(db: Session, tenant_id: str, status: GoalStatus = None, category: str = None, priority: int = None,
              search: str = None, is_overdue: bool = None, min_progress: float = None, max_progress: float = None,
              sort_by: str = "target_date", sort_order: str = "asc", today: date = None):
    query = db.query(Goal).filter(Goal.tenant_id == tenant_id)
    if status:
        query = query.filter(Goal.status == status)
    if category:
        query = query.filter(Goal.category == category)
    if priority:
        query = query.filter(Goal.priority == priority)
    if search:
        query = query.filter(Goal.name.ilike(f"%{search}%"))

    column = COLUMN_SORT_FIELDS.get(sort_by, Goal.target_date)
    query = query.order_by(column.desc() if sort_order == "desc" else column.asc(), Goal.id)
    goals = [with_metrics(goal, today) for goal in query.all()]

    if is_overdue is not None:
        goals = [goal for goal in goals if goal.is_overdue == is_overdue]
    if min_progress is not None:
        goals = [goal for goal in goals if goal.progress_percentage >= min_progress]
    if max_progress is not None:
        goals = [goal for goal in goals if goal.progress_percentage <= max_progress]
    if sort_by in METRIC_SORT_FIELDS:
        goals.sort(key=lambda goal: getattr(goal, sort_by), reverse=sort_order == "desc")
    return goals


def create_goal(db: Session, goal: GoalCreate, tenant_id: str, user_id: str = None, today: date = None):
    today = today or today_local()
    if goal.target_date <= today:
        raise ValueError("target_date must be in the future")
    if goal.current_amount > goal.target_amount:
        raise ValueError("current_amount cannot exceed target_amount")

    data = goal.model_dump()
    data["name"] = data["name"].strip()
    db_goal = Goal(**data, tenant_id=tenant_id, created_by=user_id)
    if db_goal.current_amount >= db_goal.target_amount:
        db_goal.status = GoalStatus.COMPLETED
        db_goal.completed_at = now_local()
    db.add(db_goal)
    db.commit()
    db.refresh(db_goal)
    logger.info(f"Goal {db_goal.id} created for tenant '{tenant_id}'")

    record_audit(db, tenant_id, 'goals', db_goal.id, 'CREATE', user_id, new_values=sqlalchemy_to_dict(db_goal))
    return db_goal


def update_goal(db: Session, db_goal: Goal, goal: GoalUpdate, user_id: str = None):
    update_data = goal.model_dump(exclude_unset=True)
    old_values = sqlalchemy_to_dict(db_goal)
    for key, value in update_data.items():
        setattr(db_goal, key, value.strip() if key == "name" else value)

    if to_money(db_goal.current_amount) >= to_money(db_goal.target_amount) and db_goal.status == GoalStatus.ACTIVE:
        db_goal.status = GoalStatus.COMPLETED
    if db_goal.status == GoalStatus.COMPLETED and db_goal.completed_at is None:
        db_goal.completed_at = now_local()
    elif db_goal.status != GoalStatus.COMPLETED:
        db_goal.completed_at = None
    db_goal.updated_by = user_id
    db.commit()
    db.refresh(db_goal)

    record_audit(db, db_goal.tenant_id, 'goals', db_goal.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_goal))
    return db_goal


def add_contribution(db: Session, db_goal: Goal, amount: Decimal, user_id: str = None):
    if db_goal.status != GoalStatus.ACTIVE:
        raise ValueError(f"Cannot add progress to a {db_goal.status.value.lower()} goal")

    old_values = sqlalchemy_to_dict(db_goal)
    db_goal.current_amount = to_money(db_goal.current_amount) + to_money(amount)
    if db_goal.current_amount >= to_money(db_goal.target_amount):
        db_goal.status = GoalStatus.COMPLETED
        db_goal.completed_at = now_local()
        logger.info(f"Goal {db_goal.id} reached its target for tenant '{db_goal.tenant_id}'")
    db_goal.updated_by = user_id
    db.commit()
    db.refresh(db_goal)

    record_audit(db, db_goal.tenant_id, 'goals', db_goal.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_goal))
    return db_goal


def delete_goal(db: Session, db_goal: Goal, user_id: str = None):
    old_values = sqlalchemy_to_dict(db_goal)
    db.delete(db_goal)
    db.commit()
    record_audit(db, old_values["tenant_id"], 'goals', old_values["id"], 'DELETE', user_id, old_values=old_values)


def summarize_goals(goals) -> dict:
    """Overview figures over already computed goal metrics."""
    counts = {status.value: 0 for status in GoalStatus}
    total_target = Decimal("0")
    total_current = Decimal("0")
    for goal in goals:
        counts[goal.status.value] += 1
        total_target += Decimal(str(goal.target_amount))
        total_current += Decimal(str(goal.current_amount))

    return {
        "total_goals": len(goals),
        "active_goals": counts["ACTIVE"],
        "completed_goals": counts["COMPLETED"],
        "paused_goals": counts["PAUSED"],
        "cancelled_goals": counts["CANCELLED"],
        "total_target": money_float(total_target),
        "total_current": money_float(total_current),
        "overall_progress": min(percentage(total_current, total_target), 100.0),
        "completion_rate": percentage(counts["COMPLETED"], len(goals)),
    }


def group_goals(goals, key) -> list:
    groups = defaultdict(lambda: {"count": 0, "target": Decimal("0"), "current": Decimal("0")})
    for goal in goals:
        group = groups[key(goal)]
        group["count"] += 1
        group["target"] += Decimal(str(goal.target_amount))
        group["current"] += Decimal(str(goal.current_amount))
    return [
        {
            "name": name,
            "count": values["count"],
            "target_amount": money_float(values["target"]),
            "current_amount": money_float(values["current"]),
            "progress": min(percentage(values["current"], values["target"]), 100.0),
        }
        for name, values in sorted(groups.items())
    ]


def get_goals_dashboard(db: Session, tenant_id: str, today: date = None) -> dict:
    goals = get_goals(db, tenant_id, today=today)
    active = [goal for goal in goals if goal.status == GoalStatus.ACTIVE]

    urgent = sorted(
        [goal for goal in active if 0 < goal.days_remaining <= URGENT_DAYS],
        key=lambda goal: goal.days_remaining
    )[:5]
    overdue = [goal for goal in active if goal.is_overdue][:5]
    near_completion = sorted(
        [goal for goal in active if goal.progress_percentage >= NEAR_COMPLETION],
        key=lambda goal: goal.progress_percentage,
        reverse=True
    )[:5]

    return {
        "overview": summarize_goals(goals),
        "alerts": {
            "urgent": urgent,
            "overdue": overdue,
            "near_completion": near_completion,
        },
        "by_category": group_goals(goals, lambda goal: goal.category or NO_CATEGORY),
        "by_status": group_goals(goals, lambda goal: goal.status.value),
    }
