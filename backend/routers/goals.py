from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional, Literal

from database import get_db
from models.goal import GoalStatus
from models.users import User
from schemas.goals import Goal, GoalCreate, GoalUpdate, GoalContribution
from crud import goals as goals_crud
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/goals",
    tags=["Goals"],
)

GoalSortField = Literal[
    "target_date", "progress_percentage", "days_remaining", "priority",
    "target_amount", "current_amount", "name", "created_at"
]


def _get_goal_or_404(db: Session, goal_id: int, tenant_id: str):
    goal = goals_crud.get_goal(db, goal_id, tenant_id)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Goal with id {goal_id} not found")
    return goal


@router.get("/", response_model=List[Goal])
def get_goals(
    status_filter: Optional[GoalStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    priority: Optional[int] = Query(None, ge=1, le=5),
    search: Optional[str] = None,
    is_overdue: Optional[bool] = None,
    min_progress: Optional[float] = Query(None, ge=0, le=100),
    max_progress: Optional[float] = Query(None, ge=0, le=100),
    sort_by: GoalSortField = "target_date",
    sort_order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return goals_crud.get_goals(
        db, tenant_id,
        status=status_filter,
        category=category,
        priority=priority,
        search=search,
        is_overdue=is_overdue,
        min_progress=min_progress,
        max_progress=max_progress,
        sort_by=sort_by,
        sort_order=sort_order
    )


@router.get("/dashboard")
def get_goals_dashboard(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return goals_crud.get_goals_dashboard(db, tenant_id)


@router.post("/", response_model=Goal, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: GoalCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    if goals_crud.get_goal_by_name(db, goal.name, tenant_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A goal named '{goal.name}' already exists")
    try:
        db_goal = goals_crud.create_goal(db, goal, tenant_id, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return goals_crud.with_metrics(db_goal)


@router.get("/{goal_id}", response_model=Goal)
def get_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return goals_crud.with_metrics(_get_goal_or_404(db, goal_id, tenant_id))


@router.patch("/{goal_id}", response_model=Goal)
def update_goal(
    goal_id: int,
    goal_update: GoalUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    goal = _get_goal_or_404(db, goal_id, tenant_id)
    if goal_update.name and goals_crud.get_goal_by_name(db, goal_update.name, tenant_id, exclude_id=goal.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"A goal named '{goal_update.name}' already exists")
    goal = goals_crud.update_goal(db, goal, goal_update, get_user_identifier(current_user))
    return goals_crud.with_metrics(goal)


@router.post("/{goal_id}/contribute", response_model=Goal)
def contribute_to_goal(
    goal_id: int,
    contribution: GoalContribution,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    goal = _get_goal_or_404(db, goal_id, tenant_id)
    try:
        goal = goals_crud.add_contribution(db, goal, contribution.amount, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return goals_crud.with_metrics(goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    goal = _get_goal_or_404(db, goal_id, tenant_id)
    goals_crud.delete_goal(db, goal, get_user_identifier(current_user))
