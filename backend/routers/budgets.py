from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.users import User
from schemas.budgets import Budget, BudgetCreate, BudgetUpdate
from crud import budgets as budgets_crud
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/budgets",
    tags=["Budgets"],
)


def _get_budget_or_404(db: Session, budget_id: int, tenant_id: str):
    budget = budgets_crud.get_budget(db, budget_id, tenant_id)
    if not budget:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Budget with id {budget_id} not found")
    return budget


def _check_duplicate(db: Session, category_id: int, period: str, tenant_id: str, exclude_id: int = None):
    if budgets_crud.get_active_budget_for_category(db, category_id, period, tenant_id, exclude_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An active {period.lower()} budget already exists for category {category_id}"
        )


@router.get("/", response_model=List[Budget])
def get_budgets(
    period: Optional[str] = None,
    is_active: Optional[bool] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    budgets = budgets_crud.get_budgets(db, tenant_id, period=period, is_active=is_active, category_id=category_id)
    return [budgets_crud.with_progress(db, budget) for budget in budgets]


@router.get("/stats/summary")
def get_budget_summary(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return budgets_crud.get_budget_summary(db, tenant_id)


@router.get("/stats/alerts")
def get_budget_alerts(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    alerts = budgets_crud.get_budget_alerts(db, tenant_id)
    return {"count": len(alerts), "alerts": alerts}


@router.post("/", response_model=Budget, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: BudgetCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    _check_duplicate(db, budget.category_id, budget.period, tenant_id)
    try:
        db_budget = budgets_crud.create_budget(db, budget, tenant_id, get_user_identifier(current_user))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return budgets_crud.with_progress(db, db_budget)


@router.get("/{budget_id}", response_model=Budget)
def get_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return budgets_crud.with_progress(db, _get_budget_or_404(db, budget_id, tenant_id))


@router.patch("/{budget_id}", response_model=Budget)
def update_budget(
    budget_id: int,
    budget_update: BudgetUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    budget = _get_budget_or_404(db, budget_id, tenant_id)
    will_be_active = budget_update.is_active if budget_update.is_active is not None else budget.is_active
    if will_be_active:
        _check_duplicate(db, budget.category_id, budget_update.period or budget.period, tenant_id, exclude_id=budget.id)
    try:
        budget = budgets_crud.update_budget(db, budget, budget_update, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return budgets_crud.with_progress(db, budget)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    budget = _get_budget_or_404(db, budget_id, tenant_id)
    budgets_crud.delete_budget(db, budget, get_user_identifier(current_user))
