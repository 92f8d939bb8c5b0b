from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from database import get_db
from models.users import User
from schemas.categories import Category, CategoryCreate, CategoryUpdate
from crud import categories as categories_crud
from utils.auth_utils import get_current_user, get_user_identifier
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
)


def _get_category_or_404(db: Session, category_id: int, tenant_id: str):
    category = categories_crud.get_category(db, category_id, tenant_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Category with id {category_id} not found")
    return category


@router.get("/", response_model=List[Category])
def get_categories(
    type: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return categories_crud.get_categories(db, tenant_id, category_type=type, is_active=is_active)


@router.get("/stats/usage")
def get_category_usage(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return categories_crud.get_category_usage(db, tenant_id, start_date, end_date)


@router.post("/", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    if categories_crud.get_category_by_name(db, category.name, category.type, tenant_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A {category.type.lower()} category named '{category.name}' already exists"
        )
    try:
        return categories_crud.create_category(db, category, tenant_id, get_user_identifier(current_user))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{category_id}", response_model=Category)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _get_category_or_404(db, category_id, tenant_id)


@router.patch("/{category_id}", response_model=Category)
def update_category(
    category_id: int,
    category_update: CategoryUpdate,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    category = _get_category_or_404(db, category_id, tenant_id)
    if category_update.name:
        existing = categories_crud.get_category_by_name(db, category_update.name, category.type, tenant_id)
        if existing and existing.id != category.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A {category.type.lower()} category named '{category_update.name}' already exists"
            )
    try:
        return categories_crud.update_category(db, category, category_update, get_user_identifier(current_user))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id),
    current_user: User = Depends(get_current_user)
):
    category = _get_category_or_404(db, category_id, tenant_id)
    try:
        result = categories_crud.delete_category(db, category, get_user_identifier(current_user))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"id": category_id, "result": result}
