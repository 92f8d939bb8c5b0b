import logging
from datetime import date
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.category import Category
from models.transaction import Transaction, TransactionStatus
from models.budget import Budget
from schemas.categories import CategoryCreate, CategoryUpdate
from crud.audit_log import record_audit
from utils import sqlalchemy_to_dict
from utils.formatting import money_float

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Salary", "type": "INCOME", "color": "#82ca9d", "icon": "wallet"},
    {"name": "Investment Income", "type": "INCOME", "color": "#8884d8", "icon": "trending-up"},
    {"name": "Other Income", "type": "INCOME", "color": "#00c49f", "icon": "plus-circle"},
    {"name": "Food", "type": "EXPENSE", "color": "#ff7300", "icon": "utensils"},
    {"name": "Housing", "type": "EXPENSE", "color": "#8884d8", "icon": "home"},
    {"name": "Transport", "type": "EXPENSE", "color": "#ffc658", "icon": "car"},
    {"name": "Health", "type": "EXPENSE", "color": "#ff0000", "icon": "heart"},
    {"name": "Education", "type": "EXPENSE", "color": "#0000ff", "icon": "book"},
    {"name": "Leisure", "type": "EXPENSE", "color": "#ff00ff", "icon": "smile"},
    {"name": "Shopping", "type": "EXPENSE", "color": "#00ffff", "icon": "shopping-bag"},
    {"name": "Bills", "type": "EXPENSE", "color": "#82ca9d", "icon": "file-text"},
    {"name": "Other Expenses", "type": "EXPENSE", "color": "#999999", "icon": "more-horizontal"},
]


def get_category(db: Session, category_id: int, tenant_id: str):
    return db.query(Category).filter(
        Category.id == category_id,
        Category.tenant_id == tenant_id
    ).first()


def get_category_by_name(db: Session, name: str, category_type: str, tenant_id: str):
    return db.query(Category).filter(
        Category.tenant_id == tenant_id,
        func.lower(Category.name) == name.strip().lower(),
        Category.type == category_type
    ).first()


def get_categories(db: Session, tenant_id: str, category_type: str = None, is_active: bool = None):
    query = db.query(Category).filter(Category.tenant_id == tenant_id)
    if category_type:
        query = query.filter(Category.type == category_type.upper())
    if is_active is not None:
        query = query.filter(Category.is_active == is_active)
    return query.order_by(Category.type, Category.name).all()


def _check_parent(db: Session, parent_id: int, category_type: str, tenant_id: str, category_id: int = None):
    parent = get_category(db, parent_id, tenant_id)
    if not parent:
        raise LookupError(f"Parent category {parent_id} not found")
    if parent.type != category_type:
        raise ValueError("Parent category must have the same type")
    if category_id is None:
        return
    if parent.id == category_id:
        raise ValueError("A category cannot be its own parent")

    seen = {parent.id}
    ancestor_id = parent.parent_id
    while ancestor_id is not None and ancestor_id not in seen:
        if ancestor_id == category_id:
            raise ValueError("A category cannot be nested under one of its own subcategories")
        seen.add(ancestor_id)
        ancestor = get_category(db, ancestor_id, tenant_id)
        ancestor_id = ancestor.parent_id if ancestor else None


def create_category(db: Session, category: CategoryCreate, tenant_id: str, user_id: str = None):
    if category.parent_id is not None:
        _check_parent(db, category.parent_id, category.type, tenant_id)

    data = category.model_dump()
    data["name"] = data["name"].strip()
    db_category = Category(**data, tenant_id=tenant_id, created_by=user_id)
    db.add(db_category)
    db.commit()
    db.refresh(db_category)

    record_audit(db, tenant_id, 'categories', db_category.id, 'CREATE', user_id,
                 new_values=sqlalchemy_to_dict(db_category))
    return db_category


def update_category(db: Session, db_category: Category, category: CategoryUpdate, user_id: str = None):
    update_data = category.model_dump(exclude_unset=True)
    if update_data.get("parent_id") is not None:
        _check_parent(db, update_data["parent_id"], db_category.type, db_category.tenant_id, db_category.id)

    old_values = sqlalchemy_to_dict(db_category)
    for key, value in update_data.items():
        setattr(db_category, key, value.strip() if key == "name" else value)
    db_category.updated_by = user_id
    db.commit()
    db.refresh(db_category)

    record_audit(db, db_category.tenant_id, 'categories', db_category.id, 'UPDATE', user_id,
                 old_values=old_values, new_values=sqlalchemy_to_dict(db_category))
    return db_category


def category_in_use(db: Session, category_id: int, tenant_id: str) -> bool:
    used_by_transaction = db.query(Transaction.id).execution_options(include_deleted=True).filter(
        Transaction.tenant_id == tenant_id,
        Transaction.category_id == category_id
    ).first()
    used_by_budget = db.query(Budget.id).filter(
        Budget.tenant_id == tenant_id,
        Budget.category_id == category_id
    ).first()
    used_as_parent = db.query(Category.id).filter(
        Category.tenant_id == tenant_id,
        Category.parent_id == category_id
    ).first()
    return bool(used_by_transaction or used_by_budget or used_as_parent)


def delete_category(db: Session, db_category: Category, user_id: str = None) -> str:
    """Deactivate a category that is referenced anywhere, delete it otherwise."""
    if db_category.is_system:
        raise ValueError("System categories cannot be deleted")

    old_values = sqlalchemy_to_dict(db_category)
    if category_in_use(db, db_category.id, db_category.tenant_id):
        db_category.is_active = False
        db_category.updated_by = user_id
        action = "deactivated"
    else:
        db.delete(db_category)
        action = "deleted"
    db.commit()

    record_audit(db, old_values["tenant_id"], 'categories', old_values["id"], 'DELETE', user_id,
                 old_values=old_values, new_values={"result": action})
    return action


def get_category_usage(db: Session, tenant_id: str, start_date: date = None, end_date: date = None):
    query = db.query(
        Category.id,
        Category.name,
        Category.type,
        Category.color,
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.amount), 0)
    ).join(
        Transaction, Transaction.category_id == Category.id
    ).filter(
        Category.tenant_id == tenant_id,
        Transaction.tenant_id == tenant_id,
        Transaction.deleted_at.is_(None),
        Transaction.status == TransactionStatus.COMPLETED,
        Transaction.reversal_of_id.is_(None)
    )
    if start_date:
        query = query.filter(Transaction.date >= start_date)
    if end_date:
        query = query.filter(Transaction.date <= end_date)

    rows = query.group_by(Category.id, Category.name, Category.type, Category.color).all()
    usage = [
        {
            "category_id": category_id,
            "name": name,
            "type": category_type,
            "color": color,
            "transaction_count": count,
            "total_amount": money_float(total),
        }
        for category_id, name, category_type, color, count, total in rows
    ]
    return sorted(usage, key=lambda item: item["total_amount"], reverse=True)


def initialize_default_categories(db: Session, tenant_id: str) -> int:
    """Initialize default categories for a new tenant"""
    created = 0
    for category_data in DEFAULT_CATEGORIES:
        existing = get_category_by_name(db, category_data["name"], category_data["type"], tenant_id)
        if not existing:
            db.add(Category(**category_data, tenant_id=tenant_id, is_system=True, created_by="system"))
            created += 1
    db.flush()
    return created
