import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from models.users import User
from crud import tenants as tenants_crud
from utils.auth_utils import hash_password, verify_password
from utils.dates import now_local

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def get_user(db: Session, user_id: int):
    return db.query(User).filter(User.id == user_id).first()


def register_user(db: Session, email: str, password: str, name: str, tenant_name: str = None) -> User:
    """Create the user together with its own tenant and the tenant's defaults."""
    tenant = tenants_crud.create_tenant(db, tenant_name or name)
    user = User(
        tenant_id=str(tenant.id),
        email=email.strip().lower(),
        name=name.strip(),
        hashed_password=hash_password(password),
        created_by="self-registration"
    )
    db.add(user)
    db.flush()
    tenants_crud.initialize_tenant(db, user.tenant_id)
    db.refresh(user)
    logger.info(f"User {user.id} registered with tenant '{user.tenant_id}'")
    return user


def authenticate_user(db: Session, email: str, password: str):
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


def mark_login(db: Session, user: User) -> User:
    user.last_login_at = now_local()
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, new_password: str) -> None:
    user.hashed_password = hash_password(new_password)
    user.updated_by = user.email
    db.commit()


def update_user(db: Session, user: User, update_data: dict) -> User:
    for key, value in update_data.items():
        if key == "email":
            value = value.strip().lower()
        setattr(user, key, value)
    user.updated_by = user.email
    db.commit()
    db.refresh(user)
    return user
