import logging
import re
import uuid
from sqlalchemy.orm import Session
from models.tenant import Tenant
from models.account import Account
from crud import ledger
from crud.categories import initialize_default_categories, DEFAULT_CATEGORIES
from models.category import Category

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "tenant"


def get_tenant(db: Session, tenant_id: str):
    if not str(tenant_id).isdigit():
        return None
    return db.query(Tenant).filter(Tenant.id == int(tenant_id)).first()


def get_active_tenants(db: Session):
    return db.query(Tenant).filter(Tenant.is_active == True).order_by(Tenant.id).all()


def create_tenant(db: Session, name: str) -> Tenant:
    """Create a tenant with a unique slug. Flushes, does not commit."""
    slug = slugify(name)
    if db.query(Tenant.id).filter(Tenant.slug == slug).first():
        slug = f"{slug}-{uuid.uuid4().hex[:8]}"
    tenant = Tenant(name=name, slug=slug, created_by="system")
    db.add(tenant)
    db.flush()
    return tenant


def initialize_tenant(db: Session, tenant_id: str) -> dict:
    """Seed ledger accounts and default categories; safe to call repeatedly."""
    accounts_before = db.query(Account).filter(Account.tenant_id == tenant_id, Account.is_system == True).count()
    ledger.ensure_system_accounts(db, tenant_id)
    accounts_created = len(ledger.SYSTEM_ACCOUNTS) - accounts_before
    categories_created = initialize_default_categories(db, tenant_id)
    db.commit()
    if accounts_created or categories_created:
        logger.info(
            f"Tenant '{tenant_id}' initialized: {accounts_created} ledger accounts, "
            f"{categories_created} categories"
        )
    return {
        "tenant_id": tenant_id,
        "accounts_created": max(accounts_created, 0),
        "categories_created": categories_created,
        "initialized": True,
    }


def is_tenant_initialized(db: Session, tenant_id: str) -> bool:
    system_accounts = db.query(Account.type).filter(
        Account.tenant_id == tenant_id,
        Account.is_system == True
    ).all()
    if {row[0] for row in system_accounts} != set(ledger.SYSTEM_ACCOUNTS):
        return False
    category_count = db.query(Category.id).filter(
        Category.tenant_id == tenant_id,
        Category.is_system == True
    ).count()
    return category_count >= len(DEFAULT_CATEGORIES)
