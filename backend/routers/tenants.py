from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas.tenants import Tenant, TenantInitialization
from crud import tenants as tenants_crud
from utils.cache import report_cache, tenant_tag
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/tenants",
    tags=["Tenants"],
)
logger = logging.getLogger(__name__)

@router.get("/current", response_model=Tenant)
def get_current_tenant(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    tenant = tenants_crud.get_tenant(db, tenant_id)
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant

@router.post("/initialize", response_model=TenantInitialization)
def initialize_tenant(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    """
    Creates the ledger accounts and default categories for the tenant.
    Safe to call more than once; existing rows are left alone.
    """
    result = tenants_crud.initialize_tenant(db, tenant_id)
    report_cache.invalidate_by_tags([tenant_tag(tenant_id)])
    return result

@router.get("/initialized")
def is_tenant_initialized(db: Session = Depends(get_db), tenant_id: str = Depends(get_tenant_id)):
    return {"tenant_id": tenant_id, "initialized": tenants_crud.is_tenant_initialized(db, tenant_id)}
