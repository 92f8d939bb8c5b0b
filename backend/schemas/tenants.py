from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class Tenant(BaseModel):
    id: int
    name: str
    slug: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TenantInitialization(BaseModel):
    tenant_id: str
    accounts_created: int
    categories_created: int
    initialized: bool
