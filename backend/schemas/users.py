from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None

class User(BaseModel):
    id: int
    tenant_id: str
    email: str
    name: str
    is_active: bool
    is_superuser: bool = False
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
