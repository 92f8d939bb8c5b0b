from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from schemas.common import reject_null

VALID_CATEGORY_TYPES = ["INCOME", "EXPENSE"]

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = Field(None, max_length=50)
    parent_id: Optional[int] = None

    @field_validator('type')
    @classmethod
    def validate_category_type(cls, v):
        v = v.upper()
        if v not in VALID_CATEGORY_TYPES:
            raise ValueError(f"type must be one of {VALID_CATEGORY_TYPES}")
        return v

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: Optional[str] = Field(None, max_length=50)
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator('name', 'is_active')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class Category(CategoryBase):
    id: int
    tenant_id: str
    is_active: bool
    is_system: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
