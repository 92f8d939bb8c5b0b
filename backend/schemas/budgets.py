from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from schemas.common import reject_null

VALID_BUDGET_PERIODS = ["MONTHLY", "YEARLY"]

def _validate_period(v):
    if v is None:
        return v
    v = v.upper()
    if v not in VALID_BUDGET_PERIODS:
        raise ValueError(f"period must be one of {VALID_BUDGET_PERIODS}")
    return v

class BudgetBase(BaseModel):
    category_id: int
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    period: str = "MONTHLY"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    alert_threshold: int = Field(80, ge=0, le=100)
    description: Optional[str] = None

    @field_validator('period')
    @classmethod
    def validate_period(cls, v):
        return _validate_period(v)

class BudgetCreate(BudgetBase):
    pass

class BudgetUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    period: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    alert_threshold: Optional[int] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None
    description: Optional[str] = None

    @field_validator('period')
    @classmethod
    def validate_period(cls, v):
        return _validate_period(v)

    @field_validator('amount', 'period', 'alert_threshold', 'is_active')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class Budget(BaseModel):
    id: int
    tenant_id: str
    category_id: int
    category_name: Optional[str] = None
    amount: float
    period: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    alert_threshold: int
    is_active: bool
    description: Optional[str] = None
    spent: float = 0.0
    remaining: float = 0.0
    percentage: float = 0.0
    status: str = "good"
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
