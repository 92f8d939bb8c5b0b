from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from schemas.common import reject_null
from models.goal import GoalStatus

VALID_GOAL_RECURRENCES = ["NONE", "MONTHLY", "YEARLY"]

def _validate_recurrence(v):
    if v is None:
        return v
    v = v.upper()
    if v not in VALID_GOAL_RECURRENCES:
        raise ValueError(f"recurrence must be one of {VALID_GOAL_RECURRENCES}")
    return v

class GoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    target_amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    target_date: date
    category: Optional[str] = Field(None, max_length=50)
    priority: int = Field(3, ge=1, le=5)
    recurrence: str = "NONE"

    @field_validator('recurrence')
    @classmethod
    def validate_recurrence(cls, v):
        return _validate_recurrence(v)

class GoalCreate(GoalBase):
    current_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)

class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    target_amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    current_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    target_date: Optional[date] = None
    category: Optional[str] = Field(None, max_length=50)
    priority: Optional[int] = Field(None, ge=1, le=5)
    recurrence: Optional[str] = None
    status: Optional[GoalStatus] = None

    @field_validator('recurrence')
    @classmethod
    def validate_recurrence(cls, v):
        return _validate_recurrence(v)

    @field_validator('name', 'target_amount', 'current_amount', 'target_date', 'priority', 'recurrence', 'status')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class GoalContribution(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)

class Goal(BaseModel):
    id: int
    tenant_id: str
    name: str
    description: Optional[str] = None
    target_amount: float
    current_amount: float
    target_date: date
    category: Optional[str] = None
    priority: int
    recurrence: str
    status: GoalStatus
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    progress_percentage: float = 0.0
    remaining_amount: float = 0.0
    days_remaining: int = 0
    daily_target: float = 0.0
    is_overdue: bool = False
    expected_progress: float = 0.0
    progress_vs_expected: float = 0.0
    is_on_track: bool = True

    class Config:
        from_attributes = True
