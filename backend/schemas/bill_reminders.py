from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date as date_type, datetime
from decimal import Decimal
from schemas.common import reject_null
from models.bill_reminder import BillStatus

VALID_BILL_RECURRENCES = ["NONE", "WEEKLY", "MONTHLY", "YEARLY"]

def _validate_recurrence(v):
    if v is None:
        return v
    v = v.upper()
    if v not in VALID_BILL_RECURRENCES:
        raise ValueError(f"recurrence must be one of {VALID_BILL_RECURRENCES}")
    return v

class BillReminderBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    due_date: date_type
    recurrence: str = "NONE"
    remind_days_before: int = Field(3, ge=0, le=60)
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator('recurrence')
    @classmethod
    def validate_recurrence(cls, v):
        return _validate_recurrence(v)

class BillReminderCreate(BillReminderBase):
    pass

class BillReminderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    due_date: Optional[date_type] = None
    recurrence: Optional[str] = None
    remind_days_before: Optional[int] = Field(None, ge=0, le=60)
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    status: Optional[BillStatus] = None
    notes: Optional[str] = None

    @field_validator('recurrence')
    @classmethod
    def validate_recurrence(cls, v):
        return _validate_recurrence(v)

    @field_validator('name', 'amount', 'due_date', 'recurrence', 'remind_days_before', 'status')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class BillPayment(BaseModel):
    account_id: Optional[int] = None
    date: Optional[date_type] = None
    create_transaction: bool = True

class BillReminder(BaseModel):
    id: int
    tenant_id: str
    name: str
    amount: float
    due_date: date_type
    recurrence: str
    remind_days_before: int
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    status: BillStatus
    last_paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    days_until_due: int = 0
    is_due_soon: bool = False

    class Config:
        from_attributes = True
