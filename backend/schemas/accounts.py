from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from schemas.common import reject_null
import os

VALID_ACCOUNT_TYPES = ["CHECKING", "SAVINGS", "INVESTMENT", "CREDIT_CARD", "CASH", "OTHER"]
# Ledger-only accounts created per tenant; never accepted from clients.
SYSTEM_ACCOUNT_TYPES = ["INCOME", "EXPENSE"]

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "BRL")

class AccountBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: str
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("name cannot be blank")
        return v

    @field_validator('type')
    @classmethod
    def validate_account_type(cls, v):
        v = v.upper()
        if v not in VALID_ACCOUNT_TYPES:
            raise ValueError(f"type must be one of {VALID_ACCOUNT_TYPES}")
        return v

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()

class AccountCreate(AccountBase):
    opening_balance: Decimal = Field(Decimal("0"), max_digits=14, decimal_places=2)

class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('type')
    @classmethod
    def validate_account_type(cls, v):
        if v is None:
            return v
        v = v.upper()
        if v not in VALID_ACCOUNT_TYPES:
            raise ValueError(f"type must be one of {VALID_ACCOUNT_TYPES}")
        return v

    @field_validator('name', 'type', 'is_active')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class Account(BaseModel):
    id: int
    tenant_id: str
    name: str
    type: str
    currency: str
    description: Optional[str] = None
    opening_balance: float
    is_active: bool
    is_system: bool = False
    balance: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BalancePoint(BaseModel):
    date: str
    balance: float
    daily_change: float
    transactions: int
