from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from schemas.common import reject_null

VALID_INVESTMENT_TYPES = ["STOCK", "BOND", "FUND", "ETF", "CRYPTO", "REAL_ESTATE", "OTHER"]
VALID_DIVIDEND_TYPES = ["DIVIDEND", "JCP", "INTEREST", "OTHER"]

class InvestmentBase(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    type: str
    sector: Optional[str] = Field(None, max_length=50)
    purchase_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator('symbol')
    @classmethod
    def upper_symbol(cls, v):
        return v.strip().upper()

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        v = v.upper()
        if v not in VALID_INVESTMENT_TYPES:
            raise ValueError(f"type must be one of {VALID_INVESTMENT_TYPES}")
        return v

class InvestmentCreate(InvestmentBase):
    quantity: Decimal = Field(..., gt=0, max_digits=18, decimal_places=6)
    average_price: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    current_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)

class InvestmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sector: Optional[str] = Field(None, max_length=50)
    quantity: Optional[Decimal] = Field(None, gt=0, max_digits=18, decimal_places=6)
    average_price: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    current_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    purchase_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator('name', 'quantity', 'average_price', 'current_price')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class Investment(BaseModel):
    id: int
    tenant_id: str
    symbol: str
    name: str
    type: str
    sector: Optional[str] = None
    quantity: float
    average_price: float
    current_price: float
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    total_invested: float = 0.0
    current_value: float = 0.0
    gain_loss: float = 0.0
    gain_loss_percentage: float = 0.0
    total_dividends: float = 0.0
    dividend_yield: float = 0.0
    last_dividend_date: Optional[date] = None

    class Config:
        from_attributes = True

class DividendCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    payment_date: date
    ex_dividend_date: Optional[date] = None
    type: str = "DIVIDEND"
    notes: Optional[str] = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        v = v.upper()
        if v not in VALID_DIVIDEND_TYPES:
            raise ValueError(f"type must be one of {VALID_DIVIDEND_TYPES}")
        return v

class Dividend(BaseModel):
    id: int
    tenant_id: str
    investment_id: int
    amount: float
    payment_date: date
    ex_dividend_date: Optional[date] = None
    type: str
    notes: Optional[str] = None

    class Config:
        from_attributes = True
