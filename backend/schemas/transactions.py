from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Literal
from datetime import date as date_type, datetime
from decimal import Decimal
from schemas.common import reject_null
from models.transaction import TransactionType, TransactionStatus

class InstallmentOptions(BaseModel):
    count: int = Field(..., ge=2, le=360)
    frequency: Literal["daily", "weekly", "monthly"] = "monthly"

class TransactionBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    type: TransactionType
    date: Optional[date_type] = None
    from_account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None
    reference: Optional[str] = Field(None, max_length=100)
    tags: List[str] = []
    notes: Optional[str] = None

class TransactionCreate(TransactionBase):
    status: TransactionStatus = TransactionStatus.COMPLETED
    external_id: Optional[str] = Field(None, max_length=100)
    installments: Optional[InstallmentOptions] = None

    @field_validator('status')
    @classmethod
    def check_initial_status(cls, v):
        if v not in (TransactionStatus.PENDING, TransactionStatus.COMPLETED):
            raise ValueError("New transactions must be PENDING or COMPLETED")
        return v

class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    date: Optional[date_type] = None
    category_id: Optional[int] = None
    status: Optional[TransactionStatus] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    @field_validator('description', 'amount', 'date', 'status')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

class TransactionReverse(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)

class Entry(BaseModel):
    id: int
    account_id: int
    category_id: Optional[int] = None
    debit: float
    credit: float
    description: Optional[str] = None

    class Config:
        from_attributes = True

class Transaction(BaseModel):
    id: int
    tenant_id: str
    description: str
    amount: float
    type: TransactionType
    status: TransactionStatus
    date: date_type
    from_account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    category_id: Optional[int] = None
    reference: Optional[str] = None
    external_id: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    reversal_of_id: Optional[int] = None
    installment_number: Optional[int] = None
    installment_total: Optional[int] = None
    installment_group: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TransactionDetail(Transaction):
    entries: List[Entry] = []

class ImportResult(BaseModel):
    imported: int
    skipped: int
    errors: List[str] = []
