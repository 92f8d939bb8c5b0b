from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, UniqueConstraint
from database import Base
from models.audit_mixin import TimestampMixin

class Account(Base, TimestampMixin):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    # CHECKING, SAVINGS, INVESTMENT, CREDIT_CARD, CASH, OTHER; INCOME and EXPENSE are ledger-only
    type = Column(String(20), nullable=False)
    currency = Column(String(3), nullable=False, default="BRL")
    description = Column(Text, nullable=True)
    opening_balance = Column(Numeric(14, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'name', name='_tenant_account_name_uc'),
    )
