from sqlalchemy import Column, Integer, String, Text, Numeric, Date, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class Investment(Base, TimestampMixin):
    __tablename__ = "investments"
    __table_args__ = (UniqueConstraint('tenant_id', 'symbol', name='_tenant_investment_symbol_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    symbol = Column(String(20), nullable=False)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)  # STOCK, BOND, FUND, ETF, CRYPTO, REAL_ESTATE, OTHER
    sector = Column(String(50), nullable=True)
    quantity = Column(Numeric(18, 6), nullable=False)
    average_price = Column(Numeric(14, 2), nullable=False)
    current_price = Column(Numeric(14, 2), nullable=False)
    purchase_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    dividends = relationship("Dividend", back_populates="investment", cascade="all, delete-orphan")
