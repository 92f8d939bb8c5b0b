from sqlalchemy import Column, Integer, String, Text, Numeric, Date, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class Dividend(Base, TimestampMixin):
    __tablename__ = "dividends"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    investment_id = Column(Integer, ForeignKey("investments.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    ex_dividend_date = Column(Date, nullable=True)
    type = Column(String(20), nullable=False, default="DIVIDEND")  # DIVIDEND, JCP, INTEREST
    notes = Column(Text, nullable=True)

    investment = relationship("Investment", back_populates="dividends")
