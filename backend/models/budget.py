from sqlalchemy import Column, Integer, String, Text, Numeric, Date, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    period = Column(String(10), nullable=False, default="MONTHLY")  # MONTHLY, YEARLY
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    alert_threshold = Column(Integer, nullable=False, default=80)
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(Text, nullable=True)

    category = relationship("Category")
