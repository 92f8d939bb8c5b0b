from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, ForeignKey, Enum
from database import Base
import enum
from models.audit_mixin import TimestampMixin

class BillStatus(enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"

class BillReminder(Base, TimestampMixin):
    __tablename__ = "bill_reminders"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    recurrence = Column(String(10), nullable=False, default="NONE")  # NONE, WEEKLY, MONTHLY, YEARLY
    remind_days_before = Column(Integer, nullable=False, default=3)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    status = Column(Enum(BillStatus), default=BillStatus.PENDING, nullable=False)
    last_paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
