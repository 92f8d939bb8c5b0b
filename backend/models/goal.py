from sqlalchemy import Column, Integer, String, Text, Numeric, Date, DateTime, Enum, UniqueConstraint
from database import Base
import enum
from models.audit_mixin import TimestampMixin

class GoalStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"

class Goal(Base, TimestampMixin):
    __tablename__ = "goals"
    __table_args__ = (UniqueConstraint('tenant_id', 'name', name='_tenant_goal_name_uc'),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    target_amount = Column(Numeric(14, 2), nullable=False)
    current_amount = Column(Numeric(14, 2), nullable=False, default=0)
    target_date = Column(Date, nullable=False)
    category = Column(String(50), nullable=True)
    priority = Column(Integer, nullable=False, default=3)
    recurrence = Column(String(10), nullable=False, default="NONE")  # NONE, MONTHLY, YEARLY
    status = Column(Enum(GoalStatus), default=GoalStatus.ACTIVE, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
