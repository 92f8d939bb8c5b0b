from sqlalchemy import Column, Integer, String, Text, Numeric, Date, ForeignKey, Enum, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
import enum
from models.audit_mixin import AuditMixin

class TransactionType(enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"

class TransactionStatus(enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REVERSED = "REVERSED"

class Transaction(Base, AuditMixin):
    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'external_id', name='_tenant_external_id_uc'),
        CheckConstraint('amount > 0', name='check_transaction_amount_positive'),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False, index=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.COMPLETED, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    reference = Column(String(100), nullable=True)
    external_id = Column(String(100), nullable=True)
    tags = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    reversal_of_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    installment_number = Column(Integer, nullable=True)
    installment_total = Column(Integer, nullable=True)
    installment_group = Column(String(36), nullable=True, index=True)

    # Relationships
    # live entries only; voided ones keep deleted_at
    entries = relationship(
        "Entry",
        primaryjoin="and_(Entry.transaction_id == Transaction.id, Entry.deleted_at.is_(None))",
        order_by="Entry.id",
        viewonly=True,
    )
    from_account = relationship("Account", foreign_keys=[from_account_id])
    to_account = relationship("Account", foreign_keys=[to_account_id])
    category = relationship("Category")
