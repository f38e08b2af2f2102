"""
Transaction database model.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Numeric, Text, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
import enum
from budgetplan.database import Base


class TransactionType(str, enum.Enum):
    """Direction of the money movement. Amounts are always positive."""
    debit = "debit"
    credit = "credit"


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    savings_goal_id = Column(Integer, ForeignKey("savings_goals.id"), nullable=True)
    transaction_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(Enum(TransactionType), default=TransactionType.debit, nullable=False)
    description = Column(String(255), nullable=False)
    original_description = Column(Text, nullable=False)  # As imported, never rewritten
    is_ignored = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")
    savings_goal = relationship("SavingsGoal", back_populates="transactions")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_org_date", "organization_id", "transaction_date"),
        Index("idx_transaction_category", "category_id"),
    )
