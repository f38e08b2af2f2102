"""
Savings goal model.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Numeric, Text, Enum
from sqlalchemy.orm import relationship
import enum
from budgetplan.database import Base


class GoalType(str, enum.Enum):
    """Kind of savings goal."""
    reserve = "reserve"  # Money set aside for a dated purchase or emergency fund
    investment = "investment"  # Open-ended accumulation, no due date required


class SavingsGoal(Base):
    """A target amount built up from an initial balance and linked transactions."""

    __tablename__ = "savings_goals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    goal_type = Column(Enum(GoalType), default=GoalType.reserve, nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    initial_amount = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=True)
    icon = Column(String(50), nullable=True)
    color = Column(String(7), nullable=True)  # Hex color
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="savings_goal")
