"""
Planned entry and per-month status models.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, Text, Enum, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
import enum
from budgetplan.database import Base


class EntryType(str, enum.Enum):
    """Planned entry direction."""
    expense = "expense"
    income = "income"


class EntryStatus(str, enum.Enum):
    """Per-month state of a planned entry."""
    pending = "pending"
    matched = "matched"
    missed = "missed"
    dismissed = "dismissed"
    scheduled = "scheduled"  # Display alias of pending


class PlannedEntry(Base):
    """An expected expense or income, one-off or recurring."""

    __tablename__ = "planned_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    description = Column(String(255), nullable=False)
    description_pattern = Column(String(255), nullable=True)

    # Either a single amount or a min/max range
    amount = Column(Numeric(12, 2), nullable=True)
    amount_min = Column(Numeric(12, 2), nullable=True)
    amount_max = Column(Numeric(12, 2), nullable=True)

    # Either a single day or an inclusive day range
    expected_day = Column(Integer, nullable=True)
    expected_day_start = Column(Integer, nullable=True)
    expected_day_end = Column(Integer, nullable=True)

    entry_type = Column(Enum(EntryType), default=EntryType.expense, nullable=False)
    is_recurrent = Column(Boolean, default=False, nullable=False)
    parent_entry_id = Column(Integer, ForeignKey("planned_entries.id"), nullable=True)
    pattern_id = Column(Integer, ForeignKey("patterns.id"), nullable=True)
    savings_goal_id = Column(Integer, ForeignKey("savings_goals.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    category = relationship("Category")
    pattern = relationship("AdvancedPattern")
    savings_goal = relationship("SavingsGoal")
    parent = relationship("PlannedEntry", remote_side=[id], backref="children")
    statuses = relationship("PlannedEntryStatus", back_populates="planned_entry")


class PlannedEntryStatus(Base):
    """State of one planned entry in one month."""

    __tablename__ = "planned_entry_statuses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    planned_entry_id = Column(Integer, ForeignKey("planned_entries.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(Enum(EntryStatus), default=EntryStatus.pending, nullable=False)
    matched_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    matched_amount = Column(Numeric(12, 2), nullable=True)
    matched_at = Column(DateTime, nullable=True)
    dismissed_at = Column(DateTime, nullable=True)
    dismissal_reason = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    planned_entry = relationship("PlannedEntry", back_populates="statuses")
    matched_transaction = relationship("Transaction")

    __table_args__ = (
        UniqueConstraint("planned_entry_id", "month", "year", name="uq_entry_status_month"),
        UniqueConstraint("matched_transaction_id", name="uq_entry_status_transaction"),
    )

    # Concurrent writers to the same record fail with StaleDataError
    __mapper_args__ = {"version_id_col": version}
