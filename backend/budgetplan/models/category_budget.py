"""
Category budget and monthly snapshot models.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, Boolean, DateTime, Numeric, Enum, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
import enum
from budgetplan.database import Base


class BudgetType(str, enum.Enum):
    """How the planned amount of a category budget is obtained."""
    fixed = "fixed"
    calculated = "calculated"
    maior = "maior"  # Greater of planned and actual


class CategoryBudget(Base):
    """Budget target for one category in one month."""

    __tablename__ = "category_budgets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    budget_type = Column(Enum(BudgetType), default=BudgetType.fixed, nullable=False)
    planned_amount = Column(Numeric(12, 2), nullable=False, default=0)
    is_consolidated = Column(Boolean, default=False, nullable=False)
    consolidated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    category = relationship("Category")

    __table_args__ = (
        UniqueConstraint("organization_id", "category_id", "month", "year", name="uq_category_budget_month"),
    )


class MonthlySnapshot(Base):
    """Planned versus actual figures frozen when a budget is consolidated."""

    __tablename__ = "monthly_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    category_budget_id = Column(Integer, ForeignKey("category_budgets.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    budget_type = Column(Enum(BudgetType), nullable=False)
    planned_amount = Column(Numeric(12, 2), nullable=False)
    actual_amount = Column(Numeric(12, 2), nullable=False)
    variance_percent = Column(Numeric(8, 2), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    category_budget = relationship("CategoryBudget")

    __table_args__ = (
        Index("idx_snapshot_org_month", "organization_id", "year", "month"),
    )
