"""
Advanced pattern model for regex-based transaction rewriting.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from budgetplan.database import Base


class AdvancedPattern(Base):
    """Rewrites description and category of transactions it matches."""

    __tablename__ = "patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=False, index=True)
    description_pattern = Column(String(255), nullable=False)
    date_pattern = Column(String(100), nullable=True)  # Over YYYY-MM-DD
    weekday_pattern = Column(String(50), nullable=True)  # Over 0 (Sunday) .. 6
    amount_min = Column(Numeric(12, 2), nullable=True)
    amount_max = Column(Numeric(12, 2), nullable=True)
    target_description = Column(String(255), nullable=False)
    target_category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    apply_retroactively = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    target_category = relationship("Category")
