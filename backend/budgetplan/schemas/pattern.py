"""
Advanced pattern schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from budgetplan.schemas.common import Money


class PatternBase(BaseModel):
    description_pattern: str = Field(..., min_length=1, max_length=255)
    date_pattern: Optional[str] = Field(None, max_length=100)
    weekday_pattern: Optional[str] = Field(None, max_length=50)
    amount_min: Optional[Money] = None
    amount_max: Optional[Money] = None
    target_description: str = Field(..., min_length=1, max_length=255)
    target_category_id: int
    apply_retroactively: bool = False


class PatternCreate(PatternBase):
    pass


class PatternUpdate(BaseModel):
    description_pattern: Optional[str] = Field(None, min_length=1, max_length=255)
    date_pattern: Optional[str] = Field(None, max_length=100)
    weekday_pattern: Optional[str] = Field(None, max_length=50)
    amount_min: Optional[Money] = None
    amount_max: Optional[Money] = None
    target_description: Optional[str] = Field(None, min_length=1, max_length=255)
    target_category_id: Optional[int] = None
    is_active: Optional[bool] = None


class PatternResponse(PatternBase):
    id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PatternApplyResponse(BaseModel):
    updated_count: int
    total_checked: int
