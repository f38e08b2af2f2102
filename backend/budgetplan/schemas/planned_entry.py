"""
Planned entry schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from budgetplan.models.planned_entry import EntryStatus, EntryType
from budgetplan.schemas.common import Money
from budgetplan.schemas.pattern import PatternResponse


class PlannedEntryBase(BaseModel):
    category_id: int
    description: str = Field(..., min_length=1, max_length=255)
    description_pattern: Optional[str] = Field(None, max_length=255)
    amount: Optional[Money] = None
    amount_min: Optional[Money] = None
    amount_max: Optional[Money] = None
    expected_day: Optional[int] = Field(None, ge=1, le=31)
    expected_day_start: Optional[int] = Field(None, ge=1, le=31)
    expected_day_end: Optional[int] = Field(None, ge=1, le=31)
    entry_type: EntryType = EntryType.expense
    is_recurrent: bool = False
    pattern_id: Optional[int] = None
    savings_goal_id: Optional[int] = None


class PlannedEntryCreate(PlannedEntryBase):
    """A month/year pair activates the entry for that month on creation."""
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None


class PlannedEntryUpdate(BaseModel):
    category_id: Optional[int] = None
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    description_pattern: Optional[str] = Field(None, max_length=255)
    amount: Optional[Money] = None
    amount_min: Optional[Money] = None
    amount_max: Optional[Money] = None
    expected_day: Optional[int] = Field(None, ge=1, le=31)
    expected_day_start: Optional[int] = Field(None, ge=1, le=31)
    expected_day_end: Optional[int] = Field(None, ge=1, le=31)
    entry_type: Optional[EntryType] = None
    is_recurrent: Optional[bool] = None
    pattern_id: Optional[int] = None
    savings_goal_id: Optional[int] = None
    is_active: Optional[bool] = None


class PlannedEntryResponse(PlannedEntryBase):
    id: int
    parent_entry_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PlannedEntryStatusResponse(BaseModel):
    planned_entry_id: int
    month: int
    year: int
    status: EntryStatus
    matched_transaction_id: Optional[int] = None
    matched_amount: Optional[Money] = None
    matched_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    dismissal_reason: Optional[str] = None

    class Config:
        from_attributes = True


class PlannedEntryWithStatus(BaseModel):
    """An entry annotated with its read-time status for one month."""
    entry: PlannedEntryResponse
    month: int
    year: int
    status: EntryStatus
    linked_pattern: Optional[PatternResponse] = None
    matched_transaction_id: Optional[int] = None
    matched_amount: Optional[Money] = None
    matched_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    dismissal_reason: Optional[str] = None


class MatchRequest(BaseModel):
    transaction_id: int
    month: int = Field(..., ge=1, le=12)
    year: int


class MonthRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int


class DismissRequest(MonthRequest):
    reason: Optional[str] = None


class SaveAsEntryRequest(BaseModel):
    """Turn a transaction into a planned entry; the day defaults to the transaction's."""
    is_recurrent: bool = False
    expected_day: Optional[int] = Field(None, ge=1, le=31)
