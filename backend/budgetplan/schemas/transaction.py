"""
Transaction schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

from budgetplan.models.transaction import TransactionType
from budgetplan.schemas.common import Money


class TransactionBase(BaseModel):
    transaction_date: date
    amount: Money = Field(..., gt=0)
    transaction_type: TransactionType = TransactionType.debit
    description: str = Field(..., min_length=1, max_length=255)
    category_id: Optional[int] = None
    savings_goal_id: Optional[int] = None
    notes: Optional[str] = None
    is_ignored: bool = False


class TransactionCreate(TransactionBase):
    account_id: int
    original_description: Optional[str] = None


class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    category_id: Optional[int] = None
    savings_goal_id: Optional[int] = None
    notes: Optional[str] = None
    is_ignored: Optional[bool] = None


class TransactionResponse(TransactionBase):
    id: int
    account_id: int
    original_description: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
