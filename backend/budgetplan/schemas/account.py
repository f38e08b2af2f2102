"""
Account Pydantic schemas for API validation.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from budgetplan.models.account import AccountType


class AccountBase(BaseModel):
    """Base account schema."""
    name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountType


class AccountCreate(AccountBase):
    """Schema for creating an account."""
    pass


class AccountResponse(AccountBase):
    """Schema for account response."""
    id: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AccountList(BaseModel):
    """Schema for listing accounts."""
    items: list[AccountResponse]
    total: int
