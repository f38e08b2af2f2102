"""
Savings goal schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

from budgetplan.models.savings_goal import GoalType
from budgetplan.schemas.common import Money
from budgetplan.schemas.transaction import TransactionResponse


class SavingsGoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    goal_type: GoalType = GoalType.reserve
    target_amount: Money = Field(..., gt=0)
    initial_amount: Money = Field(default=0, ge=0)
    due_date: Optional[date] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=7)
    notes: Optional[str] = None


class SavingsGoalCreate(SavingsGoalBase):
    pass


class SavingsGoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    goal_type: Optional[GoalType] = None
    target_amount: Optional[Money] = Field(None, gt=0)
    initial_amount: Optional[Money] = Field(None, ge=0)
    due_date: Optional[date] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=7)
    notes: Optional[str] = None


class SavingsGoalResponse(SavingsGoalBase):
    id: int
    is_active: bool
    is_completed: bool
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContributionRequest(BaseModel):
    """Positive to add savings, negative to withdraw."""
    amount: Money


class MonthlyContribution(BaseModel):
    month: int
    year: int
    amount: Money


class GoalProgressResponse(BaseModel):
    goal_id: int
    name: str
    goal_type: GoalType
    target_amount: Money
    initial_amount: Money
    contributed_amount: Money
    current_amount: Money
    remaining_amount: Money
    progress_percent: Money
    due_date: Optional[date] = None
    months_remaining: Optional[int] = None
    monthly_target: Optional[Money] = None
    is_on_track: bool
    is_completed: bool
    monthly_contributions: list[MonthlyContribution]


class GoalSummaryResponse(BaseModel):
    goal: SavingsGoalResponse
    progress: GoalProgressResponse
    transactions: list[TransactionResponse]
