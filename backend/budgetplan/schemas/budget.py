"""
Category budget, snapshot and income planning schemas.
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime

from budgetplan.models.category_budget import BudgetType
from budgetplan.schemas.common import Money
from budgetplan.services.budget_service import BudgetStatus
from budgetplan.services.income_planning_service import AllocationStatus


class CategoryBudgetBase(BaseModel):
    category_id: int
    month: int = Field(..., ge=1, le=12)
    year: int
    budget_type: BudgetType = BudgetType.fixed
    planned_amount: Money = Field(default=0, ge=0)


class CategoryBudgetCreate(CategoryBudgetBase):
    pass


class CategoryBudgetUpdate(BaseModel):
    budget_type: Optional[BudgetType] = None
    planned_amount: Optional[Money] = Field(None, ge=0)


class CategoryBudgetResponse(CategoryBudgetBase):
    id: int
    is_consolidated: bool
    consolidated_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CopyBudgetsRequest(BaseModel):
    source_month: int = Field(..., ge=1, le=12)
    source_year: int
    target_month: int = Field(..., ge=1, le=12)
    target_year: int


class BudgetProgressResponse(BaseModel):
    budget_id: Optional[int]
    category_id: int
    month: int
    year: int
    budget_type: BudgetType
    planned_amount: Money
    effective_target: Money
    actual_spent: Money
    days_in_month: int
    current_day: int
    progress_percentage: Money
    expected_at_current_day: Money
    variance: Money
    variance_percent: Money
    projection_end_of_month: Money
    projected_variance_at_end: Money
    status: BudgetStatus


class BudgetSpendingResponse(BaseModel):
    budget_id: Optional[int] = None
    month: int
    year: int
    category_spending: Dict[int, Money]


class MonthlySnapshotResponse(BaseModel):
    id: int
    category_budget_id: int
    category_id: int
    month: int
    year: int
    budget_type: BudgetType
    planned_amount: Money
    actual_amount: Money
    variance_percent: Money
    created_at: datetime

    class Config:
        from_attributes = True


class IncomePlanningResponse(BaseModel):
    month: int
    year: int
    total_income: Money
    total_planned_expense: Money
    unallocated: Money
    unallocated_percent: Money
    threshold_percent: Money
    status: AllocationStatus
    message: str
