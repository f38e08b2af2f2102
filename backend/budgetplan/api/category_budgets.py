"""
Category budget API endpoints.
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from budgetplan.dependencies import get_db, get_organization_id, get_today
from budgetplan.schemas.budget import (
    BudgetProgressResponse,
    BudgetSpendingResponse,
    CategoryBudgetCreate,
    CategoryBudgetResponse,
    CategoryBudgetUpdate,
    CopyBudgetsRequest,
    MonthlySnapshotResponse,
)
from budgetplan.services import budget_service, reconciliation_service

router = APIRouter(prefix="/category-budgets", tags=["category-budgets"])


@router.get("", response_model=list[CategoryBudgetResponse])
def list_category_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return budget_service.list_category_budgets(db, organization_id, month, year, category_id)


@router.post("", response_model=CategoryBudgetResponse, status_code=201)
def create_category_budget(
    budget: CategoryBudgetCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return budget_service.create_category_budget(db, organization_id, budget.model_dump())


@router.post("/copy", response_model=list[CategoryBudgetResponse], status_code=201)
def copy_category_budgets(
    request: CopyBudgetsRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Copy budgets of one month to categories that have none in another."""
    return budget_service.copy_category_budgets_from_month(
        db, organization_id,
        request.source_month, request.source_year,
        request.target_month, request.target_year,
    )


@router.get("/spending", response_model=BudgetSpendingResponse)
def get_month_spending(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Actual spending per category for a month."""
    return BudgetSpendingResponse(
        month=month,
        year=year,
        category_spending=reconciliation_service.get_category_spending(db, organization_id, month, year),
    )


@router.get("/snapshots", response_model=list[MonthlySnapshotResponse])
def get_monthly_snapshots(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return budget_service.get_monthly_snapshots(db, organization_id, month, year, category_id)


@router.get("/{budget_id}", response_model=CategoryBudgetResponse)
def get_category_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return budget_service.get_category_budget(db, organization_id, budget_id)


@router.patch("/{budget_id}", response_model=CategoryBudgetResponse)
def update_category_budget(
    budget_id: int,
    update: CategoryBudgetUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return budget_service.update_category_budget(
        db, organization_id, budget_id, update.model_dump(exclude_unset=True)
    )


@router.delete("/{budget_id}", status_code=204)
def delete_category_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    budget_service.delete_category_budget(db, organization_id, budget_id)
    return None


@router.post("/{budget_id}/consolidate", response_model=CategoryBudgetResponse)
def consolidate_category_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id),
    today: date = Depends(get_today)
):
    """Lock a budget whose month has ended."""
    return budget_service.consolidate_category_budget(db, organization_id, budget_id, today)


@router.get("/{budget_id}/progress", response_model=BudgetProgressResponse)
def get_budget_progress(
    budget_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id),
    today: date = Depends(get_today)
):
    progress = budget_service.get_budget_progress(db, organization_id, budget_id, today)
    return BudgetProgressResponse(**progress.to_dict())


@router.get("/{budget_id}/spending", response_model=BudgetSpendingResponse)
def get_budget_spending(
    budget_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return BudgetSpendingResponse(**budget_service.get_budget_spending(db, organization_id, budget_id))
