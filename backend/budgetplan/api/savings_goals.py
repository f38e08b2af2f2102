"""
Savings goal API endpoints.
"""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from budgetplan.dependencies import get_db, get_organization_id, get_today
from budgetplan.models.savings_goal import GoalType
from budgetplan.schemas.savings_goal import (
    ContributionRequest,
    GoalProgressResponse,
    GoalSummaryResponse,
    SavingsGoalCreate,
    SavingsGoalResponse,
    SavingsGoalUpdate,
)
from budgetplan.schemas.transaction import TransactionResponse
from budgetplan.services import savings_goal_service

router = APIRouter(prefix="/savings-goals", tags=["savings-goals"])


@router.get("", response_model=list[SavingsGoalResponse])
def list_savings_goals(
    goal_type: Optional[GoalType] = None,
    is_completed: Optional[bool] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """List goals, soonest due first."""
    return savings_goal_service.list_goals(
        db, organization_id,
        goal_type=goal_type,
        is_completed=is_completed,
        include_inactive=include_inactive,
    )


@router.post("", response_model=SavingsGoalResponse, status_code=201)
def create_savings_goal(
    goal: SavingsGoalCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return savings_goal_service.create_goal(db, organization_id, goal.model_dump())


@router.get("/{goal_id}", response_model=SavingsGoalResponse)
def get_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return savings_goal_service.get_goal(db, organization_id, goal_id)


@router.patch("/{goal_id}", response_model=SavingsGoalResponse)
def update_savings_goal(
    goal_id: int,
    update: SavingsGoalUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return savings_goal_service.update_goal(
        db, organization_id, goal_id, update.model_dump(exclude_unset=True)
    )


@router.delete("/{goal_id}", status_code=204)
def delete_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    savings_goal_service.delete_goal(db, organization_id, goal_id)
    return None


@router.post("/{goal_id}/complete", response_model=SavingsGoalResponse)
def complete_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return savings_goal_service.complete_goal(db, organization_id, goal_id)


@router.post("/{goal_id}/reopen", response_model=SavingsGoalResponse)
def reopen_savings_goal(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return savings_goal_service.reopen_goal(db, organization_id, goal_id)


@router.post("/{goal_id}/contributions", response_model=SavingsGoalResponse)
def add_contribution(
    goal_id: int,
    contribution: ContributionRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Record money saved outside tracked accounts, or withdraw with a negative amount."""
    return savings_goal_service.add_contribution(db, organization_id, goal_id, contribution.amount)


@router.get("/{goal_id}/progress", response_model=GoalProgressResponse)
def get_goal_progress(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id),
    today: date = Depends(get_today)
):
    progress = savings_goal_service.get_goal_progress(db, organization_id, goal_id, today)
    return GoalProgressResponse(**progress.to_dict())


@router.get("/{goal_id}/summary", response_model=GoalSummaryResponse)
def get_goal_summary(
    goal_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id),
    today: date = Depends(get_today)
):
    """Goal, progress and linked transactions in one response."""
    summary = savings_goal_service.get_goal_summary(db, organization_id, goal_id, today)
    return GoalSummaryResponse(
        goal=SavingsGoalResponse.model_validate(summary["goal"]),
        progress=GoalProgressResponse(**summary["progress"].to_dict()),
        transactions=[TransactionResponse.model_validate(t) for t in summary["transactions"]],
    )
