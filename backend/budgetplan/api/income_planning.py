"""
Income planning API endpoint.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budgetplan.dependencies import get_db, get_organization_id
from budgetplan.schemas.budget import IncomePlanningResponse
from budgetplan.services import income_planning_service

router = APIRouter(prefix="/income-planning", tags=["income-planning"])


@router.get("", response_model=IncomePlanningResponse)
def get_income_planning(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Compare the month's income with its planned expenses."""
    report = income_planning_service.get_income_planning(db, organization_id, month, year)
    return IncomePlanningResponse(**report.to_dict())
