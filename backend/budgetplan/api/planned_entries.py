"""
Planned entry API endpoints.
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from budgetplan.dependencies import get_db, get_organization_id, get_today
from budgetplan.models.planned_entry import EntryType
from budgetplan.schemas.matching import MatchScoreResponse, TransactionSuggestion
from budgetplan.schemas.pattern import PatternResponse
from budgetplan.schemas.planned_entry import (
    DismissRequest,
    MatchRequest,
    MonthRequest,
    PlannedEntryCreate,
    PlannedEntryResponse,
    PlannedEntryStatusResponse,
    PlannedEntryUpdate,
    PlannedEntryWithStatus,
)
from budgetplan.schemas.transaction import TransactionResponse
from budgetplan.services import matching_service, planned_entry_service
from budgetplan.services.planned_entry_service import MonthlyEntry

router = APIRouter(prefix="/planned-entries", tags=["planned-entries"])


def to_entry_with_status(monthly: MonthlyEntry) -> PlannedEntryWithStatus:
    record = monthly.record
    return PlannedEntryWithStatus(
        entry=PlannedEntryResponse.model_validate(monthly.entry),
        linked_pattern=PatternResponse.model_validate(monthly.entry.pattern) if monthly.entry.pattern else None,
        month=monthly.month,
        year=monthly.year,
        status=monthly.status,
        matched_transaction_id=record.matched_transaction_id if record else None,
        matched_amount=record.matched_amount if record else None,
        matched_at=record.matched_at if record else None,
        dismissed_at=record.dismissed_at if record else None,
        dismissal_reason=record.dismissal_reason if record else None,
    )


@router.get("", response_model=list[PlannedEntryResponse])
def list_planned_entries(
    category_id: Optional[int] = None,
    entry_type: Optional[EntryType] = None,
    is_recurrent: Optional[bool] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """List planned entry definitions."""
    return planned_entry_service.list_planned_entries(
        db, organization_id,
        category_id=category_id,
        entry_type=entry_type,
        is_recurrent=is_recurrent,
        include_inactive=include_inactive,
    )


@router.post("", response_model=PlannedEntryResponse, status_code=201)
def create_planned_entry(
    entry: PlannedEntryCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a planned entry, optionally activated for a month."""
    data = entry.model_dump(exclude_none=True, exclude={"month", "year"})
    return planned_entry_service.create_planned_entry(
        db, organization_id, data, month=entry.month, year=entry.year
    )


@router.get("/month", response_model=list[PlannedEntryWithStatus])
def get_planned_entries_for_month(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id),
    today: date = Depends(get_today)
):
    """Entries of a month with their status (missed is derived from today's date)."""
    monthly = planned_entry_service.get_planned_entries_for_month(db, organization_id, month, year, today)
    return [to_entry_with_status(m) for m in monthly]


@router.get("/{entry_id}", response_model=PlannedEntryResponse)
def get_planned_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return planned_entry_service.get_planned_entry(db, organization_id, entry_id)


@router.patch("/{entry_id}", response_model=PlannedEntryResponse)
def update_planned_entry(
    entry_id: int,
    update: PlannedEntryUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return planned_entry_service.update_planned_entry(
        db, organization_id, entry_id, update.model_dump(exclude_unset=True)
    )


@router.delete("/{entry_id}", status_code=204)
def delete_planned_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Deactivate a planned entry; its month history is kept."""
    planned_entry_service.delete_planned_entry(db, organization_id, entry_id)
    return None


@router.post("/{entry_id}/match", response_model=PlannedEntryStatusResponse)
def match_planned_entry(
    entry_id: int,
    request: MatchRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Link a transaction to the entry for a month."""
    return planned_entry_service.match_entry(
        db, organization_id, entry_id, request.transaction_id, request.month, request.year
    )


@router.post("/{entry_id}/unmatch", response_model=PlannedEntryStatusResponse)
def unmatch_planned_entry(
    entry_id: int,
    request: MonthRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return planned_entry_service.unmatch_entry(db, organization_id, entry_id, request.month, request.year)


@router.post("/{entry_id}/dismiss", response_model=PlannedEntryStatusResponse)
def dismiss_planned_entry(
    entry_id: int,
    request: DismissRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return planned_entry_service.dismiss_entry(
        db, organization_id, entry_id, request.month, request.year, request.reason
    )


@router.post("/{entry_id}/undismiss", response_model=PlannedEntryStatusResponse)
def undismiss_planned_entry(
    entry_id: int,
    request: MonthRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return planned_entry_service.undismiss_entry(db, organization_id, entry_id, request.month, request.year)


@router.post("/{entry_id}/generate", response_model=PlannedEntryResponse, status_code=201)
def generate_monthly_instance(
    entry_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create the month's instance of a recurring entry."""
    return planned_entry_service.generate_monthly_instance(db, organization_id, entry_id, month, year)


@router.get("/{entry_id}/suggestions", response_model=list[TransactionSuggestion])
def suggest_transactions(
    entry_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Unmatched transactions of the month ranked against the entry."""
    suggestions = matching_service.suggest_transactions_for_entry(db, organization_id, entry_id, month, year)
    return [
        TransactionSuggestion(
            transaction=TransactionResponse.model_validate(transaction),
            score=MatchScoreResponse(**score.to_dict())
        )
        for transaction, score in suggestions
    ]
