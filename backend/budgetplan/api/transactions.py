"""
Transaction API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from budgetplan.dependencies import get_db, get_organization_id
from budgetplan.schemas.matching import AutoMatchResponse, EntrySuggestion, MatchScoreResponse
from budgetplan.schemas.planned_entry import PlannedEntryResponse, PlannedEntryWithStatus, SaveAsEntryRequest
from budgetplan.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionListResponse
)
from budgetplan.api.planned_entries import to_entry_with_status
from budgetplan.services import matching_service, planned_entry_service, transaction_service

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """List transactions, optionally for one account and month."""
    transactions = transaction_service.list_transactions(
        db, organization_id, account_id=account_id, month=month, year=year, category_id=category_id
    )
    return TransactionListResponse(
        items=[TransactionResponse.model_validate(t) for t in transactions],
        total=len(transactions)
    )


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    transaction: TransactionCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a manual transaction. Active patterns are applied to it."""
    return transaction_service.create_transaction(db, organization_id, transaction.model_dump())


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Get a single transaction"""
    return transaction_service.get_transaction(db, organization_id, transaction_id)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    update: TransactionUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Update category, description, notes, the ignored flag or the savings goal"""
    return transaction_service.update_transaction(
        db, organization_id, transaction_id, update.model_dump(exclude_unset=True)
    )


@router.get("/{transaction_id}/match-suggestions", response_model=list[EntrySuggestion])
def get_match_suggestions(
    transaction_id: int,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Planned entries ranked by how well they match the transaction"""
    suggestions = matching_service.get_match_suggestions(db, organization_id, transaction_id, month, year)
    return [
        EntrySuggestion(
            entry=PlannedEntryResponse.model_validate(entry),
            score=MatchScoreResponse(**score.to_dict())
        )
        for entry, score in suggestions
    ]


@router.post("/{transaction_id}/auto-match", response_model=AutoMatchResponse)
def auto_match_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Match the transaction to its best planned entry when confidence is high"""
    entry_id = matching_service.auto_match_transaction(db, organization_id, transaction_id)
    return AutoMatchResponse(matched=entry_id is not None, planned_entry_id=entry_id)


@router.get("/{transaction_id}/planned-entry", response_model=Optional[PlannedEntryWithStatus])
def get_planned_entry_for_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """The planned entry the transaction is matched to, or null"""
    monthly = planned_entry_service.get_planned_entry_for_transaction(db, organization_id, transaction_id)
    if monthly is None:
        return None
    return to_entry_with_status(monthly)


@router.post("/{transaction_id}/save-as-entry", response_model=PlannedEntryWithStatus, status_code=201)
def save_transaction_as_entry(
    transaction_id: int,
    request: SaveAsEntryRequest,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a planned entry from the transaction, already matched to it"""
    monthly = planned_entry_service.save_transaction_as_entry(
        db, organization_id, transaction_id,
        is_recurrent=request.is_recurrent,
        expected_day=request.expected_day,
    )
    return to_entry_with_status(monthly)
