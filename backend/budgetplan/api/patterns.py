"""
Advanced pattern API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from budgetplan.dependencies import get_db, get_organization_id
from budgetplan.schemas.pattern import (
    PatternApplyResponse,
    PatternCreate,
    PatternResponse,
    PatternUpdate,
)
from budgetplan.services import pattern_service

router = APIRouter(prefix="/patterns", tags=["patterns"])


@router.get("", response_model=list[PatternResponse])
def list_patterns(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return pattern_service.list_patterns(db, organization_id, include_inactive)


@router.post("", response_model=PatternResponse, status_code=201)
def create_pattern(
    pattern: PatternCreate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Create a pattern; with apply_retroactively existing transactions are rewritten."""
    return pattern_service.create_pattern(db, organization_id, pattern.model_dump())


@router.get("/{pattern_id}", response_model=PatternResponse)
def get_pattern(
    pattern_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return pattern_service.get_pattern(db, organization_id, pattern_id)


@router.patch("/{pattern_id}", response_model=PatternResponse)
def update_pattern(
    pattern_id: int,
    update: PatternUpdate,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    return pattern_service.update_pattern(
        db, organization_id, pattern_id, update.model_dump(exclude_unset=True)
    )


@router.delete("/{pattern_id}", status_code=204)
def delete_pattern(
    pattern_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    pattern_service.delete_pattern(db, organization_id, pattern_id)
    return None


@router.post("/{pattern_id}/apply", response_model=PatternApplyResponse)
def apply_pattern(
    pattern_id: int,
    db: Session = Depends(get_db),
    organization_id: int = Depends(get_organization_id)
):
    """Re-scan existing transactions with the pattern."""
    return pattern_service.apply_pattern_retroactively(db, organization_id, pattern_id)
