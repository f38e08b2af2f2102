"""
Match suggestion schemas.
"""

from pydantic import BaseModel
from typing import Optional

from budgetplan.services.matching_service import Confidence
from budgetplan.schemas.planned_entry import PlannedEntryResponse
from budgetplan.schemas.transaction import TransactionResponse


class MatchScoreResponse(BaseModel):
    category_score: float
    amount_score: float
    description_score: float
    date_score: float
    total_score: float
    confidence: Confidence


class EntrySuggestion(BaseModel):
    entry: PlannedEntryResponse
    score: MatchScoreResponse


class TransactionSuggestion(BaseModel):
    transaction: TransactionResponse
    score: MatchScoreResponse


class AutoMatchResponse(BaseModel):
    matched: bool
    planned_entry_id: Optional[int] = None
