"""
Scoring of transactions against planned entries.

A ``MatchScore`` combines four sub-scores in [0, 1]:

    category     0.4   same category or not
    amount       0.3   distance from the entry's amount range
    description  0.2   normalised edit-distance similarity
    date         0.1   distance from the entry's day range

Scoring never raises: a record that cannot be scored gets a zero score.
"""

import enum
import logging
import re
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein
from sqlalchemy.orm import Session

from budgetplan.config import settings
from budgetplan.models.planned_entry import EntryStatus, EntryType, PlannedEntry
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services import pattern_service, planned_entry_service
from budgetplan.services.entry_window import ExpectedWindow, normalize_entry
from budgetplan.services.transaction_service import get_transaction, list_transactions

logger = logging.getLogger(__name__)

WEIGHT_CATEGORY = 0.4
WEIGHT_AMOUNT = 0.3
WEIGHT_DESCRIPTION = 0.2
WEIGHT_DATE = 0.1

MATCH_THRESHOLDS = {
    "HIGH": settings.match_confidence_high,
    "MEDIUM": settings.match_confidence_medium,
    "LOW": settings.match_confidence_low,
}

# Shortest normalised text for which containment counts as very similar
MIN_CONTAINED_LENGTH = 4


class Confidence(str, enum.Enum):
    """Discretised total score."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"


@dataclass
class MatchScore:
    category_score: float
    amount_score: float
    description_score: float
    date_score: float
    total_score: float
    confidence: Confidence

    def to_dict(self) -> Dict:
        return asdict(self)


NO_MATCH = MatchScore(0.0, 0.0, 0.0, 0.0, 0.0, Confidence.NONE)


def confidence_for(total: float) -> Confidence:
    if total >= MATCH_THRESHOLDS["HIGH"]:
        return Confidence.HIGH
    if total >= MATCH_THRESHOLDS["MEDIUM"]:
        return Confidence.MEDIUM
    if total >= MATCH_THRESHOLDS["LOW"]:
        return Confidence.LOW
    return Confidence.NONE


def category_score(transaction, entry) -> float:
    if transaction.category_id is None:
        return 0.0
    return 1.0 if transaction.category_id == entry.category_id else 0.0


def amount_score(amount: Decimal, window: ExpectedWindow) -> float:
    """
    Score by relative distance to the amount range (zero inside it).

    Bands: within 5% -> at least 0.95, 10% -> 0.8, 20% -> 0.6, fading to 0
    at 50%. Continuous and non-increasing in the distance.
    """
    planned = window.amount_max
    amount = abs(Decimal(amount))
    if planned <= 0:
        return 1.0 if amount == 0 else 0.0

    if window.amount_min <= amount <= window.amount_max:
        return 1.0
    distance = min(abs(amount - window.amount_min), abs(amount - window.amount_max))
    relative = distance / planned

    if relative <= Decimal("0.05"):
        score = 1 - relative
    elif relative <= Decimal("0.10"):
        score = Decimal("0.95") - (relative - Decimal("0.05")) * 3
    elif relative <= Decimal("0.20"):
        score = Decimal("0.80") - (relative - Decimal("0.10")) * 2
    elif relative <= Decimal("0.50"):
        score = Decimal("0.60") - (relative - Decimal("0.20")) * 2
    else:
        score = Decimal(0)
    return float(max(score, Decimal(0)))


def date_score(transaction_date: date, window: ExpectedWindow,
               proximity_days: Optional[int] = None) -> float:
    """
    1.0 inside the day range, 0.05 less per day within the proximity
    tolerance, then fading to 0 over twelve more days. An entry without a
    day expectation scores 0.
    """
    if not window.has_day:
        return 0.0
    if proximity_days is None:
        proximity_days = settings.match_date_proximity_days

    start, end = window.clamped_days(transaction_date.year, transaction_date.month)
    day = transaction_date.day
    if start <= day <= end:
        return 1.0

    distance = start - day if day < start else day - end
    near = 1.0 - 0.05 * proximity_days
    if distance <= proximity_days:
        return 1.0 - 0.05 * distance
    return max(0.0, near * (1 - (distance - proximity_days) / 12))


def normalize_text(text: Optional[str]) -> str:
    return " ".join((text or "").lower().split())


def description_score(transaction, entry) -> float:
    """
    Similarity of the transaction's descriptions to the entry.

    A linked active pattern or a ``description_pattern`` that matches
    scores 1.0; an invalid ``description_pattern`` is treated as a literal
    substring.
    """
    candidates = [t for t in (transaction.description, transaction.original_description) if t]
    if not candidates:
        return 0.0

    pattern = entry.pattern
    if pattern is not None and pattern.is_active and pattern_service.matches_pattern(transaction, pattern):
        return 1.0

    if entry.description_pattern:
        try:
            regex = re.compile(entry.description_pattern, re.IGNORECASE)
            if any(regex.search(text) for text in candidates):
                return 1.0
        except re.error:
            needle = normalize_text(entry.description_pattern)
            if needle and any(needle in normalize_text(text) for text in candidates):
                return 1.0

    target = normalize_text(entry.description)
    if not target:
        return 0.0

    best = 0.0
    for text in candidates:
        normalized = normalize_text(text)
        similarity = Levenshtein.normalized_similarity(target, normalized)
        shorter = min(len(target), len(normalized))
        if shorter >= MIN_CONTAINED_LENGTH and (target in normalized or normalized in target):
            similarity = max(similarity, 0.9)
        best = max(best, similarity)
    return best


def score_match(transaction, entry) -> MatchScore:
    """Score one transaction against one planned entry."""
    try:
        window = normalize_entry(entry)
        scores = (
            category_score(transaction, entry),
            amount_score(transaction.amount, window),
            description_score(transaction, entry),
            date_score(transaction.transaction_date, window),
        )
    except Exception as e:
        logger.warning(f"Could not score transaction {getattr(transaction, 'id', None)} "
                       f"against planned entry {getattr(entry, 'id', None)}: {e}")
        return NO_MATCH

    category, amount, description, day = scores
    total = (
        category * WEIGHT_CATEGORY
        + amount * WEIGHT_AMOUNT
        + description * WEIGHT_DESCRIPTION
        + day * WEIGHT_DATE
    )
    total = round(total, 4)
    return MatchScore(
        category_score=category,
        amount_score=round(amount, 4),
        description_score=round(description, 4),
        date_score=round(day, 4),
        total_score=total,
        confidence=confidence_for(total),
    )


def _directions_agree(transaction, entry) -> bool:
    if transaction.transaction_type is None or entry.entry_type is None:
        return True
    is_credit = transaction.transaction_type == TransactionType.credit
    is_income = entry.entry_type == EntryType.income
    return is_credit == is_income


def suggest_matches(transaction, entries) -> List[Tuple[PlannedEntry, MatchScore]]:
    """
    Rank entries for a transaction, best first.

    Entries of the opposite direction (income vs. debit, expense vs. credit)
    are skipped, as are scores below the LOW threshold.
    """
    ranked = []
    for entry in entries:
        if not _directions_agree(transaction, entry):
            continue
        result = score_match(transaction, entry)
        if result.total_score >= MATCH_THRESHOLDS["LOW"]:
            ranked.append((entry, result))

    ranked.sort(key=lambda pair: pair[1].total_score, reverse=True)
    return ranked


# ---------------------------------------------------------------------------
# Database-backed operations
# ---------------------------------------------------------------------------

def _open_entries(db: Session, organization_id: int, month: int, year: int) -> List[PlannedEntry]:
    """Active entries of the month that are neither matched nor dismissed."""
    entries, status_by_entry = planned_entry_service.load_month_entries(db, organization_id, month, year)
    result = []
    for entry in entries:
        if not entry.is_active:
            continue
        status = planned_entry_service.stored_status(status_by_entry.get(entry.id))
        if status in (EntryStatus.matched, EntryStatus.dismissed):
            continue
        result.append(entry)
    return result


def get_match_suggestions(
    db: Session,
    organization_id: int,
    transaction_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None
) -> List[Tuple[PlannedEntry, MatchScore]]:
    """Ranked open planned entries for a transaction, in its own month by default."""
    transaction = get_transaction(db, organization_id, transaction_id)
    month = month or transaction.transaction_date.month
    year = year or transaction.transaction_date.year

    candidates = _open_entries(db, organization_id, month, year)
    return suggest_matches(transaction, candidates)


def auto_match_transaction(db: Session, organization_id: int, transaction_id: int) -> Optional[int]:
    """
    Match a transaction to its best entry when confidence is HIGH.

    Returns the matched entry id, or None when nothing was confident enough.
    """
    transaction = get_transaction(db, organization_id, transaction_id)
    if transaction.is_ignored:
        return None
    if planned_entry_service.get_planned_entry_for_transaction(db, organization_id, transaction.id):
        return None

    suggestions = get_match_suggestions(db, organization_id, transaction.id)
    if not suggestions:
        return None

    entry, best = suggestions[0]
    if best.confidence != Confidence.HIGH:
        return None

    month = transaction.transaction_date.month
    year = transaction.transaction_date.year
    planned_entry_service.match_entry(db, organization_id, entry.id, transaction.id, month, year)
    logger.info(f"Auto-matched transaction {transaction.id} to planned entry {entry.id} "
                f"(score {best.total_score})")
    return entry.id


def suggest_transactions_for_entry(
    db: Session,
    organization_id: int,
    entry_id: int,
    month: int,
    year: int
) -> List[Tuple[Transaction, MatchScore]]:
    """Ranked unmatched transactions of a month for one entry."""
    entry = planned_entry_service.get_planned_entry(db, organization_id, entry_id)
    matched_ids = planned_entry_service.matched_transaction_ids(db, organization_id)

    ranked = []
    for transaction in list_transactions(db, organization_id, month=month, year=year):
        if transaction.is_ignored or transaction.id in matched_ids:
            continue
        if not _directions_agree(transaction, entry):
            continue
        result = score_match(transaction, entry)
        if result.total_score >= MATCH_THRESHOLDS["LOW"]:
            ranked.append((transaction, result))

    ranked.sort(key=lambda pair: pair[1].total_score, reverse=True)
    return ranked
