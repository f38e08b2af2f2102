"""Service for advanced patterns: regex rules that rewrite transactions."""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models.category import Category
from budgetplan.models.pattern import AdvancedPattern
from budgetplan.models.transaction import Transaction
from budgetplan.services.money import parse_amount

logger = logging.getLogger(__name__)

REGEX_FIELDS = ("description_pattern", "date_pattern", "weekday_pattern")
PATTERN_FIELDS = REGEX_FIELDS + (
    "amount_min",
    "amount_max",
    "target_description",
    "target_category_id",
    "apply_retroactively",
    "is_active",
)


def _compile(text: str, field: str) -> "re.Pattern":
    try:
        return re.compile(text, re.IGNORECASE)
    except re.error as e:
        raise ValidationError(f"Invalid regular expression in {field}: {e}")


def _validate(db: Session, organization_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
    """Check a full set of pattern fields and normalise amounts."""
    if not values.get("description_pattern"):
        raise ValidationError("description_pattern is required")
    if not values.get("target_description"):
        raise ValidationError("target_description is required")

    for field in REGEX_FIELDS:
        if values.get(field):
            _compile(values[field], field)

    has_min = values.get("amount_min") is not None
    has_max = values.get("amount_max") is not None
    if has_min != has_max:
        raise ValidationError("amount_min and amount_max must be given together")
    if has_min:
        values["amount_min"] = parse_amount(values["amount_min"])
        values["amount_max"] = parse_amount(values["amount_max"])
        if values["amount_min"] < 0:
            raise ValidationError("amount_min must not be negative")
        if values["amount_min"] > values["amount_max"]:
            raise ValidationError("amount_min must not exceed amount_max")

    category = db.query(Category).filter(
        Category.id == values.get("target_category_id"),
        Category.organization_id == organization_id
    ).first()
    if not category:
        raise ValidationError(f"Category {values.get('target_category_id')} not found")

    return values


def get_pattern(db: Session, organization_id: int, pattern_id: int) -> AdvancedPattern:
    pattern = db.query(AdvancedPattern).filter(
        AdvancedPattern.id == pattern_id,
        AdvancedPattern.organization_id == organization_id
    ).first()
    if not pattern:
        raise NotFoundError(f"Pattern {pattern_id} not found")
    return pattern


def list_patterns(db: Session, organization_id: int, include_inactive: bool = False) -> List[AdvancedPattern]:
    query = db.query(AdvancedPattern).filter(AdvancedPattern.organization_id == organization_id)
    if not include_inactive:
        query = query.filter(AdvancedPattern.is_active == True)
    return query.order_by(AdvancedPattern.id).all()


def create_pattern(db: Session, organization_id: int, data: Dict[str, Any]) -> AdvancedPattern:
    """
    Create a pattern. When ``apply_retroactively`` is set, existing
    transactions are rewritten before returning.
    """
    values = _validate(db, organization_id, dict(data))
    pattern = AdvancedPattern(
        organization_id=organization_id,
        **{k: v for k, v in values.items() if k in PATTERN_FIELDS}
    )
    db.add(pattern)
    db.commit()
    db.refresh(pattern)

    if pattern.apply_retroactively:
        apply_pattern_retroactively(db, organization_id, pattern.id)

    return pattern


def update_pattern(db: Session, organization_id: int, pattern_id: int, changes: Dict[str, Any]) -> AdvancedPattern:
    pattern = get_pattern(db, organization_id, pattern_id)

    merged = {field: getattr(pattern, field) for field in PATTERN_FIELDS}
    merged.update(changes)
    values = _validate(db, organization_id, merged)

    for field in PATTERN_FIELDS:
        setattr(pattern, field, values.get(field))

    db.commit()
    db.refresh(pattern)
    return pattern


def delete_pattern(db: Session, organization_id: int, pattern_id: int) -> None:
    """Deactivate a pattern. Planned entries may still reference it."""
    pattern = get_pattern(db, organization_id, pattern_id)
    pattern.is_active = False
    db.commit()


def _weekday_digit(transaction: Transaction) -> str:
    # Python weekday() is Monday=0; patterns use Sunday=0
    return str((transaction.transaction_date.weekday() + 1) % 7)


def matches_pattern(transaction: Transaction, pattern: AdvancedPattern) -> bool:
    """
    True when every sub-pattern present on ``pattern`` matches.

    Absent sub-patterns always match. A stored regex that no longer
    compiles makes the pattern match nothing.
    """
    try:
        description = transaction.original_description or transaction.description or ""
        if not re.search(pattern.description_pattern, description, re.IGNORECASE):
            return False

        if pattern.date_pattern:
            if not re.search(pattern.date_pattern, transaction.transaction_date.isoformat()):
                return False

        if pattern.weekday_pattern:
            if not re.search(pattern.weekday_pattern, _weekday_digit(transaction)):
                return False
    except re.error as e:
        logger.warning(f"Pattern {pattern.id} has an invalid regular expression: {e}")
        return False

    if pattern.amount_min is not None and pattern.amount_max is not None:
        amount = abs(transaction.amount)
        if amount < pattern.amount_min or amount > pattern.amount_max:
            return False

    return True


def _rewrite(transaction: Transaction, pattern: AdvancedPattern) -> None:
    transaction.description = pattern.target_description
    transaction.category_id = pattern.target_category_id


def apply_pattern_retroactively(db: Session, organization_id: int, pattern_id: int) -> Dict[str, int]:
    """Rewrite every existing transaction of the organization that matches."""
    pattern = get_pattern(db, organization_id, pattern_id)

    transactions = db.query(Transaction).filter(
        Transaction.organization_id == organization_id
    ).all()

    updated = 0
    for transaction in transactions:
        if matches_pattern(transaction, pattern):
            _rewrite(transaction, pattern)
            updated += 1

    db.commit()
    logger.info(f"Pattern {pattern.id} applied retroactively: {updated}/{len(transactions)} transactions updated")

    return {"updated_count": updated, "total_checked": len(transactions)}


def apply_patterns_to_transaction(
    db: Session,
    organization_id: int,
    transaction: Transaction
) -> Optional[AdvancedPattern]:
    """Apply the first active matching pattern. Does not commit."""
    for pattern in list_patterns(db, organization_id):
        if matches_pattern(transaction, pattern):
            _rewrite(transaction, pattern)
            return pattern
    return None
