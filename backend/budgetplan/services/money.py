"""
Decimal and calendar helpers.

Amounts cross the API boundary as strings and are handled as ``Decimal``
internally, rounded half-up to two places at every accumulation step.
"""

import calendar
import logging
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Tuple

from budgetplan.errors import ValidationError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_amount(value: Any) -> Decimal:
    """
    Parse a decimal amount from a string, int or Decimal.

    ``None`` parses to zero. Floats are rejected so binary rounding errors
    never reach stored amounts.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"Amount must be a decimal string, got {type(value).__name__}")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError("Amount must not be empty")
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"Invalid amount: {value!r}")
    else:
        raise ValidationError(f"Unsupported amount type: {type(value).__name__}")

    if not parsed.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return quantize(parsed)


def safe_amount(value: Any, context: str = "") -> Decimal:
    """Parse an amount for aggregation, treating malformed input as zero."""
    try:
        return parse_amount(value)
    except ValidationError as e:
        logger.warning(f"Treating malformed amount as zero ({context}): {e.message}")
        return ZERO


def quantize(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Serialize an amount with exactly two decimal places."""
    return f"{quantize(value):.2f}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move ``delta`` months forward (or back) and return ``(year, month)``."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def validate_month(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month}")
    if not 1900 <= year <= 9999:
        raise ValidationError(f"Invalid year: {year}")
