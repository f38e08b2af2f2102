"""
Normalised view of a planned entry's amount and day expectations.

Entries store either a single ``amount``/``expected_day`` or a range.
Everything downstream works on ranges only.
"""

from decimal import Decimal
from typing import NamedTuple, Optional

from budgetplan.services.money import ZERO, days_in_month, safe_amount


class ExpectedWindow(NamedTuple):
    amount_min: Decimal
    amount_max: Decimal
    day_start: Optional[int]
    day_end: Optional[int]

    @property
    def has_day(self) -> bool:
        return self.day_start is not None

    def clamped_days(self, year: int, month: int):
        """Day range limited to the length of the given month."""
        last = days_in_month(year, month)
        return min(self.day_start, last), min(self.day_end, last)


def normalize_entry(entry) -> ExpectedWindow:
    """Build the range view of an entry, preferring explicit ranges."""
    context = f"planned entry {getattr(entry, 'id', None)}"

    if entry.amount_min is not None or entry.amount_max is not None:
        low = entry.amount_min if entry.amount_min is not None else entry.amount_max
        high = entry.amount_max if entry.amount_max is not None else entry.amount_min
        amount_min = safe_amount(low, context)
        amount_max = safe_amount(high, context)
    elif entry.amount is not None:
        amount_min = amount_max = safe_amount(entry.amount, context)
    else:
        amount_min = amount_max = ZERO

    if amount_min > amount_max:
        amount_min, amount_max = amount_max, amount_min

    if entry.expected_day_start is not None or entry.expected_day_end is not None:
        start = entry.expected_day_start or entry.expected_day_end
        end = entry.expected_day_end or entry.expected_day_start
        day_start, day_end = min(start, end), max(start, end)
    elif entry.expected_day is not None:
        day_start = day_end = entry.expected_day
    else:
        day_start = day_end = None

    return ExpectedWindow(amount_min, amount_max, day_start, day_end)


def planned_amount(entry) -> Decimal:
    """Amount used by budgets: the top of the range."""
    return normalize_entry(entry).amount_max
