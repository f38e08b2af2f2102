"""
Actual spending per category for a month.

Each unit of money is counted once: a planned entry contributes its
matched amount (or its planned amount while still pending/missed), and a
transaction contributes its own amount only when no entry of any month is
matched to it. Dismissed entries contribute nothing.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from budgetplan.errors import report_integrity_issue
from budgetplan.models.category import Category, CategoryType
from budgetplan.models.planned_entry import EntryStatus, EntryType, PlannedEntry, PlannedEntryStatus
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services import planned_entry_service
from budgetplan.services.entry_window import planned_amount
from budgetplan.services.money import ZERO, month_bounds, quantize, safe_amount, validate_month
from budgetplan.services.transaction_service import list_transactions

logger = logging.getLogger(__name__)


@dataclass
class MonthData:
    """Everything the engine needs for one month of one organization."""
    month: int
    year: int
    entries: List[PlannedEntry] = field(default_factory=list)
    statuses: List[PlannedEntryStatus] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    # Matched in any month, so a transaction matched to a neighbouring month is not recounted
    matched_transaction_ids: Set[int] = field(default_factory=set)


class _CategoryTypes:
    """Category type lookup that reports unknown ids once and treats them as expense."""

    def __init__(self, categories: Iterable[Category]):
        self._types = {c.id: c.category_type for c in categories}
        self._reported = set()

    def is_income(self, category_id: Optional[int], source: str) -> bool:
        if category_id is None:
            return False
        if category_id not in self._types:
            if category_id not in self._reported:
                self._reported.add(category_id)
                report_integrity_issue(
                    logger, f"{source} references unknown category {category_id}; counted as Unknown expense"
                )
            return False
        return self._types[category_id] == CategoryType.income


def compute_actual_spending(
    month: int,
    year: int,
    planned_entries: Iterable[PlannedEntry],
    transactions: Iterable[Transaction],
    categories: Iterable[Category],
    statuses: Iterable[PlannedEntryStatus] = (),
    income: bool = False,
    matched_transaction_ids: Iterable[int] = (),
) -> Dict[Optional[int], Decimal]:
    """
    Map category id to the month's actual amount.

    With ``income=False`` only expense entries and debits in non-income
    categories are counted. With ``income=True`` only income entries (or
    entries in income categories) and credits outside expense categories
    are counted; uncategorised credits are keyed under ``None``.

    ``matched_transaction_ids`` holds transactions matched in any month. A
    transaction dated in this month but matched to another month's entry
    is already counted there and is skipped here.
    """
    category_types = _CategoryTypes(categories)
    statuses = list(statuses)
    status_by_entry = {
        s.planned_entry_id: s for s in statuses if s.month == month and s.year == year
    }

    # 1. Transactions already represented by a matched entry, of this month or another
    matched_ids = set(matched_transaction_ids)
    matched_ids.update(
        s.matched_transaction_id
        for s in statuses
        if s.status == EntryStatus.matched and s.matched_transaction_id is not None
    )

    spending: Dict[Optional[int], Decimal] = defaultdict(lambda: ZERO)

    # 2. Planned entry contributions
    for entry in planned_entries:
        record = status_by_entry.get(entry.id)
        status = planned_entry_service.stored_status(record)
        if status == EntryStatus.dismissed:
            continue

        source = f"Planned entry {entry.id}"
        is_income_entry = (
            entry.entry_type == EntryType.income
            or category_types.is_income(entry.category_id, source)
        )
        if is_income_entry != income:
            continue

        if status == EntryStatus.matched:
            amount = safe_amount(record.matched_amount, f"{source} matched amount")
        else:
            amount = planned_amount(entry)
        spending[entry.category_id] = quantize(spending[entry.category_id] + amount)

    # 3. Transactions not already counted through an entry
    start, end = month_bounds(year, month)
    wanted_type = TransactionType.credit if income else TransactionType.debit
    for transaction in transactions:
        if transaction.is_ignored or transaction.id in matched_ids:
            continue
        if not start <= transaction.transaction_date <= end:
            continue
        if transaction.transaction_type != wanted_type:
            continue

        source = f"Transaction {transaction.id}"
        if income:
            if transaction.category_id is not None and not category_types.is_income(transaction.category_id, source):
                continue
        else:
            if transaction.category_id is None:
                continue
            if category_types.is_income(transaction.category_id, source):
                continue

        amount = safe_amount(transaction.amount, source)
        spending[transaction.category_id] = quantize(spending[transaction.category_id] + amount)

    return dict(spending)


def load_month_data(db: Session, organization_id: int, month: int, year: int) -> MonthData:
    validate_month(month, year)
    entries, status_by_entry = planned_entry_service.load_month_entries(db, organization_id, month, year)
    categories = db.query(Category).filter(Category.organization_id == organization_id).all()
    return MonthData(
        month=month,
        year=year,
        entries=entries,
        statuses=list(status_by_entry.values()),
        transactions=list_transactions(db, organization_id, month=month, year=year),
        categories=categories,
        matched_transaction_ids=planned_entry_service.matched_transaction_ids(db, organization_id),
    )


def get_category_spending(db: Session, organization_id: int, month: int, year: int) -> Dict[int, Decimal]:
    """Expense spending per category for a month."""
    data = load_month_data(db, organization_id, month, year)
    return compute_actual_spending(
        month, year, data.entries, data.transactions, data.categories, data.statuses,
        matched_transaction_ids=data.matched_transaction_ids,
    )

