"""
Service for planned entries and their per-month status.

Each (entry, month, year) has at most one ``PlannedEntryStatus`` row. Only
``pending``, ``matched`` and ``dismissed`` are stored; ``missed`` is derived
when the row is read, from the entry's day window and the current date.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from budgetplan.errors import ConflictError, NotFoundError, ValidationError
from budgetplan.models.category import Category
from budgetplan.models.pattern import AdvancedPattern
from budgetplan.models.planned_entry import EntryStatus, EntryType, PlannedEntry, PlannedEntryStatus
from budgetplan.models.transaction import TransactionType
from budgetplan.services.entry_window import normalize_entry
from budgetplan.services.money import parse_amount, quantize, validate_month
from budgetplan.services.savings_goal_service import check_goal
from budgetplan.services.transaction_service import get_transaction

logger = logging.getLogger(__name__)

ENTRY_FIELDS = (
    "category_id",
    "description",
    "description_pattern",
    "amount",
    "amount_min",
    "amount_max",
    "expected_day",
    "expected_day_start",
    "expected_day_end",
    "entry_type",
    "is_recurrent",
    "pattern_id",
    "savings_goal_id",
    "is_active",
)
AMOUNT_FIELDS = ("amount", "amount_min", "amount_max")
DAY_FIELDS = ("expected_day", "expected_day_start", "expected_day_end")
REQUIRED_FIELDS = ("category_id", "description", "entry_type", "is_recurrent", "is_active")


@dataclass
class MonthlyEntry:
    """A planned entry together with its status for one month."""
    entry: PlannedEntry
    month: int
    year: int
    status: EntryStatus
    record: Optional[PlannedEntryStatus] = None


def stored_status(record: Optional[PlannedEntryStatus]) -> EntryStatus:
    """Engine view of a stored status; no row and ``scheduled`` mean pending."""
    if record is None or record.status in (EntryStatus.scheduled, EntryStatus.missed):
        return EntryStatus.pending
    return EntryStatus(record.status)


def derive_status(stored: EntryStatus, entry, month: int, year: int, today: date) -> EntryStatus:
    """
    Read-time status of an entry in a month.

    A pending entry becomes missed once its expected day range has passed,
    or once the whole month has passed when it has no day expectation.
    """
    if stored in (EntryStatus.matched, EntryStatus.dismissed):
        return stored

    current = (today.year, today.month)
    if (year, month) < current:
        return EntryStatus.missed
    if (year, month) > current:
        return EntryStatus.pending

    window = normalize_entry(entry)
    if window.has_day:
        _, day_end = window.clamped_days(year, month)
        if today.day > day_end:
            return EntryStatus.missed

    return EntryStatus.pending


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _validate(db: Session, organization_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
    """Check a complete set of entry fields and normalise amounts."""
    description = (values.get("description") or "").strip()
    if not description:
        raise ValidationError("Description is required")
    values["description"] = description

    category = db.query(Category).filter(
        Category.id == values.get("category_id"),
        Category.organization_id == organization_id
    ).first()
    if not category:
        raise ValidationError(f"Category {values.get('category_id')} not found")

    if values.get("pattern_id") is not None:
        pattern = db.query(AdvancedPattern).filter(
            AdvancedPattern.id == values["pattern_id"],
            AdvancedPattern.organization_id == organization_id
        ).first()
        if not pattern:
            raise ValidationError(f"Pattern {values['pattern_id']} not found")

    check_goal(db, organization_id, values.get("savings_goal_id"))

    try:
        values["entry_type"] = EntryType(values.get("entry_type") or EntryType.expense)
    except ValueError:
        raise ValidationError(f"Invalid entry type: {values.get('entry_type')}")

    for field in AMOUNT_FIELDS:
        if values.get(field) is not None:
            values[field] = parse_amount(values[field])
            if values[field] < 0:
                raise ValidationError(f"{field} must not be negative")

    if all(values.get(field) is None for field in AMOUNT_FIELDS):
        raise ValidationError("A planned amount or amount range is required")
    if values.get("amount_min") is not None and values.get("amount_max") is not None:
        if values["amount_min"] > values["amount_max"]:
            raise ValidationError("amount_min must not exceed amount_max")

    for field in DAY_FIELDS:
        day = values.get(field)
        if day is not None and not 1 <= day <= 31:
            raise ValidationError(f"{field} must be between 1 and 31")
    if values.get("expected_day_start") is not None and values.get("expected_day_end") is not None:
        if values["expected_day_start"] > values["expected_day_end"]:
            raise ValidationError("expected_day_start must not exceed expected_day_end")

    if values.get("description_pattern"):
        try:
            re.compile(values["description_pattern"])
        except re.error as e:
            raise ValidationError(f"Invalid description_pattern: {e}")

    window = normalize_entry(_FieldView(values))
    if window.amount_max <= 0:
        raise ValidationError("Planned amount must be positive")

    return values


class _FieldView:
    """Attribute access over a dict of entry fields, for normalize_entry."""

    def __init__(self, values: Dict[str, Any]):
        self._values = values

    def __getattr__(self, name):
        return self._values.get(name)


def get_planned_entry(db: Session, organization_id: int, entry_id: int) -> PlannedEntry:
    entry = db.query(PlannedEntry).filter(
        PlannedEntry.id == entry_id,
        PlannedEntry.organization_id == organization_id
    ).first()
    if not entry:
        raise NotFoundError(f"Planned entry {entry_id} not found")
    return entry


def list_planned_entries(
    db: Session,
    organization_id: int,
    category_id: Optional[int] = None,
    entry_type: Optional[EntryType] = None,
    is_recurrent: Optional[bool] = None,
    include_inactive: bool = False,
) -> List[PlannedEntry]:
    query = db.query(PlannedEntry).filter(PlannedEntry.organization_id == organization_id)

    if category_id is not None:
        query = query.filter(PlannedEntry.category_id == category_id)
    if entry_type is not None:
        query = query.filter(PlannedEntry.entry_type == entry_type)
    if is_recurrent is not None:
        query = query.filter(PlannedEntry.is_recurrent == is_recurrent)
    if not include_inactive:
        query = query.filter(PlannedEntry.is_active == True)

    return query.order_by(PlannedEntry.id).all()


def create_planned_entry(
    db: Session,
    organization_id: int,
    data: Dict[str, Any],
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> PlannedEntry:
    """
    Create a planned entry.

    When ``month`` and ``year`` are given the entry is activated for that
    month straight away (a pending status row is created), which is how
    one-off entries are attached to a month.
    """
    if month is not None and year is not None:
        validate_month(month, year)
    values = _validate(db, organization_id, {k: data.get(k) for k in ENTRY_FIELDS if k in data})

    entry = PlannedEntry(organization_id=organization_id, **values)
    db.add(entry)
    db.flush()

    if month is not None and year is not None:
        db.add(PlannedEntryStatus(planned_entry_id=entry.id, month=month, year=year,
                                  status=EntryStatus.pending))

    db.commit()
    db.refresh(entry)
    return entry


def update_planned_entry(
    db: Session,
    organization_id: int,
    entry_id: int,
    changes: Dict[str, Any]
) -> PlannedEntry:
    """Partial update. Month statuses are left untouched."""
    entry = get_planned_entry(db, organization_id, entry_id)

    merged = {field: getattr(entry, field) for field in ENTRY_FIELDS}
    merged.update({
        k: v for k, v in changes.items()
        if k in ENTRY_FIELDS and not (k in REQUIRED_FIELDS and v is None)
    })
    values = _validate(db, organization_id, merged)

    for field in ENTRY_FIELDS:
        setattr(entry, field, values.get(field))

    db.commit()
    db.refresh(entry)
    return entry


def delete_planned_entry(db: Session, organization_id: int, entry_id: int) -> None:
    """Soft delete; status history is kept."""
    entry = get_planned_entry(db, organization_id, entry_id)
    entry.is_active = False
    db.commit()


# ---------------------------------------------------------------------------
# Month view
# ---------------------------------------------------------------------------

def load_month_entries(
    db: Session,
    organization_id: int,
    month: int,
    year: int
) -> Tuple[List[PlannedEntry], Dict[int, PlannedEntryStatus]]:
    """
    Entries that belong to a month and their status rows.

    A month holds every entry with a status row in it (inactive ones only
    when matched), plus active recurring templates that have neither a row
    nor a generated child for the month.
    """
    records = db.query(PlannedEntryStatus).join(PlannedEntry).filter(
        PlannedEntry.organization_id == organization_id,
        PlannedEntryStatus.month == month,
        PlannedEntryStatus.year == year
    ).all()
    status_by_entry = {record.planned_entry_id: record for record in records}

    entries = []
    instantiated_parents = set()
    for record in records:
        entry = record.planned_entry
        if entry.is_active or record.status == EntryStatus.matched:
            entries.append(entry)
        if entry.parent_entry_id is not None:
            instantiated_parents.add(entry.parent_entry_id)

    templates = db.query(PlannedEntry).filter(
        PlannedEntry.organization_id == organization_id,
        PlannedEntry.is_recurrent == True,
        PlannedEntry.is_active == True
    ).all()
    for template in templates:
        if template.id not in status_by_entry and template.id not in instantiated_parents:
            entries.append(template)

    entries.sort(key=lambda e: e.id)
    return entries, status_by_entry


def get_planned_entries_for_month(
    db: Session,
    organization_id: int,
    month: int,
    year: int,
    today: Optional[date] = None
) -> List[MonthlyEntry]:
    """Entries of a month, each annotated with its read-time status."""
    validate_month(month, year)
    today = today or date.today()

    entries, status_by_entry = load_month_entries(db, organization_id, month, year)

    result = []
    for entry in entries:
        record = status_by_entry.get(entry.id)
        status = derive_status(stored_status(record), entry, month, year, today)
        result.append(MonthlyEntry(entry=entry, month=month, year=year, status=status, record=record))
    return result


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def _find_status(db: Session, entry_id: int, month: int, year: int) -> Optional[PlannedEntryStatus]:
    return db.query(PlannedEntryStatus).filter(
        PlannedEntryStatus.planned_entry_id == entry_id,
        PlannedEntryStatus.month == month,
        PlannedEntryStatus.year == year
    ).first()


def _get_or_create_status(db: Session, entry: PlannedEntry, month: int, year: int) -> PlannedEntryStatus:
    """
    Activate the entry for the month if it was never touched.

    Two writers activating the same month race on the unique
    (entry, month, year) constraint; the loser gets a ConflictError.
    """
    record = _find_status(db, entry.id, month, year)
    if record is None:
        record = PlannedEntryStatus(planned_entry_id=entry.id, month=month, year=year,
                                    status=EntryStatus.pending)
        db.add(record)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Planned entry {entry.id} was modified concurrently")
    return record


def _commit(db: Session, conflict_message: str) -> None:
    """Commit a status change; concurrent writers lose with a ConflictError."""
    try:
        db.commit()
    except (IntegrityError, StaleDataError):
        db.rollback()
        raise ConflictError(conflict_message)


def match_entry(
    db: Session,
    organization_id: int,
    entry_id: int,
    transaction_id: int,
    month: int,
    year: int
) -> PlannedEntryStatus:
    """
    Link a transaction to a planned entry for a month.

    Records the transaction's own amount as ``matched_amount`` and gives an
    uncategorised transaction the entry's category. A transaction not yet
    saved towards a goal is linked to the entry's savings goal. Matching the
    same pair again is a no-op.
    """
    validate_month(month, year)
    entry = get_planned_entry(db, organization_id, entry_id)
    if not entry.is_active:
        raise ValidationError(f"Planned entry {entry_id} is inactive")
    transaction = get_transaction(db, organization_id, transaction_id)
    if transaction.is_ignored:
        raise ValidationError(f"Transaction {transaction_id} is ignored and cannot be matched")

    existing = db.query(PlannedEntryStatus).filter(
        PlannedEntryStatus.matched_transaction_id == transaction.id
    ).first()
    if existing is not None:
        if (existing.planned_entry_id, existing.month, existing.year) == (entry.id, month, year):
            return existing
        raise ConflictError(
            f"Transaction {transaction.id} is already matched to planned entry {existing.planned_entry_id}"
        )

    record = _get_or_create_status(db, entry, month, year)

    if record.status == EntryStatus.matched:
        raise ConflictError(
            f"Planned entry {entry.id} is already matched to transaction {record.matched_transaction_id}"
        )
    if record.status == EntryStatus.dismissed:
        raise ConflictError(f"Planned entry {entry.id} is dismissed for {month}/{year}; undismiss it first")

    record.status = EntryStatus.matched
    record.matched_transaction_id = transaction.id
    record.matched_amount = quantize(transaction.amount)
    record.matched_at = datetime.now(timezone.utc)
    record.dismissed_at = None
    record.dismissal_reason = None

    if transaction.category_id is None:
        transaction.category_id = entry.category_id
    if transaction.savings_goal_id is None and entry.savings_goal_id is not None:
        transaction.savings_goal_id = entry.savings_goal_id

    _commit(db, f"Transaction {transaction.id} or planned entry {entry.id} was matched concurrently")
    db.refresh(record)
    logger.info(f"Matched planned entry {entry.id} to transaction {transaction.id} for {month}/{year}")
    return record


def unmatch_entry(db: Session, organization_id: int, entry_id: int, month: int, year: int) -> PlannedEntryStatus:
    """Return a matched entry to pending. The transaction is kept."""
    validate_month(month, year)
    entry = get_planned_entry(db, organization_id, entry_id)
    record = _find_status(db, entry.id, month, year)
    if record is None:
        raise NotFoundError(f"Planned entry {entry.id} has no status for {month}/{year}")
    if record.status != EntryStatus.matched:
        raise ConflictError(f"Planned entry {entry.id} is not matched for {month}/{year}")

    transaction_id = record.matched_transaction_id
    record.status = EntryStatus.pending
    record.matched_transaction_id = None
    record.matched_amount = None
    record.matched_at = None

    _commit(db, f"Planned entry {entry.id} was modified concurrently")
    db.refresh(record)
    logger.info(f"Unmatched planned entry {entry.id} from transaction {transaction_id} for {month}/{year}")
    return record


def dismiss_entry(
    db: Session,
    organization_id: int,
    entry_id: int,
    month: int,
    year: int,
    reason: Optional[str] = None
) -> PlannedEntryStatus:
    """Dismiss a pending or missed entry. Dismissing twice is a no-op."""
    validate_month(month, year)
    entry = get_planned_entry(db, organization_id, entry_id)
    record = _get_or_create_status(db, entry, month, year)

    if record.status == EntryStatus.dismissed:
        db.commit()
        return record
    if record.status == EntryStatus.matched:
        raise ConflictError(f"Planned entry {entry.id} is matched for {month}/{year}; unmatch it first")

    record.status = EntryStatus.dismissed
    record.dismissed_at = datetime.now(timezone.utc)
    record.dismissal_reason = reason

    _commit(db, f"Planned entry {entry.id} was modified concurrently")
    db.refresh(record)
    logger.info(f"Dismissed planned entry {entry.id} for {month}/{year}")
    return record


def undismiss_entry(db: Session, organization_id: int, entry_id: int, month: int, year: int) -> PlannedEntryStatus:
    """Return a dismissed entry to pending. Undismissing a pending entry is a no-op."""
    validate_month(month, year)
    entry = get_planned_entry(db, organization_id, entry_id)
    record = _get_or_create_status(db, entry, month, year)

    if record.status == EntryStatus.matched:
        raise ConflictError(f"Planned entry {entry.id} is matched for {month}/{year}")
    if record.status != EntryStatus.dismissed:
        db.commit()
        return record

    record.status = EntryStatus.pending
    record.dismissed_at = None
    record.dismissal_reason = None

    _commit(db, f"Planned entry {entry.id} was modified concurrently")
    db.refresh(record)
    logger.info(f"Undismissed planned entry {entry.id} for {month}/{year}")
    return record


def generate_monthly_instance(
    db: Session,
    organization_id: int,
    parent_id: int,
    month: int,
    year: int
) -> PlannedEntry:
    """
    Create the month's child entry of a recurring template.

    Returns the existing child when the month was already generated.
    """
    validate_month(month, year)
    parent = get_planned_entry(db, organization_id, parent_id)
    if not parent.is_recurrent:
        raise ValidationError(f"Planned entry {parent.id} is not recurrent")
    if not parent.is_active:
        raise ValidationError(f"Planned entry {parent.id} is inactive")

    existing = db.query(PlannedEntry).join(PlannedEntryStatus).filter(
        PlannedEntry.parent_entry_id == parent.id,
        PlannedEntryStatus.month == month,
        PlannedEntryStatus.year == year
    ).first()
    if existing:
        return existing

    if _find_status(db, parent.id, month, year) is not None:
        raise ConflictError(f"Planned entry {parent.id} is already tracked directly for {month}/{year}")

    copied = {field: getattr(parent, field) for field in ENTRY_FIELDS}
    copied.update(is_recurrent=False, is_active=True)
    child = PlannedEntry(organization_id=organization_id, parent_entry_id=parent.id, **copied)
    db.add(child)
    db.flush()
    db.add(PlannedEntryStatus(planned_entry_id=child.id, month=month, year=year,
                              status=EntryStatus.pending))

    _commit(db, f"Planned entry {parent.id} was generated concurrently for {month}/{year}")
    db.refresh(child)
    logger.info(f"Generated instance {child.id} of planned entry {parent.id} for {month}/{year}")
    return child


def get_planned_entry_for_transaction(
    db: Session,
    organization_id: int,
    transaction_id: int
) -> Optional[MonthlyEntry]:
    """The entry a transaction is matched to, if any."""
    transaction = get_transaction(db, organization_id, transaction_id)
    record = db.query(PlannedEntryStatus).filter(
        PlannedEntryStatus.matched_transaction_id == transaction.id
    ).first()
    if record is None:
        return None
    return MonthlyEntry(
        entry=record.planned_entry,
        month=record.month,
        year=record.year,
        status=EntryStatus.matched,
        record=record,
    )


def matched_transaction_ids(db: Session, organization_id: int) -> set:
    """Ids of every transaction currently matched to an entry of the organization."""
    rows = db.query(PlannedEntryStatus.matched_transaction_id).join(PlannedEntry).filter(
        PlannedEntry.organization_id == organization_id,
        PlannedEntryStatus.matched_transaction_id.isnot(None)
    ).all()
    return {row[0] for row in rows}


def save_transaction_as_entry(
    db: Session,
    organization_id: int,
    transaction_id: int,
    is_recurrent: bool = False,
    expected_day: Optional[int] = None,
) -> MonthlyEntry:
    """
    Create a planned entry from a categorised transaction.

    The entry copies the transaction's category, description, amount,
    direction and savings goal, and is matched to the transaction in the
    transaction's month so the money is not counted twice. ``expected_day``
    defaults to the transaction's day of month.
    """
    transaction = get_transaction(db, organization_id, transaction_id)
    if transaction.category_id is None:
        raise ValidationError(f"Transaction {transaction.id} has no category; categorise it first")
    if transaction.is_ignored:
        raise ValidationError(f"Transaction {transaction.id} is ignored and cannot be matched")

    existing = db.query(PlannedEntryStatus).filter(
        PlannedEntryStatus.matched_transaction_id == transaction.id
    ).first()
    if existing is not None:
        raise ConflictError(
            f"Transaction {transaction.id} is already matched to planned entry {existing.planned_entry_id}"
        )

    values = _validate(db, organization_id, {
        "category_id": transaction.category_id,
        "description": transaction.description,
        "amount": transaction.amount,
        "expected_day": expected_day or transaction.transaction_date.day,
        "entry_type": EntryType.income if transaction.transaction_type == TransactionType.credit
        else EntryType.expense,
        "is_recurrent": is_recurrent,
        "is_active": True,
        "savings_goal_id": transaction.savings_goal_id,
    })
    entry = PlannedEntry(organization_id=organization_id, **values)
    db.add(entry)
    db.flush()

    month, year = transaction.transaction_date.month, transaction.transaction_date.year
    record = PlannedEntryStatus(
        planned_entry_id=entry.id,
        month=month,
        year=year,
        status=EntryStatus.matched,
        matched_transaction_id=transaction.id,
        matched_amount=quantize(transaction.amount),
        matched_at=datetime.now(timezone.utc),
    )
    db.add(record)

    _commit(db, f"Transaction {transaction.id} was matched concurrently")
    db.refresh(entry)
    db.refresh(record)
    logger.info(f"Saved transaction {transaction.id} as planned entry {entry.id}")
    return MonthlyEntry(entry=entry, month=month, year=year, status=EntryStatus.matched, record=record)
