"""Tests for concurrent writers on the same month status."""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from budgetplan.config import settings
from budgetplan.database import Base
from budgetplan.errors import ConflictError
from budgetplan.models.account import Account, AccountType
from budgetplan.models.category import Category, CategoryType
from budgetplan.models.planned_entry import EntryStatus, EntryType, PlannedEntry, PlannedEntryStatus
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services import planned_entry_service as service

ORG_ID = settings.default_organization_id


@pytest.fixture
def two_sessions(tmp_path):
    """Two independent sessions on one file database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'budgetplan.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = Session(), Session()

    try:
        yield first, second
    finally:
        first.close()
        second.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded(two_sessions):
    """Two rent entries active in March 2024 and one rent payment."""
    db, _ = two_sessions
    account = Account(organization_id=ORG_ID, name="Checking", account_type=AccountType.checking)
    category = Category(organization_id=ORG_ID, name="Housing", category_type=CategoryType.expense)
    db.add_all([account, category])
    db.flush()

    entries = []
    for description in ("Rent", "Rent share"):
        entry = PlannedEntry(organization_id=ORG_ID, category_id=category.id, description=description,
                             amount=Decimal("1000.00"), expected_day=5, entry_type=EntryType.expense,
                             is_recurrent=False, is_active=True)
        db.add(entry)
        db.flush()
        db.add(PlannedEntryStatus(planned_entry_id=entry.id, month=3, year=2024, status=EntryStatus.pending))
        entries.append(entry)

    untouched = PlannedEntry(organization_id=ORG_ID, category_id=category.id, description="Parking",
                             amount=Decimal("80.00"), expected_day=5, entry_type=EntryType.expense,
                             is_recurrent=False, is_active=True)
    payment = Transaction(organization_id=ORG_ID, account_id=account.id, category_id=category.id,
                          transaction_date=date(2024, 3, 5), amount=Decimal("1000.00"),
                          transaction_type=TransactionType.debit, description="RENT",
                          original_description="RENT")
    db.add_all([untouched, payment])
    db.commit()
    return {
        "rent": entries[0].id,
        "share": entries[1].id,
        "untouched": untouched.id,
        "payment": payment.id,
    }


def interleave(monkeypatch, competitor):
    """Run ``competitor`` once, right after the next status lookup has read the database."""
    original = service._find_status
    state = {"done": False}

    def _find_status(db, entry_id, month, year):
        record = original(db, entry_id, month, year)
        if not state["done"]:
            state["done"] = True
            competitor()
        return record

    monkeypatch.setattr(service, "_find_status", _find_status)


class TestConcurrentStatusChanges:
    """The second writer to a status gets a ConflictError, never a server error."""

    def test_match_after_concurrent_dismiss_is_stale(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.dismiss_entry(first, ORG_ID, seeded["rent"], 3, 2024))

        with pytest.raises(ConflictError):
            service.match_entry(second, ORG_ID, seeded["rent"], seeded["payment"], 3, 2024)

        record = second.query(PlannedEntryStatus).filter(
            PlannedEntryStatus.planned_entry_id == seeded["rent"]
        ).one()
        assert record.status == EntryStatus.dismissed
        assert record.matched_transaction_id is None

    def test_same_transaction_matched_twice_concurrently(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.match_entry(
            first, ORG_ID, seeded["rent"], seeded["payment"], 3, 2024
        ))

        with pytest.raises(ConflictError):
            service.match_entry(second, ORG_ID, seeded["share"], seeded["payment"], 3, 2024)

        matched = second.query(PlannedEntryStatus).filter(
            PlannedEntryStatus.matched_transaction_id == seeded["payment"]
        ).all()
        assert [m.planned_entry_id for m in matched] == [seeded["rent"]]

    def test_first_dismiss_of_month_races(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.dismiss_entry(first, ORG_ID, seeded["untouched"], 3, 2024))

        with pytest.raises(ConflictError):
            service.dismiss_entry(second, ORG_ID, seeded["untouched"], 3, 2024)

        assert second.query(PlannedEntryStatus).filter(
            PlannedEntryStatus.planned_entry_id == seeded["untouched"]
        ).count() == 1

    def test_first_undismiss_of_month_races(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.dismiss_entry(first, ORG_ID, seeded["untouched"], 3, 2024))

        with pytest.raises(ConflictError):
            service.undismiss_entry(second, ORG_ID, seeded["untouched"], 3, 2024)

    def test_first_match_of_month_races(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.dismiss_entry(first, ORG_ID, seeded["untouched"], 3, 2024))

        with pytest.raises(ConflictError):
            service.match_entry(second, ORG_ID, seeded["untouched"], seeded["payment"], 3, 2024)

    def test_loser_session_is_usable_afterwards(self, two_sessions, seeded, monkeypatch):
        first, second = two_sessions
        interleave(monkeypatch, lambda: service.dismiss_entry(first, ORG_ID, seeded["rent"], 3, 2024))
        with pytest.raises(ConflictError):
            service.match_entry(second, ORG_ID, seeded["rent"], seeded["payment"], 3, 2024)

        record = service.match_entry(second, ORG_ID, seeded["share"], seeded["payment"], 3, 2024)
        assert record.status == EntryStatus.matched
