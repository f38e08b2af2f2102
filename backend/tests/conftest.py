"""Shared test fixtures."""

import os

# Keep the app's own engine off disk; tests use the db_session engine below
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import date, datetime
from decimal import Decimal

from budgetplan.config import settings
from budgetplan.database import Base
from budgetplan.dependencies import get_db, get_today
from budgetplan.main import app
from budgetplan.models.account import Account, AccountType
from budgetplan.models.category import Category, CategoryType
from budgetplan.models.pattern import AdvancedPattern
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.models.planned_entry import PlannedEntry, PlannedEntryStatus, EntryStatus, EntryType
from budgetplan.models.savings_goal import GoalType, SavingsGoal

ORG_ID = settings.default_organization_id
OTHER_ORG_ID = ORG_ID + 1

# Date the API sees as "today"
TODAY = date(2024, 3, 15)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database and date overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_account(db_session):
    """Create a sample account."""
    account = Account(organization_id=ORG_ID, name="Test Checking", account_type=AccountType.checking)
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def expense_category(db_session):
    """Create an expense category."""
    category = Category(
        organization_id=ORG_ID,
        name="Groceries",
        category_type=CategoryType.expense,
        color="#22c55e",
        icon="shopping-cart",
        is_system=True
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def second_expense_category(db_session):
    """Create another expense category."""
    category = Category(organization_id=ORG_ID, name="Utilities", category_type=CategoryType.expense)
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def income_category(db_session):
    """Create an income category."""
    category = Category(
        organization_id=ORG_ID,
        name="Salary",
        category_type=CategoryType.income,
        color="#10b981",
        icon="briefcase"
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def landlord_pattern(db_session, expense_category):
    """An active pattern for rent transfers to the landlord."""
    pattern = AdvancedPattern(
        organization_id=ORG_ID,
        description_pattern="LANDLORD",
        target_description="Rent",
        target_category_id=expense_category.id,
    )
    db_session.add(pattern)
    db_session.commit()
    db_session.refresh(pattern)
    return pattern


@pytest.fixture
def make_transaction(db_session, sample_account, expense_category):
    """Factory for persisted transactions; defaults to a groceries debit."""
    def _make(**overrides):
        values = {
            "organization_id": ORG_ID,
            "account_id": sample_account.id,
            "category_id": expense_category.id,
            "transaction_date": date(2024, 3, 10),
            "amount": Decimal("100.00"),
            "transaction_type": TransactionType.debit,
            "description": "SUPERMARKET",
            "original_description": None,
            "is_ignored": False,
        }
        values.update(overrides)
        if values["original_description"] is None:
            values["original_description"] = values["description"]
        txn = Transaction(**values)
        db_session.add(txn)
        db_session.commit()
        db_session.refresh(txn)
        return txn
    return _make


@pytest.fixture
def make_entry(db_session, expense_category):
    """Factory for persisted planned entries.

    ``month``/``year`` activate the entry with a pending status row.
    """
    def _make(month=None, year=None, **overrides):
        values = {
            "organization_id": ORG_ID,
            "category_id": expense_category.id,
            "description": "Groceries",
            "amount": Decimal("500.00"),
            "expected_day": 10,
            "entry_type": EntryType.expense,
            "is_recurrent": False,
            "is_active": True,
        }
        values.update(overrides)
        entry = PlannedEntry(**values)
        db_session.add(entry)
        db_session.flush()
        if month is not None:
            db_session.add(PlannedEntryStatus(
                planned_entry_id=entry.id, month=month, year=year, status=EntryStatus.pending
            ))
        db_session.commit()
        db_session.refresh(entry)
        return entry
    return _make


@pytest.fixture
def sample_transaction(make_transaction):
    """A groceries debit of 510.00 on 2024-03-11."""
    return make_transaction(
        amount=Decimal("510.00"),
        transaction_date=date(2024, 3, 11),
        description="SUPERMARKET GROCERIES",
    )


@pytest.fixture
def sample_entry(make_entry):
    """A groceries entry of 500.00 expected on day 10, active in March 2024."""
    return make_entry(month=3, year=2024)


@pytest.fixture
def savings_goal(db_session):
    """A reserve goal of 6000.00 due at the end of 2024, created in January."""
    goal = SavingsGoal(
        organization_id=ORG_ID,
        name="Emergency fund",
        goal_type=GoalType.reserve,
        target_amount=Decimal("6000.00"),
        initial_amount=Decimal("1000.00"),
        due_date=date(2024, 12, 31),
        created_at=datetime(2024, 1, 10, 9, 0),
    )
    db_session.add(goal)
    db_session.commit()
    db_session.refresh(goal)
    return goal
