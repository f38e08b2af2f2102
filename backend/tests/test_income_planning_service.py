"""Tests for income allocation checks."""

from decimal import Decimal

from budgetplan.config import settings
from budgetplan.models.category_budget import BudgetType
from budgetplan.models.planned_entry import EntryType
from budgetplan.models.transaction import TransactionType
from budgetplan.services import budget_service
from budgetplan.services.income_planning_service import (
    AllocationStatus, check_allocation, get_income_planning
)

ORG_ID = settings.default_organization_id


class TestCheckAllocation:
    """Test the allocation threshold band."""

    def test_unallocated_beyond_threshold(self):
        report = check_allocation(3, 2024, Decimal("5000.00"), Decimal("4900.00"))
        assert report.unallocated == Decimal("100.00")
        assert report.unallocated_percent == Decimal("2.00")
        assert report.status == AllocationStatus.WARNING
        assert report.message == "100.00 (2.00%) of income is unallocated (max: 0.25%)"

    def test_within_threshold(self):
        report = check_allocation(3, 2024, Decimal("5000.00"), Decimal("4990.00"))
        assert report.unallocated_percent == Decimal("0.20")
        assert report.status == AllocationStatus.OK

    def test_fully_allocated(self):
        report = check_allocation(3, 2024, Decimal("5000.00"), Decimal("5000.00"))
        assert report.status == AllocationStatus.OK
        assert report.unallocated == Decimal("0.00")

    def test_over_allocated(self):
        report = check_allocation(3, 2024, Decimal("5000.00"), Decimal("5500.00"))
        assert report.unallocated == Decimal("-500.00")
        assert report.unallocated_percent == Decimal("-10.00")
        assert report.status == AllocationStatus.WARNING
        assert report.message.startswith("Planned expenses exceed income by 500.00")

    def test_no_income(self):
        report = check_allocation(3, 2024, Decimal("0"), Decimal("300.00"))
        assert report.status == AllocationStatus.NO_INCOME
        assert report.unallocated_percent == Decimal("0.00")
        assert report.message == "No income for this month"

    def test_custom_threshold(self):
        report = check_allocation(3, 2024, Decimal("1000"), Decimal("950"), threshold_percent=Decimal("10"))
        assert report.status == AllocationStatus.OK


class TestGetIncomePlanning:
    """Test the report built from stored data."""

    def test_entries_only(self, db_session, income_category, make_entry):
        make_entry(month=3, year=2024, category_id=income_category.id, description="Salary",
                   amount=Decimal("5000.00"), entry_type=EntryType.income)
        make_entry(month=3, year=2024, amount=Decimal("4900.00"))

        report = get_income_planning(db_session, ORG_ID, 3, 2024)

        assert report.total_income == Decimal("5000.00")
        assert report.total_planned_expense == Decimal("4900.00")
        assert report.status == AllocationStatus.WARNING

    def test_budgets_take_precedence(self, db_session, expense_category, income_category, make_entry):
        make_entry(month=3, year=2024, category_id=income_category.id, description="Salary",
                   amount=Decimal("5000.00"), entry_type=EntryType.income)
        make_entry(month=3, year=2024, amount=Decimal("4900.00"))
        budget_service.create_category_budget(db_session, ORG_ID, {
            "category_id": expense_category.id, "month": 3, "year": 2024,
            "budget_type": BudgetType.fixed, "planned_amount": Decimal("4995.00"),
        })

        report = get_income_planning(db_session, ORG_ID, 3, 2024)

        assert report.total_planned_expense == Decimal("4995.00")
        assert report.status == AllocationStatus.OK

    def test_uncategorised_credits_count_as_income(self, db_session, make_transaction, make_entry):
        make_transaction(category_id=None, amount=Decimal("2000.00"),
                         transaction_type=TransactionType.credit, description="TRANSFER IN")
        make_entry(month=3, year=2024, amount=Decimal("1000.00"))

        report = get_income_planning(db_session, ORG_ID, 3, 2024)

        assert report.total_income == Decimal("2000.00")
        assert report.unallocated_percent == Decimal("50.00")

    def test_empty_month(self, db_session):
        report = get_income_planning(db_session, ORG_ID, 3, 2024)
        assert report.status == AllocationStatus.NO_INCOME
