"""Tests for advanced patterns."""

import pytest
from datetime import date
from decimal import Decimal

from budgetplan.config import settings
from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models.pattern import AdvancedPattern
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services import pattern_service, transaction_service
from budgetplan.services.pattern_service import matches_pattern

ORG_ID = settings.default_organization_id


def build_transaction(description="UBER *TRIP 1234", transaction_date=date(2024, 3, 10), amount="25.00"):
    return Transaction(
        id=1,
        description=description,
        original_description=description,
        transaction_date=transaction_date,
        amount=Decimal(amount),
        transaction_type=TransactionType.debit,
    )


def build_pattern(**overrides):
    values = {"id": 1, "description_pattern": r"^uber", "target_description": "Uber",
              "target_category_id": 1}
    values.update(overrides)
    return AdvancedPattern(**values)


class TestMatchesPattern:
    """Test the conjunction of sub-patterns."""

    def test_description_only(self):
        assert matches_pattern(build_transaction(), build_pattern())
        assert not matches_pattern(build_transaction("LYFT RIDE"), build_pattern())

    def test_date_pattern(self):
        pattern = build_pattern(date_pattern=r"-03-\d\d$")
        assert matches_pattern(build_transaction(), pattern)
        assert not matches_pattern(build_transaction(transaction_date=date(2024, 4, 10)), pattern)

    def test_weekday_is_sunday_based(self):
        # 2024-03-10 was a Sunday, 2024-03-11 a Monday
        pattern = build_pattern(weekday_pattern="^[06]$")
        assert matches_pattern(build_transaction(transaction_date=date(2024, 3, 10)), pattern)
        assert not matches_pattern(build_transaction(transaction_date=date(2024, 3, 11)), pattern)

    def test_amount_range_inclusive(self):
        pattern = build_pattern(amount_min=Decimal("10.00"), amount_max=Decimal("25.00"))
        assert matches_pattern(build_transaction(amount="25.00"), pattern)
        assert matches_pattern(build_transaction(amount="10.00"), pattern)
        assert not matches_pattern(build_transaction(amount="25.01"), pattern)

    def test_every_sub_pattern_must_match(self):
        pattern = build_pattern(date_pattern="^2024", weekday_pattern="^1$")
        assert not matches_pattern(build_transaction(), pattern)

    def test_invalid_stored_regex_matches_nothing(self):
        assert not matches_pattern(build_transaction(), build_pattern(description_pattern="(unclosed"))


class TestPatternCrud:
    """Test pattern validation and lifecycle."""

    def data(self, category_id, **overrides):
        values = {"description_pattern": "UBER", "target_description": "Uber",
                  "target_category_id": category_id}
        values.update(overrides)
        return values

    def test_create(self, db_session, expense_category):
        pattern = pattern_service.create_pattern(db_session, ORG_ID, self.data(expense_category.id))
        assert pattern.is_active is True
        assert pattern.apply_retroactively is False

    def test_invalid_regex_rejected(self, db_session, expense_category):
        with pytest.raises(ValidationError):
            pattern_service.create_pattern(
                db_session, ORG_ID, self.data(expense_category.id, weekday_pattern="[")
            )

    def test_amount_bounds_together(self, db_session, expense_category):
        with pytest.raises(ValidationError):
            pattern_service.create_pattern(
                db_session, ORG_ID, self.data(expense_category.id, amount_min=Decimal("5"))
            )

    def test_amount_bounds_ordered(self, db_session, expense_category):
        with pytest.raises(ValidationError):
            pattern_service.create_pattern(
                db_session, ORG_ID,
                self.data(expense_category.id, amount_min=Decimal("50"), amount_max=Decimal("5"))
            )

    def test_unknown_category(self, db_session):
        with pytest.raises(ValidationError):
            pattern_service.create_pattern(db_session, ORG_ID, self.data(404))

    def test_update_revalidates(self, db_session, expense_category):
        pattern = pattern_service.create_pattern(db_session, ORG_ID, self.data(expense_category.id))
        with pytest.raises(ValidationError):
            pattern_service.update_pattern(db_session, ORG_ID, pattern.id, {"description_pattern": "("})

    def test_delete_deactivates(self, db_session, expense_category):
        pattern = pattern_service.create_pattern(db_session, ORG_ID, self.data(expense_category.id))
        pattern_service.delete_pattern(db_session, ORG_ID, pattern.id)

        assert pattern_service.list_patterns(db_session, ORG_ID) == []
        assert len(pattern_service.list_patterns(db_session, ORG_ID, include_inactive=True)) == 1

    def test_other_organization_hidden(self, db_session, expense_category):
        pattern = pattern_service.create_pattern(db_session, ORG_ID, self.data(expense_category.id))
        with pytest.raises(NotFoundError):
            pattern_service.get_pattern(db_session, ORG_ID + 1, pattern.id)


class TestApplyingPatterns:
    """Test rewriting transactions."""

    def test_retroactive_application(self, db_session, second_expense_category, make_transaction):
        make_transaction(description="UBER *TRIP A")
        make_transaction(description="uber eats")
        make_transaction(description="SUPERMARKET")

        pattern = pattern_service.create_pattern(db_session, ORG_ID, {
            "description_pattern": "^uber", "target_description": "Uber",
            "target_category_id": second_expense_category.id,
        })
        result = pattern_service.apply_pattern_retroactively(db_session, ORG_ID, pattern.id)

        assert result == {"updated_count": 2, "total_checked": 3}
        rewritten = transaction_service.list_transactions(
            db_session, ORG_ID, category_id=second_expense_category.id
        )
        assert {t.description for t in rewritten} == {"Uber"}
        assert {t.original_description for t in rewritten} == {"UBER *TRIP A", "uber eats"}

    def test_create_with_retroactive_flag(self, db_session, second_expense_category, make_transaction):
        txn = make_transaction(description="UBER *TRIP A")
        pattern_service.create_pattern(db_session, ORG_ID, {
            "description_pattern": "^uber", "target_description": "Uber",
            "target_category_id": second_expense_category.id, "apply_retroactively": True,
        })
        db_session.refresh(txn)
        assert txn.category_id == second_expense_category.id

    def test_new_transaction_rewritten(self, db_session, sample_account, second_expense_category):
        pattern_service.create_pattern(db_session, ORG_ID, {
            "description_pattern": "NETFLIX", "target_description": "Netflix",
            "target_category_id": second_expense_category.id,
        })
        txn = transaction_service.create_transaction(db_session, ORG_ID, {
            "account_id": sample_account.id,
            "transaction_date": date(2024, 3, 2),
            "amount": "15.99",
            "description": "NETFLIX.COM 8004",
        })
        assert txn.description == "Netflix"
        assert txn.original_description == "NETFLIX.COM 8004"
        assert txn.category_id == second_expense_category.id

    def test_inactive_pattern_not_applied(self, db_session, sample_account, second_expense_category):
        pattern = pattern_service.create_pattern(db_session, ORG_ID, {
            "description_pattern": "NETFLIX", "target_description": "Netflix",
            "target_category_id": second_expense_category.id,
        })
        pattern_service.delete_pattern(db_session, ORG_ID, pattern.id)
        txn = transaction_service.create_transaction(db_session, ORG_ID, {
            "account_id": sample_account.id,
            "transaction_date": date(2024, 3, 2),
            "amount": "15.99",
            "description": "NETFLIX.COM 8004",
        })
        assert txn.description == "NETFLIX.COM 8004"
