"""Tests for savings goals and their progress."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from budgetplan.config import settings
from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models.savings_goal import GoalType, SavingsGoal
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services import savings_goal_service as service
from budgetplan.services import transaction_service
from budgetplan.services.savings_goal_service import compute_goal_progress, months_between, months_remaining

ORG_ID = settings.default_organization_id
OTHER_ORG_ID = ORG_ID + 1

TODAY = date(2024, 3, 15)


def build_goal(**overrides):
    values = {
        "id": 1,
        "name": "Emergency fund",
        "goal_type": GoalType.reserve,
        "target_amount": Decimal("6000.00"),
        "initial_amount": Decimal("1000.00"),
        "due_date": date(2024, 12, 31),
        "is_completed": False,
        "created_at": datetime(2024, 1, 10),
    }
    values.update(overrides)
    return SavingsGoal(**values)


def build_transaction(txn_id, amount, day, transaction_type=TransactionType.credit, is_ignored=False):
    return Transaction(
        id=txn_id,
        amount=Decimal(amount),
        transaction_date=day,
        transaction_type=transaction_type,
        description=f"Transfer {txn_id}",
        is_ignored=is_ignored,
    )


class TestMonthCounting:
    """Test month arithmetic used for due dates."""

    def test_months_between(self):
        assert months_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert months_between(date(2024, 3, 15), date(2025, 3, 1)) == 12
        assert months_between(date(2024, 3, 15), date(2024, 3, 31)) == 0

    def test_months_between_never_negative(self):
        assert months_between(date(2024, 5, 1), date(2024, 3, 1)) == 0

    def test_months_remaining_counts_current_and_due_month(self):
        assert months_remaining(date(2024, 6, 30), TODAY) == 4
        assert months_remaining(date(2024, 3, 31), TODAY) == 1

    def test_overdue_has_no_months_left(self):
        assert months_remaining(date(2024, 3, 14), TODAY) == 0


class TestComputeGoalProgress:
    """Test the pure progress calculation."""

    def test_current_amount_from_linked_transactions(self):
        transactions = [
            build_transaction(1, "600.00", date(2024, 1, 20)),
            build_transaction(2, "400.00", date(2024, 2, 20)),
            build_transaction(3, "100.00", date(2024, 2, 25), transaction_type=TransactionType.debit),
            build_transaction(4, "999.00", date(2024, 2, 26), is_ignored=True),
        ]
        progress = compute_goal_progress(build_goal(), transactions, TODAY)

        assert progress.contributed_amount == Decimal("900.00")
        assert progress.current_amount == Decimal("1900.00")
        assert progress.remaining_amount == Decimal("4100.00")
        assert progress.progress_percent == Decimal("31.67")
        assert progress.monthly_contributions == [
            {"month": 1, "year": 2024, "amount": Decimal("600.00")},
            {"month": 2, "year": 2024, "amount": Decimal("300.00")},
        ]

    def test_monthly_target_spreads_remaining(self):
        progress = compute_goal_progress(build_goal(), [], TODAY)
        assert progress.months_remaining == 10
        assert progress.monthly_target == Decimal("500.00")

    def test_on_track_against_straight_line(self):
        """Two of eleven months elapsed: 1090.91 expected by now."""
        assert compute_goal_progress(build_goal(initial_amount=Decimal("1091.00")), [], TODAY).is_on_track
        assert not compute_goal_progress(build_goal(initial_amount=Decimal("1090.00")), [], TODAY).is_on_track

    def test_due_in_creation_month_needs_full_target(self):
        goal = build_goal(due_date=date(2024, 1, 31), initial_amount=Decimal("5999.99"))
        progress = compute_goal_progress(goal, [], TODAY)
        assert not progress.is_on_track
        assert progress.months_remaining == 0
        assert progress.monthly_target is None

    def test_reached_goal_has_no_monthly_target(self):
        progress = compute_goal_progress(build_goal(initial_amount=Decimal("6500.00")), [], TODAY)
        assert progress.remaining_amount == Decimal("0.00")
        assert progress.monthly_target is None
        assert progress.progress_percent == Decimal("108.33")

    def test_investment_has_no_schedule(self):
        goal = build_goal(goal_type=GoalType.investment, due_date=None, initial_amount=Decimal("0"))
        progress = compute_goal_progress(goal, [], TODAY)
        assert progress.months_remaining is None
        assert progress.monthly_target is None
        assert progress.is_on_track


class TestSavingsGoalCrud:
    """Test goal creation, update and soft delete."""

    def data(self, **overrides):
        values = {"name": "Holiday", "goal_type": "reserve", "target_amount": "3000.00",
                  "due_date": date(2024, 8, 1)}
        values.update(overrides)
        return values

    def test_create_defaults(self, db_session):
        goal = service.create_goal(db_session, ORG_ID, self.data())
        assert goal.goal_type == GoalType.reserve
        assert goal.initial_amount == Decimal("0.00")
        assert goal.is_active
        assert not goal.is_completed

    @pytest.mark.parametrize("overrides", [
        {"name": "  "},
        {"goal_type": "lottery"},
        {"target_amount": "0"},
        {"target_amount": "-10"},
        {"initial_amount": "-1"},
        {"due_date": None},
    ])
    def test_create_rejects_invalid_fields(self, db_session, overrides):
        with pytest.raises(ValidationError):
            service.create_goal(db_session, ORG_ID, self.data(**overrides))

    def test_investment_needs_no_due_date(self, db_session):
        goal = service.create_goal(db_session, ORG_ID, self.data(goal_type="investment", due_date=None))
        assert goal.due_date is None

    def test_update_is_partial(self, db_session, savings_goal):
        goal = service.update_goal(db_session, ORG_ID, savings_goal.id, {"target_amount": "8000.00"})
        assert goal.target_amount == Decimal("8000.00")
        assert goal.name == "Emergency fund"

    def test_update_validates_merged_state(self, db_session, savings_goal):
        with pytest.raises(ValidationError):
            service.update_goal(db_session, ORG_ID, savings_goal.id, {"due_date": None})

    def test_delete_is_soft(self, db_session, savings_goal):
        service.delete_goal(db_session, ORG_ID, savings_goal.id)
        assert service.list_goals(db_session, ORG_ID) == []
        assert service.list_goals(db_session, ORG_ID, include_inactive=True)[0].is_active is False

    def test_list_soonest_due_first(self, db_session, savings_goal):
        open_ended = service.create_goal(db_session, ORG_ID, self.data(goal_type="investment", due_date=None))
        sooner = service.create_goal(db_session, ORG_ID, self.data(due_date=date(2024, 6, 1)))
        ids = [g.id for g in service.list_goals(db_session, ORG_ID)]
        assert ids == [sooner.id, savings_goal.id, open_ended.id]

    def test_other_organization_cannot_see_goal(self, db_session, savings_goal):
        with pytest.raises(NotFoundError):
            service.get_goal(db_session, OTHER_ORG_ID, savings_goal.id)


class TestGoalLifecycle:
    """Test completion and contributions."""

    def test_complete_and_reopen(self, db_session, savings_goal):
        goal = service.complete_goal(db_session, ORG_ID, savings_goal.id)
        completed_at = goal.completed_at
        assert goal.is_completed
        assert completed_at is not None

        assert service.complete_goal(db_session, ORG_ID, savings_goal.id).completed_at == completed_at

        goal = service.reopen_goal(db_session, ORG_ID, savings_goal.id)
        assert not goal.is_completed
        assert goal.completed_at is None

    def test_list_filters_completed(self, db_session, savings_goal):
        service.complete_goal(db_session, ORG_ID, savings_goal.id)
        assert service.list_goals(db_session, ORG_ID, is_completed=False) == []
        assert len(service.list_goals(db_session, ORG_ID, is_completed=True)) == 1

    def test_contribution_adds_to_initial_amount(self, db_session, savings_goal):
        goal = service.add_contribution(db_session, ORG_ID, savings_goal.id, "250.50")
        assert goal.initial_amount == Decimal("1250.50")

    def test_withdrawal(self, db_session, savings_goal):
        goal = service.add_contribution(db_session, ORG_ID, savings_goal.id, "-1000.00")
        assert goal.initial_amount == Decimal("0.00")

    def test_withdrawal_cannot_go_negative(self, db_session, savings_goal):
        with pytest.raises(ValidationError):
            service.add_contribution(db_session, ORG_ID, savings_goal.id, "-1000.01")
        db_session.refresh(savings_goal)
        assert savings_goal.initial_amount == Decimal("1000.00")

    def test_zero_contribution_rejected(self, db_session, savings_goal):
        with pytest.raises(ValidationError):
            service.add_contribution(db_session, ORG_ID, savings_goal.id, "0")


class TestGoalProgressFromDatabase:
    """Test progress and summary over linked transactions."""

    def test_progress_counts_linked_transactions(self, db_session, savings_goal, make_transaction):
        make_transaction(amount=Decimal("700.00"), transaction_type=TransactionType.credit,
                         transaction_date=date(2024, 2, 5), savings_goal_id=savings_goal.id)
        make_transaction(amount=Decimal("80.00"), transaction_date=date(2024, 3, 2))

        progress = service.get_goal_progress(db_session, ORG_ID, savings_goal.id, TODAY)
        assert progress.current_amount == Decimal("1700.00")
        assert progress.is_on_track

    def test_summary_lists_linked_transactions(self, db_session, savings_goal, make_transaction):
        linked = make_transaction(amount=Decimal("300.00"), transaction_type=TransactionType.credit,
                                  savings_goal_id=savings_goal.id)
        make_transaction()

        summary = service.get_goal_summary(db_session, ORG_ID, savings_goal.id, TODAY)
        assert summary["goal"].id == savings_goal.id
        assert [t.id for t in summary["transactions"]] == [linked.id]
        assert summary["progress"].current_amount == Decimal("1300.00")

    def test_transaction_links_to_goal(self, db_session, savings_goal, sample_transaction):
        updated = transaction_service.update_transaction(
            db_session, ORG_ID, sample_transaction.id, {"savings_goal_id": savings_goal.id}
        )
        assert updated.savings_goal_id == savings_goal.id

    def test_transaction_rejects_unknown_goal(self, db_session, sample_transaction):
        with pytest.raises(ValidationError):
            transaction_service.update_transaction(db_session, ORG_ID, sample_transaction.id, {"savings_goal_id": 999})
