"""
Savings goals: CRUD, contributions, completion and progress.

A goal's current amount is its initial amount plus the credits minus the
debits of the transactions linked to it. Reserve goals carry a due date
and are on track while the current amount keeps up with a straight line
from the goal's creation month to its due month.
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models.savings_goal import GoalType, SavingsGoal
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services.money import ZERO, parse_amount, quantize, safe_amount

logger = logging.getLogger(__name__)

GOAL_FIELDS = (
    "name",
    "goal_type",
    "target_amount",
    "initial_amount",
    "due_date",
    "icon",
    "color",
    "notes",
)
REQUIRED_FIELDS = ("name", "goal_type", "target_amount", "initial_amount")


@dataclass
class GoalProgress:
    goal_id: int
    name: str
    goal_type: GoalType
    target_amount: Decimal
    initial_amount: Decimal
    contributed_amount: Decimal
    current_amount: Decimal
    remaining_amount: Decimal
    progress_percent: Decimal
    due_date: Optional[date]
    months_remaining: Optional[int]
    monthly_target: Optional[Decimal]
    is_on_track: bool
    is_completed: bool
    monthly_contributions: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def months_between(start: date, end: date) -> int:
    """Month boundaries crossed going from ``start`` to ``end``; zero when ``end`` is earlier."""
    diff = (end.year * 12 + end.month) - (start.year * 12 + start.month)
    return max(diff, 0)


def months_remaining(due_date: date, today: date) -> int:
    """Months left to save, counting the current and the due month; zero once overdue."""
    if due_date < today:
        return 0
    return months_between(today, due_date) + 1


def transaction_delta(transaction) -> Decimal:
    """Signed effect of a linked transaction on its goal."""
    amount = safe_amount(transaction.amount, f"Transaction {transaction.id}")
    if transaction.transaction_type == TransactionType.debit:
        return -amount
    return amount


def monthly_contributions(transactions) -> List[Dict[str, Any]]:
    """Net contribution per calendar month, oldest first."""
    totals: Dict[tuple, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.is_ignored:
            continue
        key = (transaction.transaction_date.year, transaction.transaction_date.month)
        totals[key] = quantize(totals[key] + transaction_delta(transaction))
    return [
        {"month": month, "year": year, "amount": amount}
        for (year, month), amount in sorted(totals.items())
    ]


def compute_goal_progress(goal, transactions, today: date) -> GoalProgress:
    """
    Progress of a goal as of ``today``.

    ``transactions`` are the goal's linked transactions; ignored ones do
    not count.
    """
    target = quantize(safe_amount(goal.target_amount, f"savings goal {goal.id} target"))
    initial = quantize(safe_amount(goal.initial_amount, f"savings goal {goal.id} initial amount"))

    contributed = ZERO
    for transaction in transactions:
        if not transaction.is_ignored:
            contributed = quantize(contributed + transaction_delta(transaction))
    current = quantize(initial + contributed)
    remaining = max(quantize(target - current), ZERO)
    percent = quantize(current / target * 100) if target > 0 else ZERO

    left = None
    monthly_target = None
    is_on_track = True
    if goal.goal_type == GoalType.reserve and goal.due_date is not None:
        left = months_remaining(goal.due_date, today)
        if left > 0 and remaining > 0:
            monthly_target = quantize(remaining / left)

        created = goal.created_at.date() if goal.created_at else today
        total_months = months_between(created, goal.due_date)
        if total_months <= 0:
            is_on_track = current >= target
        else:
            elapsed = months_between(created, today)
            expected = quantize(target * elapsed / total_months)
            is_on_track = current >= expected

    return GoalProgress(
        goal_id=goal.id,
        name=goal.name,
        goal_type=GoalType(goal.goal_type),
        target_amount=target,
        initial_amount=initial,
        contributed_amount=contributed,
        current_amount=current,
        remaining_amount=remaining,
        progress_percent=percent,
        due_date=goal.due_date,
        months_remaining=left,
        monthly_target=monthly_target,
        is_on_track=is_on_track,
        is_completed=bool(goal.is_completed),
        monthly_contributions=monthly_contributions(transactions),
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _validate(values: Dict[str, Any]) -> Dict[str, Any]:
    """Check a complete set of goal fields and normalise amounts."""
    name = (values.get("name") or "").strip()
    if not name:
        raise ValidationError("Name is required")
    values["name"] = name

    try:
        values["goal_type"] = GoalType(values.get("goal_type") or GoalType.reserve)
    except ValueError:
        raise ValidationError(f"Invalid goal type: {values.get('goal_type')}")

    values["target_amount"] = parse_amount(values.get("target_amount"))
    if values["target_amount"] <= 0:
        raise ValidationError("Target amount must be positive")

    values["initial_amount"] = parse_amount(values.get("initial_amount"))
    if values["initial_amount"] < 0:
        raise ValidationError("Initial amount must not be negative")

    if values["goal_type"] == GoalType.reserve and values.get("due_date") is None:
        raise ValidationError("Reserve goals require a due date")

    return values


def get_goal(db: Session, organization_id: int, goal_id: int) -> SavingsGoal:
    goal = db.query(SavingsGoal).filter(
        SavingsGoal.id == goal_id,
        SavingsGoal.organization_id == organization_id
    ).first()
    if not goal:
        raise NotFoundError(f"Savings goal {goal_id} not found")
    return goal


def list_goals(
    db: Session,
    organization_id: int,
    goal_type: Optional[GoalType] = None,
    is_completed: Optional[bool] = None,
    include_inactive: bool = False,
) -> List[SavingsGoal]:
    query = db.query(SavingsGoal).filter(SavingsGoal.organization_id == organization_id)

    if goal_type is not None:
        query = query.filter(SavingsGoal.goal_type == goal_type)
    if is_completed is not None:
        query = query.filter(SavingsGoal.is_completed == is_completed)
    if not include_inactive:
        query = query.filter(SavingsGoal.is_active == True)

    return query.order_by(SavingsGoal.due_date.is_(None), SavingsGoal.due_date, SavingsGoal.id).all()


def create_goal(db: Session, organization_id: int, data: Dict[str, Any]) -> SavingsGoal:
    values = _validate({k: data.get(k) for k in GOAL_FIELDS if k in data})
    goal = SavingsGoal(organization_id=organization_id, **values)
    db.add(goal)
    db.commit()
    db.refresh(goal)
    logger.info(f"Created savings goal {goal.id} '{goal.name}'")
    return goal


def update_goal(db: Session, organization_id: int, goal_id: int, changes: Dict[str, Any]) -> SavingsGoal:
    """Partial update, validated against the merged state."""
    goal = get_goal(db, organization_id, goal_id)

    merged = {field: getattr(goal, field) for field in GOAL_FIELDS}
    merged.update({
        k: v for k, v in changes.items()
        if k in GOAL_FIELDS and not (k in REQUIRED_FIELDS and v is None)
    })
    values = _validate(merged)

    for field, value in values.items():
        setattr(goal, field, value)

    db.commit()
    db.refresh(goal)
    return goal


def delete_goal(db: Session, organization_id: int, goal_id: int) -> None:
    """Soft delete; linked transactions keep their link."""
    goal = get_goal(db, organization_id, goal_id)
    goal.is_active = False
    db.commit()


def complete_goal(db: Session, organization_id: int, goal_id: int) -> SavingsGoal:
    """Mark a goal completed. Completing twice keeps the first completion time."""
    goal = get_goal(db, organization_id, goal_id)
    if not goal.is_completed:
        goal.is_completed = True
        goal.completed_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(goal)
        logger.info(f"Completed savings goal {goal.id}")
    return goal


def reopen_goal(db: Session, organization_id: int, goal_id: int) -> SavingsGoal:
    goal = get_goal(db, organization_id, goal_id)
    goal.is_completed = False
    goal.completed_at = None
    db.commit()
    db.refresh(goal)
    return goal


def add_contribution(db: Session, organization_id: int, goal_id: int, amount: Any) -> SavingsGoal:
    """
    Add money saved outside the tracked accounts to the initial amount.

    A negative amount records a withdrawal; it may not take the initial
    amount below zero.
    """
    goal = get_goal(db, organization_id, goal_id)
    delta = parse_amount(amount)
    if delta == 0:
        raise ValidationError("Contribution amount must not be zero")

    updated = quantize(parse_amount(goal.initial_amount) + delta)
    if updated < 0:
        raise ValidationError(f"Withdrawal of {-delta} exceeds the goal's initial amount")

    goal.initial_amount = updated
    db.commit()
    db.refresh(goal)
    logger.info(f"Savings goal {goal.id} contribution {delta}; initial amount now {updated}")
    return goal


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def linked_transactions(db: Session, organization_id: int, goal_id: int) -> List[Transaction]:
    return db.query(Transaction).filter(
        Transaction.organization_id == organization_id,
        Transaction.savings_goal_id == goal_id
    ).order_by(Transaction.transaction_date.desc(), Transaction.id.desc()).all()


def get_goal_progress(
    db: Session,
    organization_id: int,
    goal_id: int,
    today: Optional[date] = None
) -> GoalProgress:
    today = today or date.today()
    goal = get_goal(db, organization_id, goal_id)
    return compute_goal_progress(goal, linked_transactions(db, organization_id, goal.id), today)


def get_goal_summary(
    db: Session,
    organization_id: int,
    goal_id: int,
    today: Optional[date] = None
) -> Dict[str, Any]:
    """Goal, its progress and its linked transactions."""
    today = today or date.today()
    goal = get_goal(db, organization_id, goal_id)
    transactions = linked_transactions(db, organization_id, goal.id)
    return {
        "goal": goal,
        "progress": compute_goal_progress(goal, transactions, today),
        "transactions": transactions,
    }


def check_goal(db: Session, organization_id: int, goal_id: Optional[int]) -> None:
    """Raise when ``goal_id`` does not name a goal of the organization."""
    if goal_id is None:
        return
    goal = db.query(SavingsGoal).filter(
        SavingsGoal.id == goal_id,
        SavingsGoal.organization_id == organization_id
    ).first()
    if not goal:
        raise ValidationError(f"Savings goal {goal_id} not found")
