"""Service for creating, editing and querying transactions."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from budgetplan.errors import NotFoundError, ValidationError
from budgetplan.models.account import Account
from budgetplan.models.category import Category
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.services.money import month_bounds, parse_amount, validate_month
from budgetplan.services.pattern_service import apply_patterns_to_transaction
from budgetplan.services.savings_goal_service import check_goal

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("category_id", "description", "notes", "is_ignored", "savings_goal_id")


def get_transaction(db: Session, organization_id: int, transaction_id: int) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.organization_id == organization_id
    ).first()
    if not transaction:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def list_transactions(
    db: Session,
    organization_id: int,
    account_id: Optional[int] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    category_id: Optional[int] = None,
) -> List[Transaction]:
    """List transactions, optionally limited to an account and a month."""
    query = db.query(Transaction).filter(Transaction.organization_id == organization_id)

    if account_id is not None:
        query = query.filter(Transaction.account_id == account_id)
    if category_id is not None:
        query = query.filter(Transaction.category_id == category_id)
    if month is not None and year is not None:
        validate_month(month, year)
        start, end = month_bounds(year, month)
        query = query.filter(
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end
        )

    return query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc()).all()


def _check_category(db: Session, organization_id: int, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    exists = db.query(Category.id).filter(
        Category.id == category_id,
        Category.organization_id == organization_id
    ).first()
    if not exists:
        raise ValidationError(f"Category {category_id} not found")


def create_transaction(db: Session, organization_id: int, data: Dict[str, Any]) -> Transaction:
    """Create a manual transaction and run active patterns over it."""
    account = db.query(Account).filter(
        Account.id == data.get("account_id"),
        Account.organization_id == organization_id
    ).first()
    if not account:
        raise ValidationError(f"Account {data.get('account_id')} not found")

    _check_category(db, organization_id, data.get("category_id"))
    check_goal(db, organization_id, data.get("savings_goal_id"))

    amount = parse_amount(data.get("amount"))
    if amount <= 0:
        raise ValidationError("Transaction amount must be positive; use transaction_type for direction")

    description = (data.get("description") or "").strip()
    if not description:
        raise ValidationError("Description is required")

    transaction = Transaction(
        organization_id=organization_id,
        account_id=account.id,
        category_id=data.get("category_id"),
        savings_goal_id=data.get("savings_goal_id"),
        transaction_date=data["transaction_date"],
        amount=amount,
        transaction_type=data.get("transaction_type") or TransactionType.debit,
        description=description,
        original_description=data.get("original_description") or description,
        is_ignored=data.get("is_ignored", False),
        notes=data.get("notes"),
    )

    pattern = apply_patterns_to_transaction(db, organization_id, transaction)
    if pattern:
        logger.info(f"Pattern {pattern.id} applied to new transaction '{description}'")

    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def update_transaction(
    db: Session,
    organization_id: int,
    transaction_id: int,
    changes: Dict[str, Any]
) -> Transaction:
    """Patch category, description, notes, the ignored flag or the savings goal link."""
    transaction = get_transaction(db, organization_id, transaction_id)

    if "category_id" in changes:
        _check_category(db, organization_id, changes["category_id"])
    if "savings_goal_id" in changes:
        check_goal(db, organization_id, changes["savings_goal_id"])

    for field, value in changes.items():
        if field in EDITABLE_FIELDS:
            setattr(transaction, field, value)

    db.commit()
    db.refresh(transaction)
    return transaction
