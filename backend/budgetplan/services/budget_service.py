"""
Category budgets: CRUD, consolidation, copying and progress.

Progress assumes a linear run rate through the month: by day ``d`` of an
``n``-day month, ``d / n`` of the planned amount is expected to be spent.
"""

import enum
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from budgetplan.config import settings
from budgetplan.errors import ConflictError, NotFoundError, ValidationError
from budgetplan.models.category import Category, CategoryType
from budgetplan.models.category_budget import BudgetType, CategoryBudget, MonthlySnapshot
from budgetplan.models.planned_entry import EntryStatus, EntryType
from budgetplan.services import planned_entry_service
from budgetplan.services.entry_window import planned_amount
from budgetplan.services.money import ZERO, days_in_month, parse_amount, quantize, safe_amount, validate_month
from budgetplan.services.reconciliation_service import (
    MonthData, compute_actual_spending, get_category_spending, load_month_data
)

logger = logging.getLogger(__name__)

VARIANCE_THRESHOLDS = {
    "MINOR": Decimal(str(settings.variance_minor_percent)),
    "MAJOR": Decimal(str(settings.variance_major_percent)),
}


class BudgetStatus(str, enum.Enum):
    """Classification of a budget's variance."""
    on_track = "on_track"
    warning = "warning"
    over_budget = "over_budget"


@dataclass
class BudgetProgress:
    budget_id: Optional[int]
    category_id: int
    month: int
    year: int
    budget_type: BudgetType
    planned_amount: Decimal
    effective_target: Decimal
    actual_spent: Decimal
    days_in_month: int
    current_day: int
    progress_percentage: Decimal
    expected_at_current_day: Decimal
    variance: Decimal
    variance_percent: Decimal
    projection_end_of_month: Decimal
    projected_variance_at_end: Decimal
    status: BudgetStatus

    def to_dict(self) -> Dict:
        return asdict(self)


def classify_variance(variance: Decimal, target: Decimal, is_income: bool = False) -> BudgetStatus:
    """
    Classify a variance against its target.

    The unfavourable direction is overspending for expenses and
    under-earning for income, so the sign is flipped for income.
    """
    unfavorable = -variance if is_income else variance
    if target <= 0:
        return BudgetStatus.over_budget if unfavorable > 0 else BudgetStatus.on_track

    percent = unfavorable / target * 100
    if percent >= VARIANCE_THRESHOLDS["MAJOR"]:
        return BudgetStatus.over_budget
    if percent >= VARIANCE_THRESHOLDS["MINOR"]:
        return BudgetStatus.warning
    return BudgetStatus.on_track


def elapsed_days(month: int, year: int, today: date) -> int:
    """Days of the month elapsed as of ``today``: all of a past month, none of a future one."""
    period = (year, month)
    current = (today.year, today.month)
    if period < current:
        return days_in_month(year, month)
    if period > current:
        return 0
    return today.day


def compute_progress(
    budget,
    actual_spent: Decimal,
    today: date,
    planned: Optional[Decimal] = None,
    is_income: bool = False,
) -> BudgetProgress:
    """
    Progress of a budget as of ``today``.

    ``planned`` overrides the stored planned amount; callers pass the sum of
    the month's planned entries for calculated and maior budgets.
    """
    total_days = days_in_month(budget.year, budget.month)
    current_day = elapsed_days(budget.month, budget.year, today)

    if planned is None:
        planned = safe_amount(budget.planned_amount, f"category budget {budget.id}")
    planned = quantize(planned)
    actual = quantize(safe_amount(actual_spent, f"category budget {budget.id} actual"))

    progress = quantize(Decimal(current_day) * 100 / Decimal(total_days))
    expected = quantize(planned * current_day / total_days)
    variance = actual - expected

    if current_day == 0:
        projection = actual
    else:
        projection = quantize(actual * total_days / current_day)
    projected_variance = projection - planned

    budget_type = BudgetType(budget.budget_type)
    if budget_type == BudgetType.maior:
        target = max(planned, actual)
        status_variance = actual - quantize(target * current_day / total_days)
    else:
        target = planned
        status_variance = variance

    variance_percent = quantize(variance / planned * 100) if planned > 0 else ZERO

    return BudgetProgress(
        budget_id=budget.id,
        category_id=budget.category_id,
        month=budget.month,
        year=budget.year,
        budget_type=budget_type,
        planned_amount=planned,
        effective_target=target,
        actual_spent=actual,
        days_in_month=total_days,
        current_day=current_day,
        progress_percentage=progress,
        expected_at_current_day=expected,
        variance=variance,
        variance_percent=variance_percent,
        projection_end_of_month=projection,
        projected_variance_at_end=projected_variance,
        status=classify_variance(status_variance, target, is_income),
    )


# ---------------------------------------------------------------------------
# Planned and actual amounts from month data
# ---------------------------------------------------------------------------

def planned_from_entries(data: MonthData, category_id: int) -> Decimal:
    """Sum of planned amounts of the category's non-dismissed entries in the month."""
    status_by_entry = {s.planned_entry_id: s for s in data.statuses}
    total = ZERO
    for entry in data.entries:
        if entry.category_id != category_id:
            continue
        status = planned_entry_service.stored_status(status_by_entry.get(entry.id))
        if status == EntryStatus.dismissed:
            continue
        total = quantize(total + planned_amount(entry))
    return total


def budget_planned_amount(budget: CategoryBudget, data: MonthData) -> Decimal:
    if budget.budget_type == BudgetType.fixed:
        return quantize(safe_amount(budget.planned_amount, f"category budget {budget.id}"))
    return planned_from_entries(data, budget.category_id)


def _is_income_category(category: Optional[Category]) -> bool:
    return category is not None and category.category_type == CategoryType.income


def budget_actual_amount(budget: CategoryBudget, data: MonthData, is_income: bool) -> Decimal:
    spending = compute_actual_spending(
        data.month, data.year, data.entries, data.transactions, data.categories, data.statuses,
        income=is_income, matched_transaction_ids=data.matched_transaction_ids,
    )
    return spending.get(budget.category_id, ZERO)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _get_category(db: Session, organization_id: int, category_id: int) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.organization_id == organization_id
    ).first()
    if not category:
        raise ValidationError(f"Category {category_id} not found")
    return category


def _validate_amounts(budget_type: Any, planned: Any) -> tuple:
    try:
        budget_type = BudgetType(budget_type or BudgetType.fixed)
    except ValueError:
        raise ValidationError(f"Invalid budget type: {budget_type}")

    planned = parse_amount(planned)
    if planned < 0:
        raise ValidationError("Planned amount must not be negative")
    if budget_type == BudgetType.fixed and planned <= 0:
        raise ValidationError("Fixed budgets require a positive planned amount")
    return budget_type, planned


def get_category_budget(db: Session, organization_id: int, budget_id: int) -> CategoryBudget:
    budget = db.query(CategoryBudget).filter(
        CategoryBudget.id == budget_id,
        CategoryBudget.organization_id == organization_id
    ).first()
    if not budget:
        raise NotFoundError(f"Category budget {budget_id} not found")
    return budget


def list_category_budgets(
    db: Session,
    organization_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    category_id: Optional[int] = None,
) -> List[CategoryBudget]:
    query = db.query(CategoryBudget).filter(CategoryBudget.organization_id == organization_id)
    if month is not None:
        query = query.filter(CategoryBudget.month == month)
    if year is not None:
        query = query.filter(CategoryBudget.year == year)
    if category_id is not None:
        query = query.filter(CategoryBudget.category_id == category_id)
    return query.order_by(CategoryBudget.year, CategoryBudget.month, CategoryBudget.category_id).all()


def create_category_budget(db: Session, organization_id: int, data: Dict[str, Any]) -> CategoryBudget:
    validate_month(data.get("month"), data.get("year"))
    category = _get_category(db, organization_id, data.get("category_id"))
    budget_type, planned = _validate_amounts(data.get("budget_type"), data.get("planned_amount"))

    duplicate = db.query(CategoryBudget).filter(
        CategoryBudget.organization_id == organization_id,
        CategoryBudget.category_id == category.id,
        CategoryBudget.month == data["month"],
        CategoryBudget.year == data["year"]
    ).first()
    if duplicate:
        raise ValidationError(
            f"Category {category.id} already has a budget for {data['month']}/{data['year']}"
        )

    budget = CategoryBudget(
        organization_id=organization_id,
        category_id=category.id,
        month=data["month"],
        year=data["year"],
        budget_type=budget_type,
        planned_amount=planned,
    )
    db.add(budget)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError(
            f"Category {category.id} already has a budget for {data['month']}/{data['year']}"
        )
    db.refresh(budget)
    return budget


def update_category_budget(
    db: Session,
    organization_id: int,
    budget_id: int,
    changes: Dict[str, Any]
) -> CategoryBudget:
    budget = get_category_budget(db, organization_id, budget_id)
    if budget.is_consolidated:
        raise ConflictError(f"Category budget {budget.id} is consolidated and cannot be changed")

    budget_type, planned = _validate_amounts(
        changes.get("budget_type") or budget.budget_type,
        changes["planned_amount"] if changes.get("planned_amount") is not None else budget.planned_amount,
    )
    budget.budget_type = budget_type
    budget.planned_amount = planned

    db.commit()
    db.refresh(budget)
    return budget


def delete_category_budget(db: Session, organization_id: int, budget_id: int) -> None:
    budget = get_category_budget(db, organization_id, budget_id)
    if budget.is_consolidated:
        raise ConflictError(f"Category budget {budget.id} is consolidated and cannot be deleted")
    db.delete(budget)
    db.commit()


# ---------------------------------------------------------------------------
# Month operations
# ---------------------------------------------------------------------------

def consolidate_category_budget(
    db: Session,
    organization_id: int,
    budget_id: int,
    today: Optional[date] = None
) -> CategoryBudget:
    """
    Lock a budget after its month has ended and store a snapshot of
    planned versus actual.
    """
    today = today or date.today()
    budget = get_category_budget(db, organization_id, budget_id)

    if budget.is_consolidated:
        raise ConflictError(f"Category budget {budget.id} is already consolidated")
    if (budget.year, budget.month) >= (today.year, today.month):
        raise ValidationError(
            f"Category budget {budget.id} cannot be consolidated before {budget.month}/{budget.year} ends"
        )

    data = load_month_data(db, organization_id, budget.month, budget.year)
    is_income = _is_income_category(budget.category)
    planned = budget_planned_amount(budget, data)
    actual = budget_actual_amount(budget, data, is_income)
    variance_percent = quantize((actual - planned) / planned * 100) if planned > 0 else ZERO

    db.add(MonthlySnapshot(
        organization_id=organization_id,
        category_budget_id=budget.id,
        category_id=budget.category_id,
        month=budget.month,
        year=budget.year,
        budget_type=budget.budget_type,
        planned_amount=planned,
        actual_amount=actual,
        variance_percent=variance_percent,
    ))
    budget.is_consolidated = True
    budget.consolidated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(budget)
    logger.info(f"Consolidated category budget {budget.id} for {budget.month}/{budget.year}: "
                f"planned {planned}, actual {actual}")
    return budget


def copy_category_budgets_from_month(
    db: Session,
    organization_id: int,
    source_month: int,
    source_year: int,
    target_month: int,
    target_year: int
) -> List[CategoryBudget]:
    """Copy budget type and planned amount to categories without a target budget."""
    validate_month(source_month, source_year)
    validate_month(target_month, target_year)
    if (source_month, source_year) == (target_month, target_year):
        raise ValidationError("Source and target months must differ")

    source = list_category_budgets(db, organization_id, source_month, source_year)
    if not source:
        raise ValidationError(f"No budgets found for {source_month}/{source_year}")

    existing = {b.category_id for b in list_category_budgets(db, organization_id, target_month, target_year)}

    created = []
    for budget in source:
        if budget.category_id in existing:
            continue
        copy = CategoryBudget(
            organization_id=organization_id,
            category_id=budget.category_id,
            month=target_month,
            year=target_year,
            budget_type=budget.budget_type,
            planned_amount=budget.planned_amount,
        )
        db.add(copy)
        created.append(copy)

    if not created:
        raise ValidationError(f"Every category already has a budget for {target_month}/{target_year}")

    db.commit()
    for budget in created:
        db.refresh(budget)
    logger.info(f"Copied {len(created)} category budgets from {source_month}/{source_year} "
                f"to {target_month}/{target_year}")
    return created


def get_budget_progress(
    db: Session,
    organization_id: int,
    budget_id: int,
    today: Optional[date] = None
) -> BudgetProgress:
    today = today or date.today()
    budget = get_category_budget(db, organization_id, budget_id)
    data = load_month_data(db, organization_id, budget.month, budget.year)
    is_income = _is_income_category(budget.category)

    return compute_progress(
        budget,
        budget_actual_amount(budget, data, is_income),
        today,
        planned=budget_planned_amount(budget, data),
        is_income=is_income,
    )


def get_budget_spending(db: Session, organization_id: int, budget_id: int) -> Dict[str, Any]:
    """Category spending of the budget's month."""
    budget = get_category_budget(db, organization_id, budget_id)
    return {
        "budget_id": budget.id,
        "month": budget.month,
        "year": budget.year,
        "category_spending": get_category_spending(db, organization_id, budget.month, budget.year),
    }


def get_monthly_snapshots(
    db: Session,
    organization_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    category_id: Optional[int] = None
) -> List[MonthlySnapshot]:
    query = db.query(MonthlySnapshot).filter(MonthlySnapshot.organization_id == organization_id)
    if month is not None:
        query = query.filter(MonthlySnapshot.month == month)
    if year is not None:
        query = query.filter(MonthlySnapshot.year == year)
    if category_id is not None:
        query = query.filter(MonthlySnapshot.category_id == category_id)
    return query.order_by(MonthlySnapshot.year.desc(), MonthlySnapshot.month.desc()).all()


def total_planned_expense(db: Session, organization_id: int, data: MonthData) -> Decimal:
    """
    Planned expense of a month: its expense category budgets, or the
    non-dismissed expense entries when the month has no budgets.
    """
    income_categories = {c.id for c in data.categories if c.category_type == CategoryType.income}
    budgets = [
        b for b in list_category_budgets(db, organization_id, data.month, data.year)
        if b.category_id not in income_categories
    ]

    if budgets:
        total = ZERO
        for budget in budgets:
            total = quantize(total + budget_planned_amount(budget, data))
        return total

    status_by_entry = {s.planned_entry_id: s for s in data.statuses}
    total = ZERO
    for entry in data.entries:
        if entry.entry_type == EntryType.income or entry.category_id in income_categories:
            continue
        if planned_entry_service.stored_status(status_by_entry.get(entry.id)) == EntryStatus.dismissed:
            continue
        total = quantize(total + planned_amount(entry))
    return total
