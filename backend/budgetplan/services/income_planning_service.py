"""Service comparing a month's income with its planned expenses."""

import enum
import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy.orm import Session

from budgetplan.config import settings
from budgetplan.services.budget_service import total_planned_expense
from budgetplan.services.money import ZERO, format_amount, quantize
from budgetplan.services.reconciliation_service import compute_actual_spending, load_month_data

logger = logging.getLogger(__name__)

UNALLOCATED_INCOME_THRESHOLD_PERCENT = Decimal(str(settings.unallocated_income_threshold_percent))


class AllocationStatus(str, enum.Enum):
    OK = "OK"
    WARNING = "WARNING"
    NO_INCOME = "NO_INCOME"


@dataclass
class IncomePlanningReport:
    month: int
    year: int
    total_income: Decimal
    total_planned_expense: Decimal
    unallocated: Decimal
    unallocated_percent: Decimal
    threshold_percent: Decimal
    status: AllocationStatus
    message: str

    def to_dict(self) -> Dict:
        return asdict(self)


def check_allocation(
    month: int,
    year: int,
    total_income: Decimal,
    total_planned_expense: Decimal,
    threshold_percent: Optional[Decimal] = None,
) -> IncomePlanningReport:
    """
    Flag income left unallocated (or over-allocated) beyond the threshold.

    The month is OK when ``|unallocated %|`` is within the threshold band.
    """
    if threshold_percent is None:
        threshold_percent = UNALLOCATED_INCOME_THRESHOLD_PERCENT

    income = quantize(total_income)
    planned = quantize(total_planned_expense)
    unallocated = income - planned

    if income <= 0:
        return IncomePlanningReport(
            month=month,
            year=year,
            total_income=income,
            total_planned_expense=planned,
            unallocated=unallocated,
            unallocated_percent=ZERO,
            threshold_percent=threshold_percent,
            status=AllocationStatus.NO_INCOME,
            message="No income for this month",
        )

    percent = quantize(unallocated / income * 100)
    if abs(percent) <= threshold_percent:
        status = AllocationStatus.OK
        message = "Income properly allocated"
    elif percent > 0:
        status = AllocationStatus.WARNING
        message = (f"{format_amount(unallocated)} ({percent}%) of income is unallocated "
                   f"(max: {threshold_percent}%)")
    else:
        status = AllocationStatus.WARNING
        message = (f"Planned expenses exceed income by {format_amount(-unallocated)} "
                   f"({-percent}%)")

    return IncomePlanningReport(
        month=month,
        year=year,
        total_income=income,
        total_planned_expense=planned,
        unallocated=unallocated,
        unallocated_percent=percent,
        threshold_percent=threshold_percent,
        status=status,
        message=message,
    )


def get_income_planning(db: Session, organization_id: int, month: int, year: int) -> IncomePlanningReport:
    data = load_month_data(db, organization_id, month, year)
    income = compute_actual_spending(
        month, year, data.entries, data.transactions, data.categories, data.statuses,
        income=True, matched_transaction_ids=data.matched_transaction_ids,
    )
    total_income = quantize(sum(income.values(), ZERO))
    planned = total_planned_expense(db, organization_id, data)

    report = check_allocation(month, year, total_income, planned)
    if report.status != AllocationStatus.OK:
        logger.info(f"Income planning {month}/{year}: {report.message}")
    return report
