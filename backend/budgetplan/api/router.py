"""
Main API router.
"""

from fastapi import APIRouter
from budgetplan.api import (
    accounts,
    categories,
    category_budgets,
    income_planning,
    patterns,
    planned_entries,
    savings_goals,
    transactions,
)

api_router = APIRouter()

api_router.include_router(accounts.router)
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(transactions.router)
api_router.include_router(planned_entries.router)
api_router.include_router(patterns.router)
api_router.include_router(category_budgets.router)
api_router.include_router(income_planning.router)
api_router.include_router(savings_goals.router)
