"""
Database models package.
"""

from budgetplan.models.account import Account, AccountType
from budgetplan.models.category import Category, CategoryType
from budgetplan.models.transaction import Transaction, TransactionType
from budgetplan.models.pattern import AdvancedPattern
from budgetplan.models.planned_entry import PlannedEntry, PlannedEntryStatus, EntryType, EntryStatus
from budgetplan.models.category_budget import CategoryBudget, MonthlySnapshot, BudgetType
from budgetplan.models.savings_goal import SavingsGoal, GoalType

__all__ = [
    "Account",
    "AccountType",
    "Category",
    "CategoryType",
    "Transaction",
    "TransactionType",
    "AdvancedPattern",
    "PlannedEntry",
    "PlannedEntryStatus",
    "EntryType",
    "EntryStatus",
    "CategoryBudget",
    "MonthlySnapshot",
    "BudgetType",
    "SavingsGoal",
    "GoalType",
]
