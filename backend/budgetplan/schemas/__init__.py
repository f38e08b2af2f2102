"""
Pydantic schemas package.
"""

from budgetplan.schemas.account import (
    AccountBase,
    AccountCreate,
    AccountResponse,
    AccountList,
)
from budgetplan.schemas.category import (
    CategoryBase,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryList,
)
from budgetplan.schemas.transaction import (
    TransactionBase,
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    TransactionListResponse,
)

__all__ = [
    "AccountBase",
    "AccountCreate",
    "AccountResponse",
    "AccountList",
    "CategoryBase",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryList",
    "TransactionBase",
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "TransactionListResponse",
]
