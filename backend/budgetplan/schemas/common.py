"""
Shared schema types.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer

from budgetplan.services.money import format_amount

# Decimal amount sent over JSON as a two-place string, e.g. "1234.56"
Money = Annotated[Decimal, PlainSerializer(format_amount, return_type=str, when_used="json")]
