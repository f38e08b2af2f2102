"""
Error taxonomy shared by services and the API layer.

Services raise these exceptions; ``budgetplan.main`` turns them into HTTP
responses using ``status_code``.
"""

import logging
import warnings


class BudgetPlanError(ValueError):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BudgetPlanError):
    """Malformed input, e.g. a non-positive planned amount."""

    status_code = 422


class NotFoundError(BudgetPlanError):
    """Referenced record does not exist or belongs to another organization."""

    status_code = 404


class ConflictError(BudgetPlanError):
    """State transition would violate an invariant, e.g. a double match."""

    status_code = 409


class DataIntegrityWarning(UserWarning):
    """Non-fatal anomaly in stored data. Logged, never raised."""


def report_integrity_issue(logger: logging.Logger, message: str) -> None:
    """Log a data anomaly and emit it as a DataIntegrityWarning."""
    logger.warning(message)
    warnings.warn(message, DataIntegrityWarning, stacklevel=3)
