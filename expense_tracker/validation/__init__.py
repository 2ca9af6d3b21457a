"""Validation package."""

from expense_tracker.validation.validator import (
    BudgetValidator,
    DuplicateBudgetError,
    TransactionValidator,
    ValidationError,
    get_user_friendly_summary,
)

__all__ = [
    "BudgetValidator",
    "DuplicateBudgetError",
    "TransactionValidator",
    "ValidationError",
    "get_user_friendly_summary",
]
