"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.ledger import (
    Budget,
    BudgetInput,
    BudgetPeriod,
    CategoryShare,
    CategorySpending,
    DateFilter,
    FilterCriteria,
    Frequency,
    LedgerSummary,
    Transaction,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
    TrendPoint,
)
from expense_tracker.models.reference import (
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY_TABLE,
    CategoryVocabulary,
    Currency,
    CurrencyTable,
    UnknownCurrencyError,
)
from expense_tracker.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Budget",
    "BudgetInput",
    "BudgetPeriod",
    "CategoryShare",
    "CategorySpending",
    "DateFilter",
    "FilterCriteria",
    "Frequency",
    "LedgerSummary",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "TransactionUpdate",
    "TrendPoint",
    # Reference data
    "DEFAULT_CATEGORIES",
    "DEFAULT_CURRENCY_TABLE",
    "CategoryVocabulary",
    "Currency",
    "CurrencyTable",
    "UnknownCurrencyError",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
