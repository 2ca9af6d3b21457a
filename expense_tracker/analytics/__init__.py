"""Filtering, aggregation and budget utilization over transaction snapshots."""

from expense_tracker.analytics.aggregation import LedgerAggregator, safe_percentage
from expense_tracker.analytics.budgets import (
    category_spending_for_period,
    over_budget,
    period_window,
    spending_by_category,
    utilization,
)
from expense_tracker.analytics.currency import (
    CurrencyConverter,
    UnknownCurrencyError,
    quantize_money,
)
from expense_tracker.analytics.filters import TransactionFilter

__all__ = [
    "CurrencyConverter",
    "LedgerAggregator",
    "TransactionFilter",
    "UnknownCurrencyError",
    "category_spending_for_period",
    "over_budget",
    "period_window",
    "quantize_money",
    "safe_percentage",
    "spending_by_category",
    "utilization",
]
