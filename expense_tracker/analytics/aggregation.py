"""
Aggregation Engine

Reduces a (filtered) transaction list into totals in one display currency.

GUARANTEES:
- balance == income - expenses exactly (Decimal accumulation, no drift)
- per-type category totals sum to the matching income/expenses total
- percentages are 0, never an error, when the denominator is 0
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from expense_tracker.analytics.currency import CurrencyConverter
from expense_tracker.models.ledger import (
    CategoryShare,
    LedgerSummary,
    Transaction,
    TransactionType,
    TrendPoint,
)
from expense_tracker.models.reference import CategoryVocabulary


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def safe_percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, or 0 when whole is 0."""
    if not whole:
        return ZERO
    return part / whole * HUNDRED


class LedgerAggregator:
    """Computes LedgerSummary and chart series from transaction snapshots."""

    def __init__(self, converter: Optional[CurrencyConverter] = None):
        self._converter = converter or CurrencyConverter()

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    def aggregate(
        self,
        transactions: Iterable[Transaction],
        display_currency: str,
    ) -> LedgerSummary:
        """
        Single pass over the transactions.

        The balance is derived from the two totals so that
        balance == income - expenses holds exactly.
        """
        # Fail on an unknown display currency even for an empty list
        display_currency = self._converter.table.get(display_currency).code

        income = ZERO
        expenses = ZERO
        category_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        count = 0

        for transaction in transactions:
            converted = self._converter.convert(
                transaction.amount, transaction.currency, display_currency
            )
            if transaction.type == TransactionType.INCOME:
                income += converted
            else:
                expenses += converted
            category_totals[transaction.category_key] += converted
            count += 1

        return LedgerSummary(
            display_currency=display_currency,
            balance=income - expenses,
            income=income,
            expenses=expenses,
            category_totals=dict(category_totals),
            transaction_count=count,
        )

    def category_percentage(
        self,
        summary: LedgerSummary,
        type: TransactionType,
        category: str,
    ) -> Decimal:
        """Share of one category in its type's total."""
        return safe_percentage(
            summary.total_for(type, category),
            summary.total_by_type(type),
        )

    def category_breakdown(
        self,
        summary: LedgerSummary,
        type: TransactionType,
        vocabulary: Optional[CategoryVocabulary] = None,
    ) -> list[CategoryShare]:
        """
        Rows for the "by category" panel.

        Vocabulary categories come first in vocabulary order (zero rows
        included). Stored categories outside the vocabulary follow,
        alphabetically, so no total is silently dropped.
        """
        prefix = f"{type.value}-"
        stored = [
            key[len(prefix):]
            for key in summary.category_totals
            if key.startswith(prefix)
        ]

        ordered: list[str] = list(vocabulary.for_type(type)) if vocabulary else []
        ordered += sorted(c for c in stored if c not in ordered)

        return [
            CategoryShare(
                type=type,
                category=category,
                amount=summary.total_for(type, category),
                percentage=self.category_percentage(summary, type, category),
            )
            for category in ordered
        ]

    def top_categories(
        self,
        summary: LedgerSummary,
        type: TransactionType = TransactionType.EXPENSE,
        limit: Optional[int] = None,
    ) -> list[CategoryShare]:
        """Non-zero categories of one type, largest first."""
        rows = [
            row for row in self.category_breakdown(summary, type)
            if row.amount > 0
        ]
        rows.sort(key=lambda row: (-row.amount, row.category))
        return rows[:limit] if limit else rows

    def income_vs_expense(self, summary: LedgerSummary) -> list[dict]:
        """Two-point series for the income vs expenses chart."""
        return [
            {"name": "Income", "value": summary.income},
            {"name": "Expenses", "value": summary.expenses},
        ]

    def monthly_trend(
        self,
        transactions: Iterable[Transaction],
        display_currency: str,
    ) -> list[TrendPoint]:
        """Income and expense totals per calendar month, oldest first."""
        months: dict[str, dict[str, Decimal]] = {}

        for transaction in transactions:
            key = transaction.date.strftime("%Y-%m")
            bucket = months.setdefault(key, {"income": ZERO, "expenses": ZERO})
            converted = self._converter.convert(
                transaction.amount, transaction.currency, display_currency
            )
            if transaction.type == TransactionType.INCOME:
                bucket["income"] += converted
            else:
                bucket["expenses"] += converted

        return [
            TrendPoint(month=month, **totals)
            for month, totals in sorted(months.items())
        ]
