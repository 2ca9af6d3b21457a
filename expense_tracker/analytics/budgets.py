"""
Budget Utilization

Joins expense totals per category to budget limits.

Every category with spend appears in the result (budget 0 if none is set),
and every budget appears even without spend (amount 0). The reported
percentage is the true ratio and can exceed 100; only
CategorySpending.bar_percentage is clamped.

Period windows use the same convention as the transaction filter:
"week" is the rolling 7 days up to now, "month" and "year" are the
current calendar month and year.
"""

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from expense_tracker.analytics.aggregation import safe_percentage
from expense_tracker.analytics.currency import CurrencyConverter
from expense_tracker.analytics.filters import ROLLING_WEEK, as_local_naive
from expense_tracker.models.ledger import (
    Budget,
    BudgetPeriod,
    CategorySpending,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")

_PERIOD_ALIASES = {
    "week": BudgetPeriod.WEEKLY,
    "month": BudgetPeriod.MONTHLY,
    "year": BudgetPeriod.YEARLY,
}


def _as_period(period: Union[BudgetPeriod, str]) -> BudgetPeriod:
    if isinstance(period, BudgetPeriod):
        return period
    return _PERIOD_ALIASES.get(period) or BudgetPeriod(period)


def period_window(
    period: Union[BudgetPeriod, str],
    now: Optional[datetime] = None,
) -> tuple[datetime, Optional[datetime]]:
    """
    Return (start, end) for a period; start inclusive, end exclusive.

    The weekly window has no end, matching the "week" date filter.
    """
    now = as_local_naive(now or datetime.now())
    period = _as_period(period)

    if period == BudgetPeriod.WEEKLY:
        return now - ROLLING_WEEK, None

    if period == BudgetPeriod.MONTHLY:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end

    start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, start.replace(year=start.year + 1)


def in_window(
    transaction: Transaction,
    window: tuple[datetime, Optional[datetime]],
) -> bool:
    start, end = window
    moment = as_local_naive(transaction.date)
    if moment < start:
        return False
    return end is None or moment < end


def spending_by_category(
    transactions: Iterable[Transaction],
    converter: CurrencyConverter,
    currency: str,
) -> dict[str, Decimal]:
    """Expense totals per category, converted to `currency`."""
    totals: dict[str, Decimal] = OrderedDict()
    for transaction in transactions:
        if transaction.type != TransactionType.EXPENSE:
            continue
        converted = converter.convert(
            transaction.amount, transaction.currency, currency
        )
        totals[transaction.category] = totals.get(transaction.category, ZERO) + converted
    return dict(totals)


def utilization(
    spending: Mapping[str, Decimal],
    budgets: Iterable[Budget],
) -> list[CategorySpending]:
    """
    Join spend totals to budgets by category.

    Sorted by amount spent (largest first), then category name.
    """
    limits = {budget.category: budget.amount for budget in budgets}

    categories = list(spending)
    categories += [c for c in limits if c not in spending]

    rows = []
    for category in categories:
        amount = spending.get(category, ZERO)
        budget_amount = limits.get(category, ZERO)
        rows.append(CategorySpending(
            category=category,
            amount=amount,
            budget_amount=budget_amount,
            percentage=safe_percentage(amount, budget_amount),
        ))

    rows.sort(key=lambda row: (-row.amount, row.category))
    return rows


def category_spending_for_period(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    period: Union[BudgetPeriod, str],
    converter: CurrencyConverter,
    currency: str,
    now: Optional[datetime] = None,
) -> list[CategorySpending]:
    """Budget utilization for the transactions inside the current period."""
    window = period_window(period, now)
    windowed = [t for t in transactions if in_window(t, window)]
    return utilization(
        spending_by_category(windowed, converter, currency),
        budgets,
    )


def over_budget(rows: Iterable[CategorySpending]) -> list[CategorySpending]:
    """Rows whose spend exceeds their budget."""
    return [row for row in rows if row.is_over_budget]
