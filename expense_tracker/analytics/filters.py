"""
Transaction Filter Engine

Narrows a transaction list before aggregation. Three predicates are
AND-ed together:

- text:     case-insensitive substring of the search term in title OR category
- category: exact match, or pass-through for "all"
- date:     today / rolling 7-day week / calendar month / all, relative to `now`

Filtering is pure: the input list is never modified and the output keeps
the input order. Given a fixed `now`, applying the same criteria twice
returns the same list as applying them once.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from expense_tracker.models.ledger import DateFilter, FilterCriteria, Transaction


ALL_CATEGORIES = "all"
ROLLING_WEEK = timedelta(days=7)


def as_local_naive(moment: datetime) -> datetime:
    """Drop timezone info after converting to local time."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


class TransactionFilter:
    """Applies FilterCriteria to transaction snapshots."""

    def __init__(self, rolling_week: timedelta = ROLLING_WEEK):
        self._rolling_week = rolling_week

    def matches_search(self, transaction: Transaction, search_term: str) -> bool:
        term = search_term.strip().lower()
        if not term:
            return True
        return (
            term in transaction.title.lower()
            or term in transaction.category.lower()
        )

    def matches_category(self, transaction: Transaction, category_filter: str) -> bool:
        if category_filter == ALL_CATEGORIES:
            return True
        return transaction.category == category_filter

    def matches_date(
        self,
        transaction: Transaction,
        date_filter: DateFilter,
        now: datetime,
    ) -> bool:
        if date_filter == DateFilter.ALL:
            return True

        moment = as_local_naive(transaction.date)
        now = as_local_naive(now)

        if date_filter == DateFilter.TODAY:
            return moment.date() == now.date()
        if date_filter == DateFilter.WEEK:
            return moment >= now - self._rolling_week
        if date_filter == DateFilter.MONTH:
            return moment.month == now.month and moment.year == now.year

        raise ValueError(f"Unsupported date filter: {date_filter}")

    def matches(
        self,
        transaction: Transaction,
        criteria: FilterCriteria,
        now: datetime,
    ) -> bool:
        return (
            self.matches_search(transaction, criteria.search_term)
            and self.matches_category(transaction, criteria.category_filter)
            and self.matches_date(transaction, criteria.date_filter, now)
        )

    def apply(
        self,
        transactions: Iterable[Transaction],
        criteria: FilterCriteria,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Return the transactions that pass every predicate, in input order."""
        now = now or datetime.now()
        return [t for t in transactions if self.matches(t, criteria, now)]
