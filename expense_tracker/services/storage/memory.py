"""
In-Memory Storage Implementation

Used by the test suite and as the fallback backend when Google Sheets is
not configured. Records are copied on the way in and on the way out, so
callers can never mutate stored state by accident.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from expense_tracker.analytics.filters import as_local_naive
from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import Budget, Transaction
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Dict-backed transaction store."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._records: dict[UUID, Transaction] = {}
        for transaction in transactions or []:
            self._records[transaction.id] = transaction.model_copy(deep=True)

    async def save_transaction(self, transaction: Transaction) -> bool:
        if transaction.id in self._records:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._records[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def get_transaction_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        stored = self._records.get(transaction_id)
        return stored.model_copy(deep=True) if stored else None

    async def update_transaction(self, transaction: Transaction) -> bool:
        if transaction.id not in self._records:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._records[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        if transaction_id not in self._records:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        del self._records[transaction_id]
        return True

    async def list_transactions(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        transactions = []
        for stored in self._records.values():
            moment = as_local_naive(stored.date)
            if date_from and moment < as_local_naive(date_from):
                continue
            if date_to and moment > as_local_naive(date_to):
                continue
            transactions.append(stored.model_copy(deep=True))

        # Sort by date descending (newest first)
        transactions.sort(key=lambda t: as_local_naive(t.date), reverse=True)
        return transactions


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Dict-backed budget store."""

    def __init__(self, budgets: Optional[list[Budget]] = None):
        self._records: dict[UUID, Budget] = {}
        for budget in budgets or []:
            self._records[budget.id] = budget.model_copy(deep=True)

    async def save_budget(self, budget: Budget) -> bool:
        if budget.id in self._records:
            raise DuplicateError(f"Budget already exists: {budget.id}")
        self._records[budget.id] = budget.model_copy(deep=True)
        return True

    async def get_budget_by_id(self, budget_id: UUID) -> Optional[Budget]:
        stored = self._records.get(budget_id)
        return stored.model_copy(deep=True) if stored else None

    async def get_budget_by_category(self, category: str) -> Optional[Budget]:
        for stored in self._records.values():
            if stored.category == category:
                return stored.model_copy(deep=True)
        return None

    async def update_budget(self, budget: Budget) -> bool:
        if budget.id not in self._records:
            raise NotFoundError(f"Budget not found: {budget.id}")
        self._records[budget.id] = budget.model_copy(deep=True)
        return True

    async def delete_budget(self, budget_id: UUID) -> bool:
        if budget_id not in self._records:
            raise NotFoundError(f"Budget not found: {budget_id}")
        del self._records[budget_id]
        return True

    async def list_budgets(self) -> list[Budget]:
        budgets = [b.model_copy(deep=True) for b in self._records.values()]
        budgets.sort(key=lambda b: b.category)
        return budgets


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
