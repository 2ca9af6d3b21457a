"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the CRUD operations and ordered listings the ledger needs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.ledger import Budget, Transaction


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Google Sheets, in-memory, a database)
    must implement these methods.
    """

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Save a new transaction.

        Raises:
            DatabaseError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        """Return the transaction, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace a stored transaction (matched by id).

        Raises:
            DatabaseError: If update fails
            NotFoundError: If transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """
        Delete a transaction by ID.

        Raises:
            NotFoundError: If transaction doesn't exist
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        """
        List transactions, newest first.

        Args:
            date_from: Only transactions on or after this moment
            date_to: Only transactions on or before this moment
        """
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for budget storage operations."""

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        """
        Save a new budget.

        The one-budget-per-category rule is checked by the validator
        before this is called.
        """
        pass

    @abstractmethod
    async def get_budget_by_id(self, budget_id: UUID) -> Optional[Budget]:
        pass

    @abstractmethod
    async def get_budget_by_category(self, category: str) -> Optional[Budget]:
        """Return the budget for a category, or None."""
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> bool:
        """
        Raises:
            NotFoundError: If budget doesn't exist
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID) -> bool:
        """
        Raises:
            NotFoundError: If budget doesn't exist
        """
        pass

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        """List all budgets ordered by category (ascending)."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class DatabaseError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(DatabaseError):
    """Entity not found in storage."""
    pass


class DuplicateError(DatabaseError):
    """Attempted to insert an entity whose id already exists."""
    pass


class ConnectionError(DatabaseError):
    """Could not connect to storage backend."""
    pass
