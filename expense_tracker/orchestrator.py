"""
Main Orchestrator for Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Transactions (form → validate → save → audit → refresh)
2. Budgets (form → validate → uniqueness check → save → audit → refresh)
3. Dashboard (snapshot → filter → aggregate → export)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written until validation passes
- The snapshot is refreshed after a successful write or a stale-record
  miss, never after a failed write
- Every write and every failure is audited

Derived views (totals, breakdowns, utilization) are recomputed from the
current snapshot on every request and never stored.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import structlog

from expense_tracker.analytics import (
    CurrencyConverter,
    LedgerAggregator,
    TransactionFilter,
    category_spending_for_period,
)
from expense_tracker.audit import AuditLogger, create_correlation_id
from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.ledger import (
    Budget,
    BudgetInput,
    BudgetPeriod,
    CategoryShare,
    CategorySpending,
    FilterCriteria,
    LedgerSummary,
    Transaction,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
    TrendPoint,
)
from expense_tracker.models.audit import AuditEvent
from expense_tracker.models.validation import ValidationResult
from expense_tracker.services.export import CsvExporter, PdfReportExporter
from expense_tracker.services.storage import (
    BudgetStorageInterface,
    DatabaseError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    TransactionStorageInterface,
)
from expense_tracker.validation import (
    BudgetValidator,
    DuplicateBudgetError,
    TransactionValidator,
    ValidationError,
)


logger = structlog.get_logger(__name__)

Subscriber = Callable[[list[Transaction], list[Budget]], None]


class LedgerFeed:
    """
    Current snapshot of the ledger plus change notification.

    Every refresh replaces the whole snapshot and notifies each
    subscriber exactly once with the new lists. There are no partial
    updates.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        budget_storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transaction_storage = transaction_storage
        self._budget_storage = budget_storage
        self._audit_logger = audit_logger
        self._transactions: list[Transaction] = []
        self._budgets: list[Budget] = []
        self._subscribers: list[Subscriber] = []

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for snapshot changes.

        Returns a function that removes the callback again.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def refresh(self) -> None:
        """
        Fetch full lists from storage, replace the snapshot, notify.

        If either fetch fails the old snapshot stays in place and the
        DatabaseError propagates.
        """
        transactions = await self._transaction_storage.list_transactions()
        budgets = await self._budget_storage.list_budgets()

        self._transactions = transactions
        self._budgets = budgets

        if self._audit_logger:
            await self._audit_logger.log_snapshot_refreshed(
                transaction_count=len(transactions),
                budget_count=len(budgets),
            )

        for callback in list(self._subscribers):
            try:
                callback(self.transactions, self.budgets)
            except Exception:
                # One broken subscriber must not starve the others
                logger.exception("subscriber_failed", subscriber=repr(callback))


async def _audit_validation_failure(
    audit_logger: Optional[AuditLogger],
    entity_type: str,
    result: ValidationResult,
    correlation_id: UUID,
) -> None:
    if not audit_logger:
        return
    issues = [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in result.issues
    ]
    stage = "schema" if not result.schema_valid else "semantic"
    await audit_logger.log_validation_failed(
        entity_type=entity_type,
        stage=stage,
        issues=issues,
        correlation_id=correlation_id,
    )


async def _refresh_snapshot(
    feed: LedgerFeed,
    audit_logger: Optional[AuditLogger],
    entity_type: str,
    operation: str,
    entity_id: UUID,
    correlation_id: UUID,
) -> bool:
    """
    Refresh the snapshot after a stored write or a stale-record miss.

    The refresh never undoes what already happened: a failed re-fetch
    is reported and the previous snapshot stays in place.
    Returns False when the refresh failed.
    """
    try:
        await feed.refresh()
    except DatabaseError as e:
        logger.warning(
            "snapshot_refresh_failed",
            entity_type=entity_type,
            operation=operation,
            error=str(e),
        )
        if audit_logger:
            await audit_logger.log_error(
                error_type="snapshot_refresh_failed",
                error_message=str(e),
                details={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "operation": operation,
                },
                correlation_id=correlation_id,
            )
        return False
    return True


class TransactionFlow:
    """
    Orchestrates transaction writes.

    Flow:
    1. Validate → raise ValidationError, nothing written
    2. Write → storage failures are audited and re-raised
    3. Audit → record the change
    4. Refresh → subscribers see the new snapshot
       (a failed refresh is audited, the write still stands)

    NotFoundError propagates unchanged so callers can tell a stale
    record apart from a storage outage. The snapshot is
    refreshed first so the stale record disappears from the list.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        feed: LedgerFeed,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._feed = feed
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    async def _build(
        self,
        data: TransactionInput,
        correlation_id: UUID,
        **identity,
    ) -> Transaction:
        try:
            return self._validator.build(data, **identity)
        except ValidationError as e:
            await _audit_validation_failure(
                self._audit_logger, "transaction", e.result, correlation_id
            )
            raise

    async def _not_found(
        self,
        transaction_id: UUID,
        operation: str,
        correlation_id: UUID,
    ) -> NotFoundError:
        if self._audit_logger:
            await self._audit_logger.log_not_found(
                entity_type="transaction",
                entity_id=transaction_id,
                operation=operation,
                correlation_id=correlation_id,
            )
        await _refresh_snapshot(
            self._feed, self._audit_logger, "transaction", operation,
            transaction_id, correlation_id,
        )
        return NotFoundError(f"Transaction {transaction_id} not found")

    async def _save_failed(
        self,
        operation: str,
        error: DatabaseError,
        transaction_id: Optional[UUID],
        correlation_id: UUID,
    ) -> DatabaseError:
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                entity_type="transaction",
                operation=operation,
                error_message=str(error),
                entity_id=transaction_id,
                correlation_id=correlation_id,
            )
        return DatabaseError(f"Failed to {operation} transaction")

    async def create(
        self,
        data: TransactionInput,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate and store a new transaction.

        Raises:
            ValidationError: Form data is invalid
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        transaction = await self._build(data, correlation_id)

        try:
            await self._storage.save_transaction(transaction)
        except DatabaseError as e:
            raise await self._save_failed(
                "create", e, transaction.id, correlation_id
            ) from e

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=transaction.id,
                title=transaction.title,
                amount=str(transaction.amount),
                currency=transaction.currency,
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "transaction", "create",
            transaction.id, correlation_id,
        )
        return transaction

    async def update(
        self,
        transaction_id: UUID,
        update: TransactionUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply a partial update to an existing transaction.

        The merged record is validated as a whole, so an update that
        switches the type must also supply a matching category.

        Raises:
            ValidationError: Merged data is invalid
            NotFoundError: Transaction no longer exists
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            current = await self._storage.get_transaction_by_id(transaction_id)
        except DatabaseError as e:
            raise await self._save_failed(
                "update", e, transaction_id, correlation_id
            ) from e
        if current is None:
            raise await self._not_found(transaction_id, "update", correlation_id)

        transaction = await self._build(
            update.merged_input(current),
            correlation_id,
            transaction_id=current.id,
            created_at=current.created_at,
        )

        try:
            await self._storage.update_transaction(transaction)
        except NotFoundError:
            raise await self._not_found(transaction_id, "update", correlation_id)
        except DatabaseError as e:
            raise await self._save_failed(
                "update", e, transaction_id, correlation_id
            ) from e

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction_id=transaction.id,
                changed_fields=sorted(update.changes()),
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "transaction", "update",
            transaction.id, correlation_id,
        )
        return transaction

    async def delete(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a transaction.

        Raises:
            NotFoundError: Transaction no longer exists
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._storage.delete_transaction(transaction_id)
        except NotFoundError:
            raise await self._not_found(transaction_id, "delete", correlation_id)
        except DatabaseError as e:
            raise await self._save_failed(
                "delete", e, transaction_id, correlation_id
            ) from e

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "transaction", "delete",
            transaction_id, correlation_id,
        )


class BudgetFlow:
    """
    Orchestrates budget writes.

    Same shape as TransactionFlow with one extra step: a second budget
    for an already budgeted category is rejected with
    DuplicateBudgetError before anything is written.
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        feed: LedgerFeed,
        validator: Optional[BudgetValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._feed = feed
        self._validator = validator or BudgetValidator(storage)
        self._audit_logger = audit_logger

    async def _build(
        self,
        data: BudgetInput,
        correlation_id: UUID,
        **identity,
    ) -> Budget:
        try:
            return self._validator.build(data, **identity)
        except ValidationError as e:
            await _audit_validation_failure(
                self._audit_logger, "budget", e.result, correlation_id
            )
            raise

    async def _ensure_unique(
        self,
        category: str,
        operation: str,
        correlation_id: UUID,
        budget_id: Optional[UUID] = None,
    ) -> None:
        try:
            await self._validator.ensure_unique(category, budget_id)
        except DuplicateBudgetError as e:
            if self._audit_logger:
                await self._audit_logger.log_duplicate_budget(
                    category=category,
                    existing_budget_id=e.existing.id if e.existing else None,
                    correlation_id=correlation_id,
                )
            raise
        except DatabaseError as e:
            raise await self._save_failed(operation, e, budget_id, correlation_id) from e

    async def _not_found(
        self,
        budget_id: UUID,
        operation: str,
        correlation_id: UUID,
    ) -> NotFoundError:
        if self._audit_logger:
            await self._audit_logger.log_not_found(
                entity_type="budget",
                entity_id=budget_id,
                operation=operation,
                correlation_id=correlation_id,
            )
        await _refresh_snapshot(
            self._feed, self._audit_logger, "budget", operation,
            budget_id, correlation_id,
        )
        return NotFoundError(f"Budget {budget_id} not found")

    async def _save_failed(
        self,
        operation: str,
        error: DatabaseError,
        budget_id: Optional[UUID],
        correlation_id: UUID,
    ) -> DatabaseError:
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                entity_type="budget",
                operation=operation,
                error_message=str(error),
                entity_id=budget_id,
                correlation_id=correlation_id,
            )
        return DatabaseError(f"Failed to {operation} budget")

    async def create(
        self,
        data: BudgetInput,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Validate and store a new budget.

        Raises:
            ValidationError: Form data is invalid
            DuplicateBudgetError: Category already has a budget
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        budget = await self._build(data, correlation_id)
        await self._ensure_unique(budget.category, "create", correlation_id)

        try:
            await self._storage.save_budget(budget)
        except DatabaseError as e:
            raise await self._save_failed("create", e, budget.id, correlation_id) from e

        if self._audit_logger:
            await self._audit_logger.log_budget_created(
                budget_id=budget.id,
                category=budget.category,
                amount=str(budget.amount),
                period=budget.period.value,
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "budget", "create",
            budget.id, correlation_id,
        )
        return budget

    async def update(
        self,
        budget_id: UUID,
        data: BudgetInput,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Replace an existing budget with the submitted form data.

        Raises:
            ValidationError: Form data is invalid
            DuplicateBudgetError: New category already has another budget
            NotFoundError: Budget no longer exists
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            current = await self._storage.get_budget_by_id(budget_id)
        except DatabaseError as e:
            raise await self._save_failed("update", e, budget_id, correlation_id) from e
        if current is None:
            raise await self._not_found(budget_id, "update", correlation_id)

        budget = await self._build(
            data,
            correlation_id,
            budget_id=current.id,
            created_at=current.created_at,
        )
        await self._ensure_unique(budget.category, "update", correlation_id, budget_id)

        try:
            await self._storage.update_budget(budget)
        except NotFoundError:
            raise await self._not_found(budget_id, "update", correlation_id)
        except DatabaseError as e:
            raise await self._save_failed("update", e, budget_id, correlation_id) from e

        if self._audit_logger:
            await self._audit_logger.log_budget_updated(
                budget_id=budget.id,
                category=budget.category,
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "budget", "update",
            budget.id, correlation_id,
        )
        return budget

    async def delete(
        self,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a budget.

        Raises:
            NotFoundError: Budget no longer exists
            DatabaseError: Storage write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._storage.delete_budget(budget_id)
        except NotFoundError:
            raise await self._not_found(budget_id, "delete", correlation_id)
        except DatabaseError as e:
            raise await self._save_failed("delete", e, budget_id, correlation_id) from e

        if self._audit_logger:
            await self._audit_logger.log_budget_deleted(
                budget_id=budget_id,
                correlation_id=correlation_id,
            )

        await _refresh_snapshot(
            self._feed, self._audit_logger, "budget", "delete",
            budget_id, correlation_id,
        )


class DashboardFlow:
    """
    Read side: derives everything the dashboard shows from the snapshot.

    Flow:
    1. Snapshot → Filter Engine (search, category, date)
    2. Filtered list → Aggregation Engine (balance, totals, breakdowns)
    3. Snapshot + budgets → Budget Utilization
    4. Filtered list → CSV / PDF export
    """

    def __init__(
        self,
        feed: LedgerFeed,
        converter: Optional[CurrencyConverter] = None,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._feed = feed
        self._converter = converter or CurrencyConverter()
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger
        self._filter = TransactionFilter()
        self._aggregator = LedgerAggregator(self._converter)
        self._csv = CsvExporter()
        self._pdf = PdfReportExporter(self._converter)

    @property
    def feed(self) -> LedgerFeed:
        return self._feed

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    @property
    def aggregator(self) -> LedgerAggregator:
        return self._aggregator

    def filtered(
        self,
        criteria: Optional[FilterCriteria] = None,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        return self._filter.apply(
            self._feed.transactions, criteria or FilterCriteria(), now
        )

    def summary(
        self,
        criteria: Optional[FilterCriteria] = None,
        display_currency: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LedgerSummary:
        """Balance, totals and per-category sums over the filtered list."""
        return self._aggregator.aggregate(
            self.filtered(criteria, now),
            display_currency or self._settings.default_display_currency,
        )

    def breakdown(
        self,
        summary: LedgerSummary,
        type: TransactionType = TransactionType.EXPENSE,
    ) -> list[CategoryShare]:
        return self._aggregator.category_breakdown(summary, type)

    def trend(
        self,
        criteria: Optional[FilterCriteria] = None,
        display_currency: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[TrendPoint]:
        return self._aggregator.monthly_trend(
            self.filtered(criteria, now),
            display_currency or self._settings.default_display_currency,
        )

    def budget_utilization(
        self,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
        now: Optional[datetime] = None,
    ) -> list[CategorySpending]:
        """
        Spending per category for `period`, joined to budget limits.

        Amounts are in the budget currency so they compare directly
        against budget amounts.
        """
        return category_spending_for_period(
            self._feed.transactions,
            self._feed.budgets,
            period,
            self._converter,
            self._settings.budget_currency,
            now=now,
        )

    async def _audit_export(
        self,
        report_format: str,
        filename: str,
        row_count: int,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_report_exported(
                report_format=report_format,
                filename=filename,
                row_count=row_count,
                correlation_id=correlation_id,
            )

    async def export_csv(
        self,
        criteria: Optional[FilterCriteria] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, str]:
        """
        Export the filtered transactions as CSV.

        Returns:
            (filename, csv_text)
        """
        transactions = self.filtered(criteria, now)
        filename = self._csv.filename(now.date() if now else None)
        content = self._csv.render(transactions)
        await self._audit_export("csv", filename, len(transactions), correlation_id)
        return filename, content

    async def export_pdf(
        self,
        criteria: Optional[FilterCriteria] = None,
        display_currency: Optional[str] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, bytes]:
        """
        Export the filtered transactions as a PDF report.

        Returns:
            (filename, pdf_bytes)
        """
        transactions = self.filtered(criteria, now)
        summary = self._aggregator.aggregate(
            transactions,
            display_currency or self._settings.default_display_currency,
        )
        content = self._pdf.render(transactions, summary)
        await self._audit_export(
            "pdf", self._pdf.filename, len(transactions), correlation_id
        )
        return self._pdf.filename, content

    async def recent_activity(
        self,
        limit: int = 20,
        correlation_id: Optional[UUID] = None,
    ) -> list[AuditEvent]:
        """
        Persisted audit events for the activity panel.

        With a correlation id, returns every event of that one action
        in the order they happened; otherwise the latest `limit` events.
        """
        if not self._audit_logger:
            return []
        if correlation_id is not None:
            return await self._audit_logger.events_for(correlation_id)
        return await self._audit_logger.recent_events(limit)


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransactionFlow, BudgetFlow, DashboardFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to keep
                    the ledger in memory.

    Returns:
        (transaction_flow, budget_flow, dashboard_flow, sheets_client)
    """
    sheets_client = None
    transaction_storage: TransactionStorageInterface
    budget_storage: BudgetStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            budget_storage = GoogleSheetsBudgetStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        transaction_storage = InMemoryTransactionStorage()
        budget_storage = InMemoryBudgetStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    feed = LedgerFeed(transaction_storage, budget_storage, audit_logger)

    transaction_flow = TransactionFlow(
        storage=transaction_storage,
        feed=feed,
        audit_logger=audit_logger,
    )
    budget_flow = BudgetFlow(
        storage=budget_storage,
        feed=feed,
        audit_logger=audit_logger,
    )
    dashboard_flow = DashboardFlow(
        feed=feed,
        audit_logger=audit_logger,
    )

    return transaction_flow, budget_flow, dashboard_flow, sheets_client
