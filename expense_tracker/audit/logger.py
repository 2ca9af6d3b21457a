"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged.
This provides:
1. Complete traceability of transactions and budgets
2. Debugging capability when a save fails
3. A history the user can inspect in the AuditLog sheet

The audit logger:
- Is async so it can share the storage backends' event loop
- Gracefully handles failures (a failed audit write never fails the
  operation that triggered it)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder
from expense_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (Google Sheets or memory) when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        transaction_id: UUID,
        title: str,
        amount: str,
        currency: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            title=title,
            amount=amount,
            currency=currency,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_created(
        self,
        budget_id: UUID,
        category: str,
        amount: str,
        period: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.budget_created(
            budget_id=budget_id,
            category=category,
            amount=amount,
            period=period,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_updated(
        self,
        budget_id: UUID,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.budget_updated(
            budget_id=budget_id,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budget_deleted(
        self,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.budget_deleted(
            budget_id=budget_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_duplicate_budget(
        self,
        category: str,
        existing_budget_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected second budget for a category."""
        event = AuditEventBuilder.duplicate_budget_rejected(
            category=category,
            existing_budget_id=existing_budget_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        stage: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        entity_type: str,
        operation: str,
        error_message: str,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            entity_type=entity_type,
            operation=operation,
            error_message=error_message,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_not_found(
        self,
        entity_type: str,
        entity_id: UUID,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.not_found(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_snapshot_refreshed(
        self,
        transaction_count: int,
        budget_count: int,
    ) -> None:
        """
        Log a snapshot refresh locally only.

        Refreshes happen after every write; persisting them would double
        the audit sheet for no benefit.
        """
        event = AuditEventBuilder.snapshot_refreshed(
            transaction_count=transaction_count,
            budget_count=budget_count,
        )
        self._logger.debug("audit_event", **event.to_log_dict())

    async def log_report_exported(
        self,
        report_format: str,
        filename: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.report_exported(
            report_format=report_format,
            filename=filename,
            row_count=row_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """
        Most recent persisted events, newest first.

        Empty when no storage is configured or the read fails.
        """
        if not self._storage:
            return []
        try:
            return await self._storage.get_recent_events(limit=limit)
        except Exception as e:
            self._logger.error("audit_read_failed", error=str(e))
            return []

    async def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """All persisted events of one user action."""
        if not self._storage:
            return []
        try:
            return await self._storage.get_events_by_correlation_id(correlation_id)
        except Exception as e:
            self._logger.error(
                "audit_read_failed",
                error=str(e),
                correlation_id=str(correlation_id),
            )
            return []


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a form).
    Pass it through all subsequent operations.
    """
    return uuid4()
