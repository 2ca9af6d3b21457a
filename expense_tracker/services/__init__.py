"""Services package."""

from expense_tracker.services.export import CsvExporter, PdfReportExporter
from expense_tracker.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DatabaseError,
    DuplicateError,
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

__all__ = [
    # Export services
    "CsvExporter",
    "PdfReportExporter",
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DatabaseError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "TransactionStorageInterface",
]
