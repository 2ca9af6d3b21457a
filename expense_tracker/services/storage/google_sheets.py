"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to a database later without changing business logic.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.analytics.filters import as_local_naive
from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.ledger import (
    Budget,
    BudgetPeriod,
    Frequency,
    Transaction,
    TransactionType,
)
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DatabaseError,
    NotFoundError,
    TransactionStorageInterface,
)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "title",
    "amount",
    "type",
    "category",
    "date",
    "currency",
    "is_recurring",
    "frequency",
    "notes",
    "created_at",
    "updated_at",
]

# Column mappings for Budgets sheet
BUDGET_COLUMNS = [
    "id",
    "category",
    "amount",
    "period",
    "start_date",
    "end_date",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.budgets_sheet_name, BUDGET_COLUMNS, rows=200
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self.get_worksheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _find_row_index(sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
    """1-based sheet row holding `record_id`, skipping the header."""
    all_rows = sheet.get_all_values()
    for idx, row in enumerate(all_rows[1:], start=2):
        if row and row[0] == str(record_id):
            return idx
    return None


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    One transaction per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            transaction.title,
            str(transaction.amount),
            transaction.type.value,
            transaction.category,
            transaction.date.isoformat(),
            transaction.currency,
            str(transaction.is_recurring),
            transaction.frequency.value if transaction.frequency else "",
            transaction.notes or "",
            transaction.created_at.isoformat(),
            transaction.updated_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        frequency = _cell(row, 8)
        return Transaction(
            id=UUID(_cell(row, 0)),
            title=_cell(row, 1),
            amount=Decimal(_cell(row, 2)),
            type=TransactionType(_cell(row, 3)),
            category=_cell(row, 4),
            date=datetime.fromisoformat(_cell(row, 5)),
            currency=_cell(row, 6, "USD"),
            is_recurring=_cell(row, 7).lower() == "true",
            frequency=Frequency(frequency) if frequency else None,
            notes=_cell(row, 9) or None,
            created_at=datetime.fromisoformat(_cell(row, 10)),
            updated_at=datetime.fromisoformat(_cell(row, 11)),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_transaction(self, transaction: Transaction) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(
                self._transaction_to_row(transaction),
                value_input_option="RAW",
            )
            return True
        except Exception as e:
            raise DatabaseError(f"Failed to save transaction: {e}")

    async def get_transaction_by_id(self, transaction_id: UUID) -> Optional[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(transaction_id):
                    return self._row_to_transaction(row)
            return None
        except Exception as e:
            raise DatabaseError(f"Failed to get transaction: {e}")

    async def update_transaction(self, transaction: Transaction) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = _find_row_index(sheet, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            sheet.update(
                values=[self._transaction_to_row(transaction)],
                range_name=f"A{idx}",
                value_input_option="RAW",
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = _find_row_index(sheet, transaction_id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            sheet.delete_rows(idx)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise DatabaseError(f"Failed to list transactions: {e}")

        transactions = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue

            try:
                transaction = self._row_to_transaction(row)
            except (ValueError, ArithmeticError):
                continue  # Skip malformed rows

            moment = as_local_naive(transaction.date)
            if date_from and moment < as_local_naive(date_from):
                continue
            if date_to and moment > as_local_naive(date_to):
                continue

            transactions.append(transaction)

        # Sort by date descending (newest first)
        transactions.sort(key=lambda t: as_local_naive(t.date), reverse=True)
        return transactions


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """Google Sheets implementation of budget storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            str(budget.id),
            budget.category,
            str(budget.amount),
            budget.period.value,
            budget.start_date.isoformat(),
            budget.end_date.isoformat() if budget.end_date else "",
            budget.created_at.isoformat(),
            budget.updated_at.isoformat(),
        ]

    def _row_to_budget(self, row: list) -> Budget:
        end_date = _cell(row, 5)
        return Budget(
            id=UUID(_cell(row, 0)),
            category=_cell(row, 1),
            amount=Decimal(_cell(row, 2)),
            period=BudgetPeriod(_cell(row, 3)),
            start_date=date.fromisoformat(_cell(row, 4)),
            end_date=date.fromisoformat(end_date) if end_date else None,
            created_at=datetime.fromisoformat(_cell(row, 6)),
            updated_at=datetime.fromisoformat(_cell(row, 7)),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_budget(self, budget: Budget) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            sheet.append_row(self._budget_to_row(budget), value_input_option="RAW")
            return True
        except Exception as e:
            raise DatabaseError(f"Failed to save budget: {e}")

    async def get_budget_by_id(self, budget_id: UUID) -> Optional[Budget]:
        for budget in await self.list_budgets():
            if budget.id == budget_id:
                return budget
        return None

    async def get_budget_by_category(self, category: str) -> Optional[Budget]:
        for budget in await self.list_budgets():
            if budget.category == category:
                return budget
        return None

    async def update_budget(self, budget: Budget) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            idx = _find_row_index(sheet, budget.id)
            if idx is None:
                raise NotFoundError(f"Budget not found: {budget.id}")
            sheet.update(
                values=[self._budget_to_row(budget)],
                range_name=f"A{idx}",
                value_input_option="RAW",
            )
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to update budget: {e}")

    async def delete_budget(self, budget_id: UUID) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            idx = _find_row_index(sheet, budget_id)
            if idx is None:
                raise NotFoundError(f"Budget not found: {budget_id}")
            sheet.delete_rows(idx)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to delete budget: {e}")

    async def list_budgets(self) -> list[Budget]:
        try:
            sheet = self._client.get_budgets_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise DatabaseError(f"Failed to list budgets: {e}")

        budgets = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                budgets.append(self._row_to_budget(row))
            except (ValueError, ArithmeticError):
                continue

        budgets.sort(key=lambda b: b.category)
        return budgets


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
            correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            description=_cell(row, 7),
            details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
            error_message=_cell(row, 9) or None,
            is_user_action=_cell(row, 10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise DatabaseError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise DatabaseError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._read_events()
            if e.correlation_id == correlation_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
