"""Shared fixtures: fixed clock, sample transactions, in-memory wiring."""

from datetime import datetime
from decimal import Decimal

import pytest

from expense_tracker.analytics import CurrencyConverter, LedgerAggregator
from expense_tracker.audit import AuditLogger
from expense_tracker.config import AppSettings
from expense_tracker.models import Transaction, TransactionType
from expense_tracker.orchestrator import (
    BudgetFlow,
    DashboardFlow,
    LedgerFeed,
    TransactionFlow,
)
from expense_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryTransactionStorage,
)
from expense_tracker.validation import TransactionValidator


NOW = datetime(2024, 3, 15, 12, 0, 0)


def make_transaction(
    title: str = "Groceries",
    amount: str = "40",
    type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    currency: str = "USD",
    date: datetime = NOW,
    **kwargs,
) -> Transaction:
    return Transaction(
        title=title,
        amount=Decimal(amount),
        type=type,
        category=category,
        currency=currency,
        date=date,
        **kwargs,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        default_display_currency="USD",
        budget_currency="USD",
        max_transaction_amount=1000000.0,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def converter() -> CurrencyConverter:
    return CurrencyConverter()


@pytest.fixture
def aggregator(converter) -> LedgerAggregator:
    return LedgerAggregator(converter)


@pytest.fixture
def salary_and_groceries() -> list[Transaction]:
    """Income of 100 USD and a 40 USD Food expense."""
    return [
        make_transaction(
            title="Salary",
            amount="100",
            type=TransactionType.INCOME,
            category="Salary",
        ),
        make_transaction(title="Groceries", amount="40"),
    ]


@pytest.fixture
def transaction_storage() -> InMemoryTransactionStorage:
    return InMemoryTransactionStorage()


@pytest.fixture
def budget_storage() -> InMemoryBudgetStorage:
    return InMemoryBudgetStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def feed(transaction_storage, budget_storage, audit_logger) -> LedgerFeed:
    return LedgerFeed(transaction_storage, budget_storage, audit_logger)


@pytest.fixture
def transaction_flow(transaction_storage, feed, audit_logger, app_settings) -> TransactionFlow:
    return TransactionFlow(
        storage=transaction_storage,
        feed=feed,
        validator=TransactionValidator(settings=app_settings),
        audit_logger=audit_logger,
    )


@pytest.fixture
def budget_flow(budget_storage, feed, audit_logger) -> BudgetFlow:
    return BudgetFlow(
        storage=budget_storage,
        feed=feed,
        audit_logger=audit_logger,
    )


@pytest.fixture
def dashboard_flow(feed, converter, app_settings, audit_logger) -> DashboardFlow:
    return DashboardFlow(
        feed=feed,
        converter=converter,
        settings=app_settings,
        audit_logger=audit_logger,
    )
