"""
Tests for Expense Tracker models

Test strategy:
1. Unit tests for individual components (models, reference tables)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from expense_tracker.models import (
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY_TABLE,
    Budget,
    BudgetPeriod,
    CategorySpending,
    Currency,
    CurrencyTable,
    DateFilter,
    FilterCriteria,
    Frequency,
    LedgerSummary,
    Transaction,
    TransactionType,
    TransactionUpdate,
    TrendPoint,
    UnknownCurrencyError,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

from tests.conftest import make_transaction


class TestTransactionModel:
    """Tests for the Transaction record."""

    def test_transaction_creation(self):
        """Test Transaction defaults."""
        t = make_transaction()
        assert t.amount == Decimal("40")
        assert t.currency == "USD"
        assert t.is_recurring is False
        assert t.frequency is None
        assert t.id is not None

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the title."""
        t = make_transaction(title="  Coffee  ")
        assert t.title == "Coffee"

    def test_currency_is_upper_cased(self):
        t = make_transaction(currency="eur")
        assert t.currency == "EUR"

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_rejects_non_positive_amount(self, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            make_transaction(amount=amount)

    def test_recurring_requires_frequency(self):
        with pytest.raises(ValueError):
            make_transaction(is_recurring=True)

    def test_frequency_requires_recurring(self):
        with pytest.raises(ValueError):
            make_transaction(frequency=Frequency.MONTHLY)

    def test_recurring_with_frequency(self):
        t = make_transaction(is_recurring=True, frequency=Frequency.MONTHLY)
        assert t.frequency == Frequency.MONTHLY

    def test_category_key(self):
        """Test the per-type category key."""
        assert make_transaction().category_key == "expense-Food"
        income = make_transaction(type=TransactionType.INCOME, category="Salary")
        assert income.category_key == "income-Salary"


class TestTransactionUpdate:
    """Tests for partial updates."""

    def test_changes_only_include_set_fields(self):
        update = TransactionUpdate(amount=Decimal("55"))
        assert update.changes() == {"amount": Decimal("55")}

    def test_merged_input_keeps_unchanged_fields(self):
        current = make_transaction(title="Rent", category="Housing", notes="March")
        merged = TransactionUpdate(amount=Decimal("900")).merged_input(current)

        assert merged.title == "Rent"
        assert merged.category == "Housing"
        assert merged.notes == "March"
        assert merged.amount == Decimal("900")

    def test_turning_recurrence_off_drops_frequency(self):
        current = make_transaction(is_recurring=True, frequency=Frequency.WEEKLY)
        merged = TransactionUpdate(is_recurring=False).merged_input(current)

        assert merged.is_recurring is False
        assert merged.frequency is None


class TestBudgetModel:
    """Tests for the Budget record."""

    def test_budget_defaults(self):
        budget = Budget(category="Food", amount=Decimal("50"))
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.start_date == date.today()
        assert budget.end_date is None

    def test_end_date_before_start_date_rejected(self):
        with pytest.raises(ValueError):
            Budget(
                category="Food",
                amount=Decimal("50"),
                start_date=date(2024, 3, 10),
                end_date=date(2024, 3, 1),
            )

    def test_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            Budget(category="Food", amount=Decimal("0"))


class TestDerivedViews:
    """Tests for CategorySpending, LedgerSummary, FilterCriteria, TrendPoint."""

    def test_under_budget(self):
        row = CategorySpending(
            category="Food",
            amount=Decimal("40"),
            budget_amount=Decimal("50"),
            percentage=Decimal("80"),
        )
        assert row.has_budget
        assert not row.is_over_budget
        assert row.remaining == Decimal("10")
        assert row.bar_percentage == Decimal("80")

    def test_over_budget_bar_is_clamped(self):
        row = CategorySpending(
            category="Food",
            amount=Decimal("60"),
            budget_amount=Decimal("50"),
            percentage=Decimal("120"),
        )
        assert row.is_over_budget
        assert row.percentage == Decimal("120")
        assert row.bar_percentage == Decimal("100")

    def test_no_budget_is_never_over_budget(self):
        row = CategorySpending(category="Travel", amount=Decimal("30"))
        assert not row.has_budget
        assert not row.is_over_budget

    def test_summary_total_for_missing_category_is_zero(self):
        summary = LedgerSummary(display_currency="USD")
        assert summary.total_for(TransactionType.EXPENSE, "Food") == Decimal("0")

    def test_filter_criteria_defaults_are_empty(self):
        criteria = FilterCriteria()
        assert criteria.is_empty
        assert not FilterCriteria(date_filter=DateFilter.WEEK).is_empty
        assert not FilterCriteria(search_term="rent").is_empty

    def test_filter_criteria_is_immutable(self):
        criteria = FilterCriteria()
        with pytest.raises(Exception):
            criteria.search_term = "x"

    def test_trend_point_net(self):
        point = TrendPoint(month="2024-03", income=Decimal("100"), expenses=Decimal("40"))
        assert point.net == Decimal("60")

    def test_trend_point_rejects_bad_month(self):
        with pytest.raises(ValueError):
            TrendPoint(month="March")


class TestReferenceTables:
    """Tests for the currency table and category vocabularies."""

    def test_default_currencies(self):
        assert DEFAULT_CURRENCY_TABLE.codes == ["USD", "EUR", "GBP", "JPY", "INR", "CNY"]
        assert DEFAULT_CURRENCY_TABLE.rate("EUR") == Decimal("0.92")
        assert DEFAULT_CURRENCY_TABLE.symbol("GBP") == "£"

    def test_lookup_is_case_insensitive(self):
        assert "eur" in DEFAULT_CURRENCY_TABLE
        assert DEFAULT_CURRENCY_TABLE.get("jpy").rate == Decimal("150.45")

    def test_unknown_currency(self):
        assert "XYZ" not in DEFAULT_CURRENCY_TABLE
        with pytest.raises(UnknownCurrencyError) as exc_info:
            DEFAULT_CURRENCY_TABLE.get("XYZ")
        assert exc_info.value.code == "XYZ"
        assert isinstance(exc_info.value, LookupError)

    def test_duplicate_codes_rejected(self):
        with pytest.raises(ValueError):
            CurrencyTable(currencies=(
                Currency(code="USD", symbol="$", rate=Decimal("1")),
                Currency(code="usd", symbol="$", rate=Decimal("1")),
            ))

    def test_alternate_table(self):
        table = CurrencyTable(currencies=(
            Currency(code="USD", symbol="$", rate=Decimal("1")),
            Currency(code="CHF", symbol="Fr", rate=Decimal("0.9")),
        ))
        assert table.codes == ["USD", "CHF"]

    def test_category_vocabularies(self):
        assert DEFAULT_CATEGORIES.allows(TransactionType.EXPENSE, "Food")
        assert DEFAULT_CATEGORIES.allows(TransactionType.INCOME, "Salary")
        assert not DEFAULT_CATEGORIES.allows(TransactionType.EXPENSE, "Salary")
        assert len(DEFAULT_CATEGORIES.expense) == 10
        assert len(DEFAULT_CATEGORIES.income) == 5
        assert DEFAULT_CATEGORIES.all_categories[0] == "Food"
        assert DEFAULT_CATEGORIES.all_categories[-1] == "Other Income"


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_issue_creation(self):
        """Test ValidationIssue model creation."""
        issue = ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
            severity="error",
        )
        assert issue.field == "amount"
        assert issue.severity == "error"

    def test_validation_issue_invalid_severity(self):
        """Test that invalid severity is rejected."""
        with pytest.raises(ValueError):
            ValidationIssue(
                field="test",
                issue_type="test",
                message="test",
                severity="invalid",
            )

    def test_validation_result_with_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(
            entity_type="transaction",
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date is in the future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert len(result.errors) == 1
        assert result.errors[0].field == "amount"


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test event",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test event",
            details={"key": "value"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_created"
        assert log_dict["details"] == {"key": "value"}

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test event",
            details={"amount": Decimal("40")},
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "transaction_created"
        assert row[8] == '{"amount": "40"}'

    def test_transaction_created_builder(self):
        """Test AuditEventBuilder.transaction_created."""
        transaction_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            title="Groceries",
            amount="40",
            currency="USD",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == transaction_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action

    def test_duplicate_budget_builder_is_warning(self):
        event = AuditEventBuilder.duplicate_budget_rejected(
            category="Food",
            existing_budget_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert "Food" in event.description

    def test_save_failed_builder(self):
        event = AuditEventBuilder.save_failed(
            entity_type="transaction",
            operation="create",
            error_message="sheet unavailable",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.description == "Failed to create transaction"
        assert event.error_message == "sheet unavailable"

    def test_snapshot_refreshed_builder_is_debug(self):
        event = AuditEventBuilder.snapshot_refreshed(transaction_count=3, budget_count=1)
        assert event.severity == AuditSeverity.DEBUG
        assert event.details == {"transaction_count": 3, "budget_count": 1}
