"""
Tests for currency conversion, filtering, aggregation and budget utilization.

All date-relative tests use a fixed `now` so results never depend on
when the suite runs.
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from expense_tracker.analytics import (
    TransactionFilter,
    UnknownCurrencyError,
    category_spending_for_period,
    over_budget,
    period_window,
    quantize_money,
    safe_percentage,
    spending_by_category,
    utilization,
)
from expense_tracker.models import (
    DEFAULT_CATEGORIES,
    Budget,
    BudgetPeriod,
    DateFilter,
    FilterCriteria,
    TransactionType,
)

from tests.conftest import NOW, make_transaction


class TestCurrencyConverter:
    """Tests for CurrencyConverter."""

    def test_same_currency_is_identity(self, converter):
        assert converter.convert(Decimal("12.34"), "EUR", "EUR") == Decimal("12.34")

    def test_convert_from_usd(self, converter):
        assert converter.convert(Decimal("100"), "USD", "EUR") == Decimal("92")

    def test_convert_through_usd(self, converter):
        converted = converter.convert(Decimal("92"), "EUR", "GBP")
        assert quantize_money(converted) == Decimal("79.00")

    @pytest.mark.parametrize("code", ["EUR", "GBP", "JPY", "INR", "CNY"])
    def test_round_trip_within_a_cent(self, converter, code):
        """Converting there and back again stays within rounding error."""
        amount = Decimal("123.45")
        there = converter.convert(amount, "USD", code)
        back = converter.convert(there, code, "USD")
        assert abs(back - amount) < Decimal("0.01")

    def test_unknown_currency_raises(self, converter):
        with pytest.raises(UnknownCurrencyError):
            converter.convert(Decimal("1"), "USD", "XYZ")
        with pytest.raises(UnknownCurrencyError):
            converter.convert(Decimal("1"), "XYZ", "XYZ")

    def test_format_money(self, converter):
        assert converter.format_money(Decimal("36.8"), "EUR") == "€36.80"
        assert converter.format_money(Decimal("1234.5"), "USD") == "$1,234.50"
        assert converter.format_money(Decimal("-55.2"), "USD") == "-$55.20"

    def test_format_money_rounds_half_up(self, converter):
        assert converter.format_money(Decimal("0.005"), "GBP") == "£0.01"

    def test_supports(self, converter):
        assert converter.supports("INR")
        assert not converter.supports("XYZ")


class TestAggregation:
    """Tests for LedgerAggregator."""

    def test_totals_in_usd(self, aggregator, salary_and_groceries):
        """Income 100 and a 40 Food expense in USD."""
        summary = aggregator.aggregate(salary_and_groceries, "USD")

        assert quantize_money(summary.balance) == Decimal("60.00")
        assert quantize_money(summary.income) == Decimal("100.00")
        assert quantize_money(summary.expenses) == Decimal("40.00")
        assert quantize_money(summary.category_totals["expense-Food"]) == Decimal("40.00")
        assert summary.transaction_count == 2

    def test_totals_in_eur(self, aggregator, salary_and_groceries):
        """Same list displayed in EUR at rate 0.92."""
        summary = aggregator.aggregate(salary_and_groceries, "EUR")

        assert quantize_money(summary.income) == Decimal("92.00")
        assert quantize_money(summary.expenses) == Decimal("36.80")
        assert quantize_money(summary.balance) == Decimal("55.20")

    def test_balance_identity(self, aggregator):
        transactions = [
            make_transaction(amount="19.99", currency="GBP"),
            make_transaction(amount="1500", currency="JPY", category="Travel"),
            make_transaction(
                amount="250.10",
                currency="EUR",
                type=TransactionType.INCOME,
                category="Freelance",
            ),
            make_transaction(amount="0.01", currency="INR", category="Shopping"),
        ]
        for code in ["USD", "EUR", "JPY", "CNY"]:
            summary = aggregator.aggregate(transactions, code)
            assert summary.balance == summary.income - summary.expenses

    def test_category_totals_sum_to_type_totals(self, aggregator):
        transactions = [
            make_transaction(amount="10", category="Food"),
            make_transaction(amount="20", category="Food", currency="EUR"),
            make_transaction(amount="30", category="Travel", currency="GBP"),
            make_transaction(
                amount="500",
                type=TransactionType.INCOME,
                category="Salary",
                currency="INR",
            ),
        ]
        summary = aggregator.aggregate(transactions, "USD")

        expense_sum = sum(
            v for k, v in summary.category_totals.items() if k.startswith("expense-")
        )
        income_sum = sum(
            v for k, v in summary.category_totals.items() if k.startswith("income-")
        )
        assert quantize_money(expense_sum) == quantize_money(summary.expenses)
        assert quantize_money(income_sum) == quantize_money(summary.income)

    def test_empty_list(self, aggregator):
        summary = aggregator.aggregate([], "USD")

        assert summary.balance == 0
        assert summary.income == 0
        assert summary.expenses == 0
        assert summary.category_totals == {}
        assert aggregator.category_percentage(
            summary, TransactionType.EXPENSE, "Food"
        ) == 0

    def test_unknown_display_currency(self, aggregator):
        with pytest.raises(UnknownCurrencyError):
            aggregator.aggregate([], "XYZ")

    def test_category_percentage(self, aggregator):
        transactions = [
            make_transaction(amount="30", category="Food"),
            make_transaction(amount="10", category="Travel"),
        ]
        summary = aggregator.aggregate(transactions, "USD")

        assert aggregator.category_percentage(
            summary, TransactionType.EXPENSE, "Food"
        ) == Decimal("75")
        assert aggregator.category_percentage(
            summary, TransactionType.INCOME, "Salary"
        ) == 0

    def test_category_breakdown_follows_vocabulary(self, aggregator, salary_and_groceries):
        summary = aggregator.aggregate(salary_and_groceries, "USD")
        rows = aggregator.category_breakdown(
            summary, TransactionType.EXPENSE, DEFAULT_CATEGORIES
        )

        assert [r.category for r in rows] == list(DEFAULT_CATEGORIES.expense)
        food = rows[0]
        assert food.amount == Decimal("40")
        assert food.percentage == Decimal("100")
        assert all(r.amount == 0 for r in rows[1:])

    def test_category_breakdown_keeps_unknown_categories(self, aggregator):
        transactions = [make_transaction(category="Pets")]
        summary = aggregator.aggregate(transactions, "USD")
        rows = aggregator.category_breakdown(
            summary, TransactionType.EXPENSE, DEFAULT_CATEGORIES
        )
        assert rows[-1].category == "Pets"

    def test_top_categories(self, aggregator):
        transactions = [
            make_transaction(amount="10", category="Food"),
            make_transaction(amount="50", category="Travel"),
            make_transaction(amount="30", category="Shopping"),
        ]
        summary = aggregator.aggregate(transactions, "USD")
        top = aggregator.top_categories(summary, limit=2)

        assert [r.category for r in top] == ["Travel", "Shopping"]

    def test_income_vs_expense(self, aggregator, salary_and_groceries):
        summary = aggregator.aggregate(salary_and_groceries, "USD")
        assert aggregator.income_vs_expense(summary) == [
            {"name": "Income", "value": Decimal("100")},
            {"name": "Expenses", "value": Decimal("40")},
        ]

    def test_monthly_trend(self, aggregator):
        transactions = [
            make_transaction(amount="40", date=datetime(2024, 3, 2)),
            make_transaction(amount="10", date=datetime(2024, 1, 20)),
            make_transaction(
                amount="100",
                type=TransactionType.INCOME,
                category="Salary",
                date=datetime(2024, 3, 1),
            ),
        ]
        trend = aggregator.monthly_trend(transactions, "USD")

        assert [p.month for p in trend] == ["2024-01", "2024-03"]
        assert trend[0].expenses == Decimal("10")
        assert trend[1].income == Decimal("100")
        assert trend[1].net == Decimal("60")

    def test_safe_percentage(self):
        assert safe_percentage(Decimal("5"), Decimal("0")) == 0
        assert safe_percentage(Decimal("1"), Decimal("4")) == Decimal("25")


class TestTransactionFilter:
    """Tests for TransactionFilter."""

    @pytest.fixture
    def engine(self):
        return TransactionFilter()

    def test_today_excludes_yesterday_but_week_includes_it(self, engine):
        yesterday = make_transaction(date=NOW - timedelta(days=1))

        today_only = engine.apply([yesterday], FilterCriteria(date_filter=DateFilter.TODAY), NOW)
        this_week = engine.apply([yesterday], FilterCriteria(date_filter=DateFilter.WEEK), NOW)

        assert today_only == []
        assert this_week == [yesterday]

    def test_week_is_rolling_seven_days(self, engine):
        inside = make_transaction(date=NOW - timedelta(days=6, hours=23))
        outside = make_transaction(date=NOW - timedelta(days=7, seconds=1))

        result = engine.apply(
            [inside, outside], FilterCriteria(date_filter=DateFilter.WEEK), NOW
        )
        assert result == [inside]

    def test_month_is_calendar_month(self, engine):
        first = make_transaction(date=datetime(2024, 3, 1, 0, 0))
        previous = make_transaction(date=datetime(2024, 2, 29, 23, 59))
        last_year = make_transaction(date=datetime(2023, 3, 10))

        result = engine.apply(
            [first, previous, last_year],
            FilterCriteria(date_filter=DateFilter.MONTH),
            NOW,
        )
        assert result == [first]

    def test_search_matches_title_or_category_case_insensitive(self, engine):
        coffee = make_transaction(title="Morning Coffee", category="Food")
        taxi = make_transaction(title="Taxi", category="Transportation")

        assert engine.apply([coffee, taxi], FilterCriteria(search_term="COFFEE"), NOW) == [coffee]
        assert engine.apply([coffee, taxi], FilterCriteria(search_term="transport"), NOW) == [taxi]

    def test_category_filter(self, engine):
        food = make_transaction(category="Food")
        travel = make_transaction(category="Travel")

        assert engine.apply([food, travel], FilterCriteria(category_filter="Travel"), NOW) == [travel]
        assert engine.apply([food, travel], FilterCriteria(category_filter="all"), NOW) == [food, travel]

    def test_predicates_are_combined(self, engine):
        match = make_transaction(title="Lunch", category="Food")
        wrong_category = make_transaction(title="Lunch flight", category="Travel")
        too_old = make_transaction(title="Lunch", category="Food", date=datetime(2023, 1, 1))

        criteria = FilterCriteria(
            search_term="lunch",
            category_filter="Food",
            date_filter=DateFilter.MONTH,
        )
        assert engine.apply([match, wrong_category, too_old], criteria, NOW) == [match]

    def test_filter_is_idempotent_and_order_preserving(self, engine):
        transactions = [
            make_transaction(title="A", date=NOW - timedelta(days=1)),
            make_transaction(title="B", date=NOW - timedelta(days=30)),
            make_transaction(title="C", date=NOW),
        ]
        criteria = FilterCriteria(date_filter=DateFilter.WEEK)

        once = engine.apply(transactions, criteria, NOW)
        twice = engine.apply(once, criteria, NOW)

        assert [t.title for t in once] == ["A", "C"]
        assert twice == once
        assert len(transactions) == 3

    def test_empty_criteria_returns_everything(self, engine, salary_and_groceries):
        assert engine.apply(salary_and_groceries, FilterCriteria(), NOW) == salary_and_groceries


class TestBudgetUtilization:
    """Tests for period windows and budget utilization."""

    def test_weekly_window_is_rolling(self):
        start, end = period_window(BudgetPeriod.WEEKLY, NOW)
        assert start == NOW - timedelta(days=7)
        assert end is None

    def test_monthly_window(self):
        assert period_window(BudgetPeriod.MONTHLY, NOW) == (
            datetime(2024, 3, 1),
            datetime(2024, 4, 1),
        )

    def test_monthly_window_in_december(self):
        assert period_window("month", datetime(2024, 12, 15)) == (
            datetime(2024, 12, 1),
            datetime(2025, 1, 1),
        )

    def test_yearly_window(self):
        assert period_window("yearly", NOW) == (
            datetime(2024, 1, 1),
            datetime(2025, 1, 1),
        )

    def test_under_budget(self, converter):
        budgets = [Budget(category="Food", amount=Decimal("50"))]
        rows = category_spending_for_period(
            [make_transaction(amount="40")], budgets, "month", converter, "USD", now=NOW
        )

        assert len(rows) == 1
        assert rows[0].percentage == Decimal("80")
        assert not rows[0].is_over_budget

    def test_over_budget_percentage_not_clamped(self, converter):
        budgets = [Budget(category="Food", amount=Decimal("50"))]
        rows = category_spending_for_period(
            [make_transaction(amount="60")], budgets, "month", converter, "USD", now=NOW
        )

        assert rows[0].percentage == Decimal("120")
        assert rows[0].is_over_budget
        assert rows[0].bar_percentage == Decimal("100")
        assert over_budget(rows) == rows

    def test_spending_is_converted_to_budget_currency(self, converter):
        budgets = [Budget(category="Food", amount=Decimal("100"))]
        rows = category_spending_for_period(
            [make_transaction(amount="46", currency="EUR")],
            budgets,
            BudgetPeriod.MONTHLY,
            converter,
            "USD",
            now=NOW,
        )
        assert rows[0].amount == Decimal("50")
        assert rows[0].percentage == Decimal("50")

    def test_outside_period_is_ignored(self, converter):
        budgets = [Budget(category="Food", amount=Decimal("50"))]
        rows = category_spending_for_period(
            [make_transaction(amount="40", date=datetime(2024, 2, 10))],
            budgets,
            "month",
            converter,
            "USD",
            now=NOW,
        )
        assert rows[0].amount == 0
        assert rows[0].percentage == 0

    def test_income_is_not_spending(self, converter):
        income = make_transaction(type=TransactionType.INCOME, category="Salary")
        assert spending_by_category([income], converter, "USD") == {}

    def test_every_category_and_budget_appears(self):
        spending = {"Travel": Decimal("30"), "Food": Decimal("70")}
        budgets = [
            Budget(category="Food", amount=Decimal("50")),
            Budget(category="Housing", amount=Decimal("900"), start_date=date(2024, 1, 1)),
        ]
        rows = utilization(spending, budgets)

        assert [r.category for r in rows] == ["Food", "Travel", "Housing"]
        travel = rows[1]
        assert travel.budget_amount == 0
        assert travel.percentage == 0
        housing = rows[2]
        assert housing.amount == 0
        assert housing.percentage == 0

    def test_no_transactions_no_budgets(self):
        assert utilization({}, []) == []
