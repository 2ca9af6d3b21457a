"""Tests for the CSV and PDF exporters."""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest

from expense_tracker.services.export import (
    CSV_HEADERS,
    REPORT_FILENAME,
    TABLE_HEADERS,
    CsvExporter,
    PdfReportExporter,
)

from tests.conftest import make_transaction


class TestCsvExporter:
    """Tests for CsvExporter."""

    def test_filename(self):
        assert CsvExporter().filename(date(2024, 3, 1)) == "transactions-2024-03-01.csv"

    def test_header_and_quoting(self):
        transaction = make_transaction(
            title="Coffee, large",
            amount="4.50",
            date=datetime(2024, 3, 1, 8, 30),
            notes='said "thanks"',
        )
        lines = CsvExporter().render([transaction]).splitlines()

        assert lines[0] == '"Title","Amount","Type","Category","Date","Description"'
        assert lines[1] == '"Coffee, large",4.50,"expense","Food","2024-03-01","said ""thanks"""'

    def test_parses_back(self):
        transactions = [
            make_transaction(title="Rent", amount="900", category="Housing"),
            make_transaction(title="Lunch", amount="12.30"),
        ]
        reader = csv.reader(io.StringIO(CsvExporter().render(transactions)))
        rows = list(reader)

        assert rows[0] == CSV_HEADERS
        assert [r[0] for r in rows[1:]] == ["Rent", "Lunch"]
        assert rows[2][1] == "12.30"

    def test_empty_export_has_header_only(self):
        assert CsvExporter().render([]).splitlines() == [",".join(f'"{h}"' for h in CSV_HEADERS)]


class TestPdfReportExporter:
    """Tests for PdfReportExporter."""

    def test_summary_lines(self, converter, aggregator, salary_and_groceries):
        summary = aggregator.aggregate(salary_and_groceries, "USD")
        lines = PdfReportExporter(converter).summary_lines(summary)

        assert lines == [
            "Total Balance: $60.00",
            "Total Income: $100.00",
            "Total Expenses: $40.00",
        ]

    def test_amount_cell_shows_original_and_converted(self, converter):
        transaction = make_transaction(amount="10", currency="EUR")
        cell = PdfReportExporter(converter).amount_cell(transaction, "USD")
        assert cell == "€10.00 ($10.87)"

    @pytest.mark.parametrize("code, symbol", [
        ("USD", "$"),
        ("EUR", "€"),
        ("GBP", "£"),
        ("JPY", "¥"),
        ("INR", "INR "),
    ])
    def test_symbol_falls_back_to_code_without_font_glyph(self, converter, code, symbol):
        assert PdfReportExporter(converter).symbol(code) == symbol

    def test_rupee_amounts_use_the_code(self, converter):
        transaction = make_transaction(amount="82.83", currency="INR")
        cell = PdfReportExporter(converter).amount_cell(transaction, "USD")
        assert cell == "INR 82.83 ($1.00)"

    def test_rupee_summary_lines(self, converter, aggregator, salary_and_groceries):
        summary = aggregator.aggregate(salary_and_groceries, "INR")
        lines = PdfReportExporter(converter).summary_lines(summary)

        assert lines[1] == "Total Income: INR 8,283.00"
        assert all("₹" not in line for line in lines)

    def test_render_with_rupee_display_currency(
        self, converter, aggregator, salary_and_groceries
    ):
        summary = aggregator.aggregate(salary_and_groceries, "INR")
        content = PdfReportExporter(converter).render(salary_and_groceries, summary)
        assert content.startswith(b"%PDF")

    def test_table_rows(self, converter):
        transaction = make_transaction(title="Groceries", date=datetime(2024, 3, 1))
        rows = PdfReportExporter(converter).table_rows([transaction], "USD")

        assert rows[0] == TABLE_HEADERS
        assert rows[1] == ["2024-03-01", "Groceries", "Food", "expense", "$40.00 ($40.00)"]

    def test_render(self, converter, aggregator, salary_and_groceries):
        summary = aggregator.aggregate(salary_and_groceries, "EUR")
        exporter = PdfReportExporter(converter)

        content = exporter.render(salary_and_groceries, summary)

        assert exporter.filename == REPORT_FILENAME
        assert content.startswith(b"%PDF")

    def test_render_empty(self, converter, aggregator):
        summary = aggregator.aggregate([], "USD")
        content = PdfReportExporter(converter).render([], summary)
        assert content.startswith(b"%PDF")
