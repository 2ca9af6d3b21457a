"""
PDF report of transactions.

Layout:
1. Title "Expense Tracker Report"
2. Total Balance / Total Income / Total Expenses in the display currency
3. Table: Date, Description, Category, Type, Amount

The Amount column shows the original amount followed by the display
currency equivalent, e.g. "€10.00 ($10.87)".

The report uses reportlab's built-in Helvetica, whose WinAnsi encoding has
no glyph for some currency symbols (e.g. ₹). Those amounts are written
with the currency code instead, e.g. "INR 82.83".
"""

import io
from decimal import Decimal
from typing import Iterable

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from expense_tracker.analytics.currency import CurrencyConverter
from expense_tracker.models.ledger import LedgerSummary, Transaction


REPORT_FILENAME = "expense-tracker-report.pdf"
REPORT_TITLE = "Expense Tracker Report"
TABLE_HEADERS = ["Date", "Description", "Category", "Type", "Amount"]

HEADER_FILL = colors.Color(66 / 255, 139 / 255, 202 / 255)
STRIPE_FILL = colors.Color(0.96, 0.96, 0.96)

# Encoding of the standard PDF fonts
FONT_ENCODING = "cp1252"


class PdfReportExporter:
    """Builds the PDF report with reportlab."""

    def __init__(self, converter: CurrencyConverter):
        self._converter = converter

    @property
    def filename(self) -> str:
        return REPORT_FILENAME

    def symbol(self, code: str) -> str:
        """Currency symbol if the report font can draw it, else the code."""
        symbol = self._converter.table.symbol(code)
        try:
            symbol.encode(FONT_ENCODING)
        except UnicodeEncodeError:
            return f"{code.upper()} "
        return symbol

    def money(self, amount: Decimal, code: str) -> str:
        return self._converter.format_money(amount, code, symbol=self.symbol(code))

    def summary_lines(self, summary: LedgerSummary) -> list[str]:
        code = summary.display_currency
        money = self.money
        return [
            f"Total Balance: {money(summary.balance, code)}",
            f"Total Income: {money(summary.income, code)}",
            f"Total Expenses: {money(summary.expenses, code)}",
        ]

    def amount_cell(self, transaction: Transaction, display_currency: str) -> str:
        original = self.money(transaction.amount, transaction.currency)
        converted = self._converter.convert(
            transaction.amount, transaction.currency, display_currency
        )
        return f"{original} ({self.money(converted, display_currency)})"

    def table_rows(
        self,
        transactions: Iterable[Transaction],
        display_currency: str,
    ) -> list[list[str]]:
        """Header row plus one row per transaction."""
        rows = [list(TABLE_HEADERS)]
        for t in transactions:
            rows.append([
                t.date.strftime("%Y-%m-%d"),
                t.title,
                t.category,
                t.type.value,
                self.amount_cell(t, display_currency),
            ])
        return rows

    def render(
        self,
        transactions: Iterable[Transaction],
        summary: LedgerSummary,
    ) -> bytes:
        """Render the report and return the PDF bytes."""
        styles = getSampleStyleSheet()
        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=A4,
            leftMargin=20 * mm,
            rightMargin=20 * mm,
            topMargin=20 * mm,
            bottomMargin=20 * mm,
            title=REPORT_TITLE,
        )

        story = [Paragraph(REPORT_TITLE, styles["Title"])]
        for line in self.summary_lines(summary):
            story.append(Paragraph(line, styles["Normal"]))
        story.append(Spacer(1, 8 * mm))

        table = Table(
            self.table_rows(transactions, summary.display_currency),
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE_FILL]),
            ("ALIGN", (-1, 1), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        story.append(table)

        doc.build(story)
        return buf.getvalue()
