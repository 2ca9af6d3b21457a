"""
CSV export of transactions.

Format:
    Title,Amount,Type,Category,Date,Description
    "Groceries",40.00,"expense","Food","2024-03-01","weekly shop"

Text fields are quoted; amounts are written as plain decimals in the
transaction's own currency.
"""

import csv
import io
from datetime import date
from typing import Iterable, Optional

from expense_tracker.models.ledger import Transaction


CSV_HEADERS = ["Title", "Amount", "Type", "Category", "Date", "Description"]


class CsvExporter:
    """Renders transactions to CSV text."""

    def filename(self, on: Optional[date] = None) -> str:
        on = on or date.today()
        return f"transactions-{on.strftime('%Y-%m-%d')}.csv"

    def rows(self, transactions: Iterable[Transaction]) -> list[list]:
        return [
            [
                t.title,
                t.amount,
                t.type.value,
                t.category,
                t.date.strftime("%Y-%m-%d"),
                t.notes or "",
            ]
            for t in transactions
        ]

    def render(self, transactions: Iterable[Transaction]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        writer.writerows(self.rows(transactions))
        return buf.getvalue()
