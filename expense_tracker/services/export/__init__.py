"""Report export services (CSV and PDF)."""

from expense_tracker.services.export.csv_export import CSV_HEADERS, CsvExporter
from expense_tracker.services.export.pdf_report import (
    REPORT_FILENAME,
    TABLE_HEADERS,
    PdfReportExporter,
)

__all__ = [
    "CSV_HEADERS",
    "CsvExporter",
    "PdfReportExporter",
    "REPORT_FILENAME",
    "TABLE_HEADERS",
]
