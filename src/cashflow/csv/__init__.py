"""CSV export utilities."""

from cashflow.csv.exporter import (
    CsvExporter,
    ACCOUNT_COLUMNS,
    CURRENCY_COLUMNS,
    EXCHANGE_RATE_COLUMNS,
)

__all__ = [
    "CsvExporter",
    "ACCOUNT_COLUMNS",
    "CURRENCY_COLUMNS",
    "EXCHANGE_RATE_COLUMNS",
]
