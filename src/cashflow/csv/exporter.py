"""CSV export functionality."""

import csv
import io
from pathlib import Path
from typing import Iterable, Optional, Union

from cashflow.services.document_store import DocumentStore

ACCOUNT_COLUMNS = ["ID", "Nom", "Type", "Devise", "Date Ouverture", "Clôturé", "Date Clôture", "Description"]
CURRENCY_COLUMNS = ["Code", "Nom", "Symbole", "Décimales", "Par défaut", "Taux"]
EXCHANGE_RATE_COLUMNS = ["Devise", "Date", "Taux", "Source"]


class CsvExporter:
    """
    CSV exporter for ledger reference data.

    Each export returns the CSV text and, when ``path`` is given, also writes
    it to that file.
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    def export_accounts(self, path: Optional[Union[str, Path]] = None) -> str:
        rows = (
            [
                account.id,
                account.name,
                account.type.value,
                account.currency,
                account.opened.isoformat() if account.opened else "",
                "Oui" if account.closed else "Non",
                account.closed_date.isoformat() if account.closed_date else "",
                account.description or "",
            ]
            for account in self._store.list_accounts()
        )
        return self._write(ACCOUNT_COLUMNS, rows, path)

    def export_currencies(self, path: Optional[Union[str, Path]] = None) -> str:
        rows = (
            [
                currency.code,
                currency.name,
                currency.symbol,
                currency.decimal_places,
                "Oui" if currency.is_default else "Non",
                len(currency.exchange_rates),
            ]
            for currency in self._store.list_currencies()
        )
        return self._write(CURRENCY_COLUMNS, rows, path)

    def export_exchange_rates(
        self,
        path: Optional[Union[str, Path]] = None,
        code: Optional[str] = None,
    ) -> str:
        """Export rates of every currency, or of ``code`` only, newest first."""
        rows = (
            [currency.code, rate.date.isoformat(), str(rate.rate), rate.source]
            for currency in self._store.list_currencies()
            if code is None or currency.code == code
            for rate in currency.exchange_rates
        )
        return self._write(EXCHANGE_RATE_COLUMNS, rows, path)

    @staticmethod
    def _write(columns: list[str], rows: Iterable[list], path: Optional[Union[str, Path]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(columns)
        writer.writerows(rows)
        content = buffer.getvalue()

        if path is not None:
            file_path = Path(path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", newline="", encoding="utf-8") as csvfile:
                csvfile.write(content)
        return content
