"""Domain models."""

from cashflow.domain.models.enums import AccountType, StoreStatus
from cashflow.domain.models.currency import (
    Currency,
    ExchangeRate,
    DEFAULT_RATE_SOURCE,
    ISO_4217_CURRENCIES,
    iso_currency,
    search_currencies,
)
from cashflow.domain.models.account import (
    Account,
    ACCOUNT_SEPARATOR,
    split_account_name,
    rename_root,
    name_prefixes,
)
from cashflow.domain.models.document import (
    Document,
    Metadata,
    LoadStats,
    Record,
    DOCUMENT_VERSION,
)

__all__ = [
    "AccountType",
    "StoreStatus",
    "Currency",
    "ExchangeRate",
    "DEFAULT_RATE_SOURCE",
    "ISO_4217_CURRENCIES",
    "iso_currency",
    "search_currencies",
    "Account",
    "ACCOUNT_SEPARATOR",
    "split_account_name",
    "rename_root",
    "name_prefixes",
    "Document",
    "Metadata",
    "LoadStats",
    "Record",
    "DOCUMENT_VERSION",
]
