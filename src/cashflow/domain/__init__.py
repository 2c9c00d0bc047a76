"""Domain layer - ledger models and validation rules with no I/O."""

from cashflow.domain.models import (
    AccountType,
    StoreStatus,
    Currency,
    ExchangeRate,
    Account,
    Document,
    Metadata,
    LoadStats,
)

__all__ = [
    "AccountType",
    "StoreStatus",
    "Currency",
    "ExchangeRate",
    "Account",
    "Document",
    "Metadata",
    "LoadStats",
]
