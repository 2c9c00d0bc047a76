"""Enumerations for domain models."""

from enum import Enum


class AccountType(str, Enum):
    """Root categories of the chart of accounts."""

    ASSETS = "Assets"
    LIABILITIES = "Liabilities"
    EQUITY = "Equity"
    INCOME = "Income"
    EXPENSES = "Expenses"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class StoreStatus(str, Enum):
    """Lifecycle of the in-memory document."""

    UNLOADED = "UNLOADED"
    LOADED = "LOADED"
    MODIFIED = "MODIFIED"
    SAVING = "SAVING"
