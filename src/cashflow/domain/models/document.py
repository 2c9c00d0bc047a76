"""Document aggregate: the whole ledger held in memory."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

from cashflow.core.timezone import now_utc
from cashflow.domain.models.account import Account
from cashflow.domain.models.currency import Currency, iso_currency

DOCUMENT_VERSION = "1.0.0"

Timestamp = Union[datetime, date]
Record = dict[str, Any]


@dataclass
class Metadata:
    """File-level metadata (``[metadata]`` table)."""

    created: Optional[Timestamp]
    last_modified: Optional[Timestamp]
    default_currency: str
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadStats:
    """Entity counts of a document."""

    currencies: int = 0
    accounts: int = 0
    transactions: int = 0
    budgets: int = 0
    recurring: int = 0


@dataclass
class Document:
    """
    Root aggregate of the ledger.

    Transactions, budgets and recurring entries are carried as opaque records:
    they are counted and round-tripped but not interpreted, except for the
    ``posting[].accountId`` and ``posting[].currency`` references that guard
    deletions.
    """

    version: str
    metadata: Metadata
    currencies: list[Currency] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
    transactions: list[Record] = field(default_factory=list)
    budgets: list[Record] = field(default_factory=list)
    recurring: list[Record] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new_empty(cls, default_currency: str = "CHF") -> "Document":
        """Create an empty document seeded with one default currency."""
        currency = iso_currency(default_currency) or Currency(
            code=default_currency,
            name=default_currency,
            symbol=default_currency,
        )
        currency.is_default = True
        created = now_utc()
        return cls(
            version=DOCUMENT_VERSION,
            metadata=Metadata(
                created=created,
                last_modified=created,
                default_currency=currency.code,
            ),
            currencies=[currency],
        )

    @property
    def stats(self) -> LoadStats:
        return LoadStats(
            currencies=len(self.currencies),
            accounts=len(self.accounts),
            transactions=len(self.transactions),
            budgets=len(self.budgets),
            recurring=len(self.recurring),
        )

    def default_currencies(self) -> list[Currency]:
        return [currency for currency in self.currencies if currency.is_default]

    def postings(self) -> list[Record]:
        """All postings of all transactions, skipping malformed entries."""
        result: list[Record] = []
        for transaction in self.transactions:
            postings = transaction.get("posting")
            if isinstance(postings, list):
                result.extend(p for p in postings if isinstance(p, dict))
        return result
