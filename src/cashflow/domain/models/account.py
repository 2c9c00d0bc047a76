"""Account domain model."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from cashflow.domain.models.enums import AccountType

ACCOUNT_SEPARATOR = ":"


@dataclass
class Account:
    """
    Node of the hierarchical chart of accounts.

    ``name`` is a colon path (``Assets:Bank:CHF``) whose first segment always
    mirrors ``type``.
    """

    id: str
    type: AccountType
    name: str
    currency: str
    opened: Optional[date] = None
    description: str = ""
    closed: bool = False
    closed_date: Optional[date] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.type, str):
            self.type = AccountType(self.type)

    @property
    def segments(self) -> list[str]:
        return split_account_name(self.name)

    @property
    def parent_name(self) -> Optional[str]:
        """Name of the parent account, None for a second-level account."""
        segments = self.segments
        if len(segments) <= 2:
            return None
        return ACCOUNT_SEPARATOR.join(segments[:-1])

    @property
    def depth(self) -> int:
        return len(self.segments)


def split_account_name(name: str) -> list[str]:
    return name.strip().split(ACCOUNT_SEPARATOR)


def rename_root(name: str, account_type: AccountType) -> str:
    """Replace the first segment of ``name`` with the account type, keeping the rest."""
    segments = split_account_name(name)
    segments[0] = account_type.value
    return ACCOUNT_SEPARATOR.join(segments)


def name_prefixes(name: str) -> list[str]:
    """``Assets:Bank:CHF`` -> ``["Assets", "Assets:Bank", "Assets:Bank:CHF"]``."""
    segments = split_account_name(name)
    return [ACCOUNT_SEPARATOR.join(segments[: i + 1]) for i in range(len(segments))]
