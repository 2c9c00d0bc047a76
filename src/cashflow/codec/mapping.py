"""Conversion between the parsed TOML tree and the typed Document."""

import copy
import dataclasses
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from cashflow.core.exceptions import MalformedDocumentError
from cashflow.domain.models import (
    Account,
    AccountType,
    Currency,
    DEFAULT_RATE_SOURCE,
    Document,
    ExchangeRate,
    Metadata,
)

OPAQUE_SECTIONS = ("transaction", "budget", "recurring")
TOP_LEVEL_KEYS = ("version", "metadata", "currency", "account", "transaction", "budget", "recurring")
METADATA_KEYS = ("created", "lastModified", "defaultCurrency")
CURRENCY_KEYS = ("code", "name", "symbol", "decimalPlaces", "isDefault", "exchangeRate")
RATE_KEYS = ("date", "rate", "source")
ACCOUNT_KEYS = ("id", "name", "type", "currency", "opened", "description", "closed", "closedDate")


# =============================================================================
# TREE -> DOCUMENT
# =============================================================================


def document_from_tree(tree: dict[str, Any]) -> Document:
    """
    Build a typed Document from a normalized tree.

    Raises MalformedDocumentError naming the offending path when a required
    field is missing or has the wrong type. Domain invariants are not checked.
    """
    metadata_raw = tree.get("metadata")
    if not isinstance(metadata_raw, dict):
        raise MalformedDocumentError("La section [metadata] est obligatoire.", path="metadata")

    extra = _extra(tree, TOP_LEVEL_KEYS)
    sections = {key: _opaque_section(tree, key, extra) for key in OPAQUE_SECTIONS}

    return Document(
        version=_require_str(tree, "version", "version"),
        metadata=_metadata_from_tree(metadata_raw),
        currencies=[
            _currency_from_tree(item, f"currency[{i}]")
            for i, item in enumerate(_table_list(tree, "currency"))
        ],
        accounts=[
            _account_from_tree(item, f"account[{i}]")
            for i, item in enumerate(_table_list(tree, "account"))
        ],
        transactions=sections["transaction"],
        budgets=sections["budget"],
        recurring=sections["recurring"],
        extra=extra,
    )


def _metadata_from_tree(raw: dict[str, Any]) -> Metadata:
    return Metadata(
        created=_optional_date(raw, "created", "metadata.created"),
        last_modified=_optional_date(raw, "lastModified", "metadata.lastModified"),
        default_currency=_require_str(raw, "defaultCurrency", "metadata.defaultCurrency"),
        extra=_extra(raw, METADATA_KEYS),
    )


def _currency_from_tree(raw: dict[str, Any], path: str) -> Currency:
    code = _require_str(raw, "code", f"{path}.code")
    decimal_places = raw.get("decimalPlaces", 2)
    if isinstance(decimal_places, bool) or not isinstance(decimal_places, int):
        raise MalformedDocumentError(
            f"{path}.decimalPlaces doit être un entier.", path=f"{path}.decimalPlaces"
        )
    is_default = raw.get("isDefault", False)
    if not isinstance(is_default, bool):
        raise MalformedDocumentError(f"{path}.isDefault doit être un booléen.", path=f"{path}.isDefault")

    return Currency(
        code=code,
        name=_require_str(raw, "name", f"{path}.name"),
        symbol=_optional_str(raw, "symbol", f"{path}.symbol") or code,
        decimal_places=decimal_places,
        is_default=is_default,
        exchange_rates=[
            _rate_from_tree(item, f"{path}.exchangeRate[{i}]")
            for i, item in enumerate(_table_list(raw, "exchangeRate", path))
        ],
        extra=_extra(raw, CURRENCY_KEYS),
    )


def _rate_from_tree(raw: dict[str, Any], path: str) -> ExchangeRate:
    rate_date = raw.get("date")
    if not isinstance(rate_date, date):
        raise MalformedDocumentError(f"{path}.date doit être une date.", path=f"{path}.date")
    rate = raw.get("rate")
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise MalformedDocumentError(f"{path}.rate doit être un nombre.", path=f"{path}.rate")
    return ExchangeRate(
        date=rate_date,
        rate=Decimal(str(rate)),
        source=_optional_str(raw, "source", f"{path}.source") or DEFAULT_RATE_SOURCE,
        extra=_extra(raw, RATE_KEYS),
    )


def _account_from_tree(raw: dict[str, Any], path: str) -> Account:
    type_value = _require_str(raw, "type", f"{path}.type")
    if type_value not in AccountType.values():
        raise MalformedDocumentError(
            f"{path}.type invalide : {type_value!r}.", path=f"{path}.type"
        )
    closed = raw.get("closed", False)
    if not isinstance(closed, bool):
        raise MalformedDocumentError(f"{path}.closed doit être un booléen.", path=f"{path}.closed")

    return Account(
        id=_require_str(raw, "id", f"{path}.id"),
        type=AccountType(type_value),
        name=_require_str(raw, "name", f"{path}.name"),
        currency=_require_str(raw, "currency", f"{path}.currency"),
        opened=_optional_date(raw, "opened", f"{path}.opened"),
        description=_optional_str(raw, "description", f"{path}.description") or "",
        closed=closed,
        closed_date=_optional_date(raw, "closedDate", f"{path}.closedDate"),
        extra=_extra(raw, ACCOUNT_KEYS),
    )


def _table_list(raw: dict[str, Any], key: str, parent: Optional[str] = None) -> list[dict[str, Any]]:
    path = f"{parent}.{key}" if parent else key
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise MalformedDocumentError(
            f"La section {path} doit être un tableau de tables ([[{path}]]).", path=path
        )
    return value


def _opaque_section(tree: dict[str, Any], key: str, extra: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Records of an opaque section. Any other shape counts as no records and is
    kept verbatim in ``extra`` so it is written back unchanged.
    """
    value = tree.get(key)
    if isinstance(value, list) and all(isinstance(item, dict) for item in value):
        return value
    if value is not None:
        extra[key] = value
    return []


def _require_str(raw: dict[str, Any], key: str, path: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedDocumentError(f"Le champ {path} est obligatoire.", path=path)
    return value


def _optional_str(raw: dict[str, Any], key: str, path: str) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedDocumentError(f"Le champ {path} doit être un texte.", path=path)
    return value


def _optional_date(raw: dict[str, Any], key: str, path: str) -> Optional[date]:
    value = raw.get(key)
    if value is not None and not isinstance(value, date):
        raise MalformedDocumentError(f"Le champ {path} doit être une date.", path=path)
    return value


def _extra(raw: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {key: value for key, value in raw.items() if key not in known}


# =============================================================================
# DOCUMENT -> TREE
# =============================================================================


def document_to_tree(document: Document) -> dict[str, Any]:
    """Build a TOML-ready tree: no None values, scalars ahead of sub-tables."""
    tree: dict[str, Any] = {
        "version": document.version,
        "metadata": {
            "created": document.metadata.created,
            "lastModified": document.metadata.last_modified,
            "defaultCurrency": document.metadata.default_currency,
            **copy.deepcopy(document.metadata.extra),
        },
        "currency": [_currency_to_tree(currency) for currency in document.currencies],
    }
    if document.accounts:
        tree["account"] = [_account_to_tree(account) for account in document.accounts]
    if document.transactions:
        tree["transaction"] = copy.deepcopy(document.transactions)
    if document.budgets:
        tree["budget"] = copy.deepcopy(document.budgets)
    if document.recurring:
        tree["recurring"] = copy.deepcopy(document.recurring)
    tree.update(copy.deepcopy(document.extra))
    return _scalars_first(tree)


def _currency_to_tree(currency: Currency) -> dict[str, Any]:
    data: dict[str, Any] = {
        "code": currency.code,
        "name": currency.name,
        "symbol": currency.symbol,
        "decimalPlaces": currency.decimal_places,
        "isDefault": currency.is_default,
        **copy.deepcopy(currency.extra),
    }
    if currency.exchange_rates:
        data["exchangeRate"] = [_rate_to_tree(rate) for rate in currency.exchange_rates]
    return data


def _rate_to_tree(rate: ExchangeRate) -> dict[str, Any]:
    return {
        "date": rate.date,
        "rate": float(rate.rate),
        "source": rate.source,
        **copy.deepcopy(rate.extra),
    }


def _account_to_tree(account: Account) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": account.id,
        "name": account.name,
        "type": account.type.value,
        "currency": account.currency,
        "opened": account.opened,
    }
    if account.description:
        data["description"] = account.description
    if account.closed:
        data["closed"] = True
    data["closedDate"] = account.closed_date
    data.update(copy.deepcopy(account.extra))
    return data


def _is_table(value: Any) -> bool:
    if isinstance(value, dict):
        return True
    return isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value)


def _scalars_first(mapping: dict[str, Any]) -> dict[str, Any]:
    """Drop None values and order plain values before tables and arrays of tables."""
    values: dict[str, Any] = {}
    tables: dict[str, Any] = {}
    for key, value in mapping.items():
        if value is None:
            continue
        if isinstance(value, dict):
            tables[key] = _scalars_first(value)
        elif _is_table(value):
            tables[key] = [_scalars_first(item) for item in value]
        elif isinstance(value, Decimal):
            values[key] = float(value)
        else:
            values[key] = value
    return {**values, **tables}


def replace_last_modified(document: Document, stamp: Any) -> Document:
    """Shallow copy of ``document`` with a new ``metadata.last_modified``."""
    return dataclasses.replace(
        document,
        metadata=dataclasses.replace(document.metadata, last_modified=stamp),
    )
