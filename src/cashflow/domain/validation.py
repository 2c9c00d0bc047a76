"""
Validation rules for currencies, accounts and exchange rates.

Every rule is a pure function of its input and a read-only StoreIndex. A rule
returns a ValidationResult holding either the normalized value or a
non-empty list of ErrorDetail, never both, and never raises.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

from cashflow.core.exceptions import DuplicateKeyError, ErrorDetail
from cashflow.core.timezone import coerce_date
from cashflow.domain.models import (
    Account,
    AccountType,
    Currency,
    DEFAULT_RATE_SOURCE,
    Document,
    ExchangeRate,
    rename_root,
    split_account_name,
)

CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
MIN_DECIMAL_PLACES = 0
MAX_DECIMAL_PLACES = 8
MIN_ACCOUNT_SEGMENTS = 2

VALIDATION = "VALIDATION_ERROR"

T = TypeVar("T")


# =============================================================================
# INPUTS AND RESULTS
# =============================================================================


@dataclass
class CurrencyCreate:
    """Input data for creating a currency."""

    code: str
    name: str
    symbol: Optional[str] = None
    decimal_places: Any = 2
    is_default: bool = False


@dataclass
class CurrencyUpdate:
    """Partial update of a currency. The code is the key and cannot change."""

    name: Optional[str] = None
    symbol: Optional[str] = None
    decimal_places: Any = None
    is_default: Optional[bool] = None


@dataclass
class ExchangeRateCreate:
    """Input data for recording an exchange rate."""

    date: Union[date, str, None]
    rate: Any
    source: Optional[str] = None


@dataclass
class ExchangeRateUpdate:
    """Partial update of an exchange rate. The date is the key and cannot change."""

    rate: Any = None
    source: Optional[str] = None


@dataclass
class AccountCreate:
    """Input data for creating an account."""

    name: str
    type: Union[AccountType, str]
    currency: str
    opened: Union[date, str, None]
    description: str = ""


@dataclass
class AccountUpdate:
    """Partial update of an account. The id cannot change."""

    name: Optional[str] = None
    type: Union[AccountType, str, None] = None
    currency: Optional[str] = None
    opened: Union[date, str, None] = None
    description: Optional[str] = None


@dataclass
class ValidationResult(Generic[T]):
    """Either a normalized value or the list of errors explaining the rejection."""

    value: Optional[T] = None
    errors: list[ErrorDetail] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @classmethod
    def ok(cls, value: T) -> "ValidationResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, errors: list[ErrorDetail]) -> "ValidationResult[T]":
        return cls(errors=list(errors))


@dataclass(frozen=True)
class StoreIndex:
    """
    Read-only view of the store indices handed to the rules.

    ``today`` is evaluated by the store at validation time.
    """

    currencies: Mapping[str, Currency]
    accounts: Mapping[str, Account]
    account_names: frozenset[str]
    today: date

    @classmethod
    def build(cls, currencies: Mapping[str, Currency], accounts: Mapping[str, Account], today: date) -> "StoreIndex":
        return cls(
            currencies=MappingProxyType(dict(currencies)),
            accounts=MappingProxyType(dict(accounts)),
            account_names=frozenset(account.name for account in accounts.values()),
            today=today,
        )


def _error(field_name: str, message: str) -> ErrorDetail:
    return ErrorDetail(kind=VALIDATION, message=message, field=field_name)


def _duplicate(field_name: str, message: str) -> ErrorDetail:
    return DuplicateKeyError(message, field=field_name).to_detail()


# =============================================================================
# CURRENCY RULES
# =============================================================================


def _check_currency_code(code: Any) -> list[ErrorDetail]:
    if not isinstance(code, str) or not code.strip():
        return [_error("code", "Le code est obligatoire.")]
    if CURRENCY_CODE_PATTERN.match(code):
        return []
    if CURRENCY_CODE_PATTERN.match(code.upper()):
        return [_error("code", "Le code doit être en majuscules (ex: EUR).")]
    return [_error("code", "Code invalide. Utilisez 3 lettres majuscules (ISO 4217).")]


def _check_required_text(value: Any, field_name: str, label: str) -> list[ErrorDetail]:
    if not isinstance(value, str) or not value.strip():
        return [_error(field_name, f"Le {label} est obligatoire.")]
    return []


def _check_decimal_places(value: Any) -> list[ErrorDetail]:
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not MIN_DECIMAL_PLACES <= value <= MAX_DECIMAL_PLACES
    ):
        return [
            _error(
                "decimalPlaces",
                f"Le nombre de décimales doit être un entier entre {MIN_DECIMAL_PLACES} et {MAX_DECIMAL_PLACES}.",
            )
        ]
    return []


def validate_new_currency(data: CurrencyCreate, index: StoreIndex) -> ValidationResult[Currency]:
    """Validate a currency to add. Code uniqueness is checked against ``index``."""
    errors = _check_currency_code(data.code)
    if not errors and data.code in index.currencies:
        errors.append(_duplicate("code", f"La devise {data.code} existe déjà."))
    errors += _check_required_text(data.name, "name", "nom")
    symbol = data.symbol if data.symbol is not None else data.code
    errors += _check_required_text(symbol, "symbol", "symbole")
    errors += _check_decimal_places(data.decimal_places)
    if errors:
        return ValidationResult.fail(errors)

    return ValidationResult.ok(
        Currency(
            code=data.code,
            name=data.name.strip(),
            symbol=symbol.strip(),
            decimal_places=data.decimal_places,
            is_default=bool(data.is_default),
        )
    )


def validate_currency_update(
    currency: Currency,
    patch: CurrencyUpdate,
    index: StoreIndex,
) -> ValidationResult[Currency]:
    """Validate a patch against an existing currency and return the patched copy."""
    errors: list[ErrorDetail] = []
    if patch.name is not None:
        errors += _check_required_text(patch.name, "name", "nom")
    if patch.symbol is not None:
        errors += _check_required_text(patch.symbol, "symbol", "symbole")
    if patch.decimal_places is not None:
        errors += _check_decimal_places(patch.decimal_places)
    if patch.is_default is False and currency.is_default:
        errors.append(
            _error(
                "isDefault",
                "La devise par défaut ne peut pas être désactivée ; choisissez une autre devise par défaut.",
            )
        )
    if errors:
        return ValidationResult.fail(errors)

    updated = replace(currency, exchange_rates=list(currency.exchange_rates))
    if patch.name is not None:
        updated.name = patch.name.strip()
    if patch.symbol is not None:
        updated.symbol = patch.symbol.strip()
    if patch.decimal_places is not None:
        updated.decimal_places = patch.decimal_places
    if patch.is_default:
        updated.is_default = True
    return ValidationResult.ok(updated)


# =============================================================================
# EXCHANGE RATE RULES
# =============================================================================


def _coerce_rate(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return rate if rate.is_finite() else None


def _check_source(value: Any) -> tuple[str, list[ErrorDetail]]:
    if value is None:
        return DEFAULT_RATE_SOURCE, []
    if not isinstance(value, str):
        return DEFAULT_RATE_SOURCE, [_error("source", "La source doit être un texte.")]
    return value.strip() or DEFAULT_RATE_SOURCE, []


def _fits_toml_float(rate: Decimal) -> bool:
    """True when ``rate`` is written and read back through a TOML float unchanged."""
    return Decimal(repr(float(rate))) == rate


def _check_rate(value: Any) -> tuple[Optional[Decimal], list[ErrorDetail]]:
    rate = _coerce_rate(value)
    if rate is None or rate <= 0:
        return None, [_error("rate", "Le taux doit être supérieur à 0.")]
    if not _fits_toml_float(rate):
        return None, [_error("rate", "Le taux comporte trop de chiffres significatifs (15 au maximum).")]
    return rate, []


def validate_new_exchange_rate(currency: Currency, data: ExchangeRateCreate) -> ValidationResult[ExchangeRate]:
    """Validate a rate to add to ``currency``; dates are unique per currency."""
    if currency.is_default:
        return ValidationResult.fail(
            [_error("general", "Impossible d'ajouter un taux pour la devise par défaut.")]
        )

    errors: list[ErrorDetail] = []
    rate_date = coerce_date(data.date)
    if rate_date is None:
        errors.append(_error("date", "La date doit être au format YYYY-MM-DD."))
    elif currency.find_rate(rate_date) is not None:
        errors.append(_duplicate("date", "Un taux existe déjà pour cette date."))

    rate, rate_errors = _check_rate(data.rate)
    source, source_errors = _check_source(data.source)
    errors += rate_errors + source_errors
    if errors:
        return ValidationResult.fail(errors)

    return ValidationResult.ok(ExchangeRate(date=rate_date, rate=rate, source=source))


def validate_exchange_rate_update(rate: ExchangeRate, patch: ExchangeRateUpdate) -> ValidationResult[ExchangeRate]:
    """Validate a rate patch; only ``rate`` and ``source`` are editable."""
    updated = replace(rate)
    errors: list[ErrorDetail] = []
    if patch.rate is not None:
        value, rate_errors = _check_rate(patch.rate)
        errors += rate_errors
        updated.rate = value
    if patch.source is not None:
        updated.source, source_errors = _check_source(patch.source)
        errors += source_errors
    if errors:
        return ValidationResult.fail(errors)
    return ValidationResult.ok(updated)


# =============================================================================
# ACCOUNT RULES
# =============================================================================


def _check_account_type(value: Any) -> tuple[Optional[AccountType], list[ErrorDetail]]:
    if isinstance(value, AccountType):
        return value, []
    if isinstance(value, str) and value in AccountType.values():
        return AccountType(value), []
    if not value:
        return None, [_error("type", "Le type est obligatoire.")]
    return None, [_error("type", f"Type invalide. Utilisez : {', '.join(AccountType.values())}.")]


def _check_account_name(
    name: Any,
    account_type: Optional[AccountType],
    taken_names: frozenset[str],
) -> tuple[Optional[str], list[ErrorDetail]]:
    if not isinstance(name, str) or not name.strip():
        return None, [_error("name", "Le nom est obligatoire.")]

    normalized = name.strip()
    segments = split_account_name(normalized)
    errors: list[ErrorDetail] = []
    if len(segments) < MIN_ACCOUNT_SEGMENTS:
        errors.append(_error("name", 'Le nom doit contenir au moins 2 segments séparés par ":".'))
    if any(not segment.strip() for segment in segments):
        errors.append(_error("name", "Le nom ne peut pas contenir de segments vides."))
    if account_type is not None and segments[0] != account_type.value:
        errors.append(_error("name", f'Le premier segment doit être "{account_type.value}".'))
    if normalized in taken_names:
        errors.append(_duplicate("name", f'Le compte "{normalized}" existe déjà.'))
    return (None, errors) if errors else (normalized, [])


def _check_account_currency(code: Any, index: StoreIndex) -> list[ErrorDetail]:
    if not isinstance(code, str) or not code.strip():
        return [_error("currency", "La devise est obligatoire.")]
    if code not in index.currencies:
        return [_error("currency", f'La devise "{code}" n\'existe pas.')]
    return []


def _check_opened(value: Any, index: StoreIndex) -> tuple[Optional[date], list[ErrorDetail]]:
    if value is None or value == "":
        return None, [_error("opened", "La date d'ouverture est obligatoire.")]
    opened = coerce_date(value)
    if opened is None:
        return None, [_error("opened", "La date doit être au format YYYY-MM-DD.")]
    if opened > index.today:
        return None, [_error("opened", "La date d'ouverture ne peut pas être dans le futur.")]
    return opened, []


def validate_new_account(
    data: AccountCreate,
    index: StoreIndex,
    account_id: Optional[str] = None,
) -> ValidationResult[Account]:
    """Validate an account to create, under the next free id unless one is given."""
    account_type, errors = _check_account_type(data.type)
    name, name_errors = _check_account_name(data.name, account_type, index.account_names)
    errors += name_errors
    errors += _check_account_currency(data.currency, index)
    opened, opened_errors = _check_opened(data.opened, index)
    errors += opened_errors
    if errors:
        return ValidationResult.fail(errors)

    return ValidationResult.ok(
        Account(
            id=account_id or next_account_id(index.accounts),
            type=account_type,
            name=name,
            currency=data.currency,
            opened=opened,
            description=(data.description or "").strip(),
        )
    )


def validate_account_update(account: Account, patch: AccountUpdate, index: StoreIndex) -> ValidationResult[Account]:
    """
    Validate a patch against an existing account and return the patched copy.

    A type change without a new name rewrites the first segment of the
    current name, keeping the remaining segments.
    """
    errors: list[ErrorDetail] = []
    account_type = account.type
    if patch.type is not None:
        account_type, errors = _check_account_type(patch.type)

    if patch.name is not None:
        candidate = patch.name
    elif account_type is not None and account_type != account.type:
        candidate = rename_root(account.name, account_type)
    else:
        candidate = account.name

    other_names = index.account_names - {account.name}
    name, name_errors = _check_account_name(candidate, account_type, other_names)
    errors += name_errors

    if patch.currency is not None:
        errors += _check_account_currency(patch.currency, index)

    opened = account.opened
    if patch.opened is not None:
        opened, opened_errors = _check_opened(patch.opened, index)
        errors += opened_errors

    if errors:
        return ValidationResult.fail(errors)

    updated = replace(account, extra=dict(account.extra))
    updated.type = account_type
    updated.name = name
    updated.opened = opened
    if patch.currency is not None:
        updated.currency = patch.currency
    if patch.description is not None:
        updated.description = patch.description.strip()
    return ValidationResult.ok(updated)


def next_account_id(accounts: Mapping[str, Account]) -> str:
    """Next ``acc_NNN`` identifier after the highest numeric one in use."""
    highest = 0
    for account_id in accounts:
        match = re.match(r"^acc_(\d+)$", account_id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"acc_{highest + 1:03d}"


# =============================================================================
# DOCUMENT STRUCTURE
# =============================================================================


def validate_document(document: Document) -> list[ErrorDetail]:
    """Whole-document invariants checked before a document becomes the store's."""
    errors: list[ErrorDetail] = []

    if not SEMVER_PATTERN.match(document.version):
        errors.append(
            _error("version", f'La version doit suivre le format semver (X.Y.Z). Trouvé : "{document.version}"')
        )

    if not document.currencies:
        errors.append(_error("currency", "Au moins une devise doit être définie."))

    seen_codes: set[str] = set()
    for currency in document.currencies:
        errors += _check_currency_code(currency.code)
        errors += _check_decimal_places(currency.decimal_places)
        if currency.code in seen_codes:
            errors.append(_duplicate("code", f"La devise {currency.code} est définie plusieurs fois."))
        seen_codes.add(currency.code)
        rate_dates = [rate.date for rate in currency.exchange_rates]
        if len(rate_dates) != len(set(rate_dates)):
            errors.append(_duplicate("exchangeRate", f"La devise {currency.code} a plusieurs taux pour une même date."))
        if any(rate.rate <= 0 for rate in currency.exchange_rates):
            errors.append(_error("rate", f"La devise {currency.code} a un taux inférieur ou égal à 0."))
        if any(rate.rate > 0 and not _fits_toml_float(rate.rate) for rate in currency.exchange_rates):
            errors.append(_error("rate", f"La devise {currency.code} a un taux trop précis pour être enregistré."))

    defaults = document.default_currencies()
    if len(defaults) != 1:
        errors.append(_error("isDefault", f"Exactement une devise doit être par défaut ({len(defaults)} trouvée(s))."))
    elif defaults[0].code != document.metadata.default_currency:
        errors.append(
            _error(
                "defaultCurrency",
                f"metadata.defaultCurrency ({document.metadata.default_currency}) ne correspond pas "
                f"à la devise par défaut ({defaults[0].code}).",
            )
        )

    seen_ids: set[str] = set()
    for account in document.accounts:
        if account.id in seen_ids:
            errors.append(_duplicate("id", f'ID "{account.id}" est défini plusieurs fois.'))
        seen_ids.add(account.id)
        if account.currency not in seen_codes:
            errors.append(_error("currency", f'Le compte "{account.name}" référence une devise inconnue "{account.currency}".'))
        segments = account.segments
        if len(segments) < MIN_ACCOUNT_SEGMENTS or any(not s.strip() for s in segments) or segments[0] != account.type.value:
            errors.append(_error("name", f'Le nom de compte "{account.name}" est invalide pour le type {account.type.value}.'))

    return errors
