"""Currency and ExchangeRate domain models."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

DEFAULT_RATE_SOURCE = "manuel"


@dataclass
class ExchangeRate:
    """
    Historical conversion point of a non-default currency.

    ``rate`` converts one unit of the owning currency into the default
    currency. ``date`` is the key of the rate within its currency and is
    never edited after creation.
    """

    date: date
    rate: Decimal
    source: str = DEFAULT_RATE_SOURCE
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.rate, Decimal):
            self.rate = Decimal(str(self.rate))


@dataclass
class Currency:
    """
    Monetary unit of the ledger.

    Exactly one currency of a document is the default one; all exchange
    rates are expressed against it. Rates are kept sorted by date, newest first.
    """

    code: str
    name: str
    symbol: str
    decimal_places: int = 2
    is_default: bool = False
    exchange_rates: list[ExchangeRate] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def find_rate(self, on: date) -> Optional[ExchangeRate]:
        """Return the rate recorded exactly on ``on``."""
        for rate in self.exchange_rates:
            if rate.date == on:
                return rate
        return None

    def applicable_rate(self, on: date) -> Optional[ExchangeRate]:
        """Return the most recent rate dated on or before ``on``."""
        candidates = [rate for rate in self.exchange_rates if rate.date <= on]
        if not candidates:
            return None
        return max(candidates, key=lambda rate: rate.date)

    def sort_rates(self) -> None:
        self.exchange_rates.sort(key=lambda rate: rate.date, reverse=True)


# Common ISO 4217 currencies offered when creating a currency or a new document.
ISO_4217_CURRENCIES: tuple[tuple[str, str, str, int], ...] = (
    ("CHF", "Swiss Franc", "CHF", 2),
    ("EUR", "Euro", "€", 2),
    ("USD", "US Dollar", "$", 2),
    ("GBP", "British Pound", "£", 2),
    ("JPY", "Japanese Yen", "¥", 0),
    ("CAD", "Canadian Dollar", "CA$", 2),
    ("AUD", "Australian Dollar", "A$", 2),
    ("CNY", "Chinese Yuan", "¥", 2),
    ("INR", "Indian Rupee", "₹", 2),
    ("BRL", "Brazilian Real", "R$", 2),
    ("SEK", "Swedish Krona", "kr", 2),
    ("NOK", "Norwegian Krone", "kr", 2),
    ("DKK", "Danish Krone", "kr", 2),
    ("PLN", "Polish Złoty", "zł", 2),
    ("CZK", "Czech Koruna", "Kč", 2),
    ("HUF", "Hungarian Forint", "Ft", 2),
    ("RON", "Romanian Leu", "lei", 2),
    ("BGN", "Bulgarian Lev", "лв", 2),
    ("TRY", "Turkish Lira", "₺", 2),
    ("ILS", "Israeli Shekel", "₪", 2),
    ("ZAR", "South African Rand", "R", 2),
    ("KRW", "South Korean Won", "₩", 0),
    ("MXN", "Mexican Peso", "$", 2),
    ("SGD", "Singapore Dollar", "S$", 2),
    ("HKD", "Hong Kong Dollar", "HK$", 2),
    ("NZD", "New Zealand Dollar", "NZ$", 2),
    ("THB", "Thai Baht", "฿", 2),
)


def iso_currency(code: str) -> Optional[Currency]:
    """Build a Currency from the ISO table, or None if the code is unknown."""
    for iso_code, name, symbol, decimals in ISO_4217_CURRENCIES:
        if iso_code == code:
            return Currency(code=iso_code, name=name, symbol=symbol, decimal_places=decimals)
    return None


def search_currencies(query: str) -> list[Currency]:
    """Match ISO currencies whose code or name contains ``query`` (case-insensitive)."""
    needle = query.strip().lower()
    return [
        Currency(code=code, name=name, symbol=symbol, decimal_places=decimals)
        for code, name, symbol, decimals in ISO_4217_CURRENCIES
        if needle in code.lower() or needle in name.lower()
    ]
