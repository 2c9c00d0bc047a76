"""
Unit tests for domain models and time helpers.

Tests cover:
- Account name helpers (segments, parent, prefixes, root rename)
- Currency rate lookups and ordering
- ISO currency table
- Date coercion and ISO parsing
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
import pytz

from cashflow.core.timezone import coerce_date, parse_iso_temporal
from cashflow.domain.models import (
    Account,
    AccountType,
    Currency,
    Document,
    ExchangeRate,
    iso_currency,
    name_prefixes,
    rename_root,
    search_currencies,
)


# =============================================================================
# ACCOUNT TESTS
# =============================================================================


class TestAccount:
    """Tests for Account and name helpers."""

    def test_type_coerced_from_string(self):
        account = Account(id="acc_001", type="Assets", name="Assets:Bank:CHF", currency="CHF")

        assert account.type is AccountType.ASSETS
        assert account.depth == 3
        assert account.parent_name == "Assets:Bank"

    def test_second_level_has_no_parent(self):
        account = Account(id="acc_001", type=AccountType.EXPENSES, name="Expenses:Food", currency="CHF")

        assert account.parent_name is None

    def test_name_prefixes(self):
        assert name_prefixes("Assets:Bank:CHF") == ["Assets", "Assets:Bank", "Assets:Bank:CHF"]

    def test_rename_root(self):
        assert rename_root("Assets:Bank:CHF", AccountType.LIABILITIES) == "Liabilities:Bank:CHF"

    def test_invalid_type(self):
        with pytest.raises(ValueError):
            Account(id="acc_001", type="Savings", name="Savings:Box", currency="CHF")


# =============================================================================
# CURRENCY TESTS
# =============================================================================


class TestCurrency:
    """Tests for Currency and ExchangeRate."""

    @pytest.fixture
    def eur(self) -> Currency:
        return Currency(
            code="EUR",
            name="Euro",
            symbol="€",
            exchange_rates=[
                ExchangeRate(date=date(2024, 1, 1), rate=Decimal("0.93")),
                ExchangeRate(date=date(2024, 1, 15), rate=Decimal("0.95")),
            ],
        )

    def test_rate_coerced_to_decimal(self):
        rate = ExchangeRate(date=date(2024, 1, 1), rate=0.1)

        assert rate.rate == Decimal("0.1")
        assert rate.source == "manuel"

    def test_applicable_rate(self, eur: Currency):
        assert eur.applicable_rate(date(2024, 1, 10)).rate == Decimal("0.93")
        assert eur.applicable_rate(date(2023, 12, 31)) is None

    def test_find_rate_is_exact(self, eur: Currency):
        assert eur.find_rate(date(2024, 1, 15)).rate == Decimal("0.95")
        assert eur.find_rate(date(2024, 1, 14)) is None

    def test_sort_rates_newest_first(self, eur: Currency):
        eur.sort_rates()

        assert [r.date for r in eur.exchange_rates] == [date(2024, 1, 15), date(2024, 1, 1)]

    def test_iso_table(self):
        assert iso_currency("JPY").decimal_places == 0
        assert iso_currency("XYZ") is None
        assert "CHF" in [c.code for c in search_currencies("swiss")]

    def test_new_document_with_unknown_code(self):
        document = Document.new_empty("XAU")

        assert document.currencies[0].code == "XAU"
        assert document.currencies[0].is_default
        assert document.stats.currencies == 1


# =============================================================================
# TIME HELPER TESTS
# =============================================================================


class TestTimeHelpers:
    """Tests for coerce_date and parse_iso_temporal."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-15", date(2024, 1, 15)),
            (" 2024-01-15 ", date(2024, 1, 15)),
            (date(2024, 1, 15), date(2024, 1, 15)),
            (datetime(2024, 1, 15, 23, 0), date(2024, 1, 15)),
            ("2024-02-30", None),
            ("15/01/2024", None),
            (None, None),
            (20240115, None),
        ],
    )
    def test_coerce_date(self, value, expected):
        assert coerce_date(value) == expected

    def test_naive_datetime_assumed_utc(self):
        assert parse_iso_temporal("2024-01-15T10:00:00") == datetime(2024, 1, 15, 10, 0, tzinfo=pytz.utc)

    def test_impossible_date_raises(self):
        with pytest.raises(ValueError):
            parse_iso_temporal("2024-13-01")
