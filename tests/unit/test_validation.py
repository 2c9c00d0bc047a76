"""
Unit tests for the validation rules.

Tests cover:
- Currency code, name, symbol and decimal places
- Account type, hierarchical name, currency reference and opening date
- Exchange rate positivity, date uniqueness and the default-currency guard
- Document structure checks used on load
- Purity: rules never modify their inputs
"""

import copy
from datetime import date
from decimal import Decimal

import pytest

from cashflow.codec import load
from cashflow.domain.models import Account, AccountType, Currency, ExchangeRate
from cashflow.domain.validation import (
    AccountCreate,
    AccountUpdate,
    CurrencyCreate,
    CurrencyUpdate,
    ExchangeRateCreate,
    ExchangeRateUpdate,
    StoreIndex,
    next_account_id,
    validate_account_update,
    validate_currency_update,
    validate_document,
    validate_exchange_rate_update,
    validate_new_account,
    validate_new_currency,
    validate_new_exchange_rate,
)


@pytest.fixture
def chf() -> Currency:
    return Currency(code="CHF", name="Swiss Franc", symbol="CHF", is_default=True)


@pytest.fixture
def eur() -> Currency:
    return Currency(
        code="EUR",
        name="Euro",
        symbol="€",
        exchange_rates=[ExchangeRate(date=date(2024, 1, 15), rate=Decimal("0.95"))],
    )


@pytest.fixture
def bank_account() -> Account:
    return Account(
        id="acc_001",
        type=AccountType.ASSETS,
        name="Assets:Bank:CHF",
        currency="CHF",
        opened=date(2024, 1, 1),
    )


@pytest.fixture
def index(chf, eur, bank_account, fixed_today) -> StoreIndex:
    return StoreIndex.build(
        currencies={"CHF": chf, "EUR": eur},
        accounts={"acc_001": bank_account},
        today=fixed_today,
    )


def fields(result) -> list[str]:
    return [error.field for error in result.errors]


# =============================================================================
# CURRENCY RULES
# =============================================================================


class TestCurrencyRules:
    """Tests for validate_new_currency and validate_currency_update."""

    def test_valid_currency(self, index):
        """
        GIVEN a well-formed USD currency
        WHEN validated
        THEN the normalized currency is returned with no errors
        """
        result = validate_new_currency(
            CurrencyCreate(code="USD", name=" US Dollar ", symbol="$", decimal_places=2),
            index,
        )

        assert result.valid
        assert result.value.name == "US Dollar"
        assert result.value.exchange_rates == []

    @pytest.mark.parametrize("code", ["usd", "Usd", "uSD"])
    def test_lowercase_code_rejected_not_uppercased(self, index, code):
        """
        GIVEN a code in lower or mixed case
        WHEN validated
        THEN it is rejected with an uppercase message
        """
        result = validate_new_currency(CurrencyCreate(code=code, name="US Dollar", symbol="$"), index)

        assert not result.valid
        assert result.value is None
        assert fields(result) == ["code"]
        assert "majuscules" in result.errors[0].message

    @pytest.mark.parametrize("code", ["US", "USDX", "U$D", "123", ""])
    def test_malformed_code_rejected(self, index, code):
        result = validate_new_currency(CurrencyCreate(code=code, name="X", symbol="X"), index)

        assert "code" in fields(result)

    def test_duplicate_code(self, index):
        result = validate_new_currency(CurrencyCreate(code="EUR", name="Euro", symbol="€"), index)

        assert not result.valid
        assert result.errors[0].kind == "DUPLICATE_KEY"

    @pytest.mark.parametrize("places", [-1, 9, 2.5, True, "2"])
    def test_decimal_places_range(self, index, places):
        result = validate_new_currency(
            CurrencyCreate(code="USD", name="US Dollar", symbol="$", decimal_places=places),
            index,
        )

        assert fields(result) == ["decimalPlaces"]

    @pytest.mark.parametrize("places", [0, 8])
    def test_decimal_places_bounds_accepted(self, index, places):
        result = validate_new_currency(
            CurrencyCreate(code="JPY", name="Yen", symbol="¥", decimal_places=places),
            index,
        )

        assert result.valid

    def test_blank_name_and_symbol_reported_together(self, index):
        """
        GIVEN a currency with blank name and symbol
        WHEN validated
        THEN both fields are reported in one result
        """
        result = validate_new_currency(CurrencyCreate(code="USD", name="  ", symbol=" "), index)

        assert fields(result) == ["name", "symbol"]

    def test_symbol_defaults_to_code(self, index):
        result = validate_new_currency(CurrencyCreate(code="USD", name="US Dollar"), index)

        assert result.value.symbol == "USD"

    def test_update_keeps_code_and_rates(self, eur, index):
        result = validate_currency_update(eur, CurrencyUpdate(name="Euro (EU)", decimal_places=3), index)

        assert result.valid
        assert result.value.code == "EUR"
        assert result.value.decimal_places == 3
        assert result.value.exchange_rates == eur.exchange_rates

    def test_update_cannot_clear_default(self, chf, index):
        result = validate_currency_update(chf, CurrencyUpdate(is_default=False), index)

        assert fields(result) == ["isDefault"]

    def test_update_is_pure(self, eur, index):
        before = copy.deepcopy(eur)

        validate_currency_update(eur, CurrencyUpdate(name="Renamed", is_default=True), index)

        assert eur == before


# =============================================================================
# EXCHANGE RATE RULES
# =============================================================================


class TestExchangeRateRules:
    """Tests for exchange-rate validation."""

    def test_valid_rate(self, eur):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date="2024-02-01", rate=0.96, source="Bank"))

        assert result.valid
        assert result.value.date == date(2024, 2, 1)
        assert result.value.rate == Decimal("0.96")
        assert result.value.source == "Bank"

    def test_source_defaults_to_manual(self, eur):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date=date(2024, 2, 1), rate="1.02"))

        assert result.value.source == "manuel"

    @pytest.mark.parametrize("rate", [0, -0.5, "abc", None, "NaN", True])
    def test_rate_must_be_positive(self, eur, rate):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date="2024-02-01", rate=rate))

        assert fields(result) == ["rate"]

    @pytest.mark.parametrize("rate, valid", [("0.123456789012345", True), ("0.12345678901234567891", False)])
    def test_rate_precision_limited_to_float(self, eur, rate, valid):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date="2024-02-01", rate=rate))

        assert result.valid is valid
        if not valid:
            assert "chiffres significatifs" in result.errors[0].message

    def test_duplicate_date(self, eur):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date="2024-01-15", rate=0.97))

        assert not result.valid
        assert result.errors[0].kind == "DUPLICATE_KEY"
        assert result.errors[0].field == "date"

    def test_invalid_date(self, eur):
        result = validate_new_exchange_rate(eur, ExchangeRateCreate(date="15/01/2024", rate=0.97))

        assert fields(result) == ["date"]

    def test_default_currency_refuses_rates(self, chf):
        result = validate_new_exchange_rate(chf, ExchangeRateCreate(date="2024-01-15", rate=1.0))

        assert not result.valid

    def test_update_edits_rate_and_source_only(self, eur):
        rate = eur.exchange_rates[0]

        result = validate_exchange_rate_update(rate, ExchangeRateUpdate(rate="0.99", source="BNS"))

        assert result.value.date == rate.date
        assert result.value.rate == Decimal("0.99")
        assert result.value.source == "BNS"
        assert rate.rate == Decimal("0.95")

    def test_update_rejects_zero(self, eur):
        result = validate_exchange_rate_update(eur.exchange_rates[0], ExchangeRateUpdate(rate=0))

        assert fields(result) == ["rate"]

    @pytest.mark.parametrize("source", [42, ["BNS"], b"BNS"])
    def test_non_text_source_rejected(self, eur, source):
        created = validate_new_exchange_rate(eur, ExchangeRateCreate(date="2024-02-01", rate=1, source=source))
        patched = validate_exchange_rate_update(eur.exchange_rates[0], ExchangeRateUpdate(source=source))

        assert fields(created) == ["source"]
        assert fields(patched) == ["source"]

    def test_update_has_no_date_field(self):
        with pytest.raises(TypeError):
            ExchangeRateUpdate(date="2024-01-16", rate=1)


# =============================================================================
# ACCOUNT RULES
# =============================================================================


class TestAccountRules:
    """Tests for account validation."""

    def test_valid_account_gets_next_id(self, index):
        """
        GIVEN an index holding acc_001
        WHEN a valid account is validated
        THEN it is assigned acc_002 with a trimmed name
        """
        result = validate_new_account(
            AccountCreate(name=" Expenses:Food:Groceries ", type="Expenses", currency="CHF", opened="2024-03-01"),
            index,
        )

        assert result.valid
        account = result.value
        assert account.id == "acc_002"
        assert account.name == "Expenses:Food:Groceries"
        assert account.type == AccountType.EXPENSES
        assert account.opened == date(2024, 3, 1)

    def test_single_segment_rejected(self, index):
        result = validate_new_account(
            AccountCreate(name="Assets", type="Assets", currency="CHF", opened="2024-01-01"),
            index,
        )

        assert fields(result) == ["name"]

    def test_empty_segment_rejected(self, index):
        result = validate_new_account(
            AccountCreate(name="Assets::Cash", type="Assets", currency="CHF", opened="2024-01-01"),
            index,
        )

        assert fields(result) == ["name"]

    def test_first_segment_must_match_type(self, index):
        result = validate_new_account(
            AccountCreate(name="Income:Salary", type="Expenses", currency="CHF", opened="2024-01-01"),
            index,
        )

        assert fields(result) == ["name"]
        assert "Expenses" in result.errors[0].message

    def test_invalid_type(self, index):
        result = validate_new_account(
            AccountCreate(name="Savings:Box", type="Savings", currency="CHF", opened="2024-01-01"),
            index,
        )

        assert "type" in fields(result)

    def test_duplicate_name(self, index):
        result = validate_new_account(
            AccountCreate(name="Assets:Bank:CHF", type="Assets", currency="CHF", opened="2024-01-01"),
            index,
        )

        assert result.errors[0].kind == "DUPLICATE_KEY"

    def test_unknown_currency(self, index):
        result = validate_new_account(
            AccountCreate(name="Assets:Bank:USD", type="Assets", currency="USD", opened="2024-01-01"),
            index,
        )

        assert fields(result) == ["currency"]

    def test_opened_in_future_rejected(self, index, fixed_today):
        result = validate_new_account(
            AccountCreate(name="Assets:Cash", type="Assets", currency="CHF", opened=date(2024, 6, 16)),
            index,
        )

        assert fields(result) == ["opened"]

    def test_opened_today_accepted(self, index, fixed_today):
        result = validate_new_account(
            AccountCreate(name="Assets:Cash", type="Assets", currency="CHF", opened=fixed_today),
            index,
        )

        assert result.valid

    def test_all_errors_reported(self, index):
        result = validate_new_account(
            AccountCreate(name="", type="", currency="", opened=None),
            index,
        )

        assert fields(result) == ["type", "name", "currency", "opened"]

    def test_type_change_rewrites_first_segment(self, bank_account, index):
        """
        GIVEN an account named Assets:Bank:CHF
        WHEN only its type is changed to Expenses
        THEN its name becomes Expenses:Bank:CHF
        """
        result = validate_account_update(bank_account, AccountUpdate(type="Expenses"), index)

        assert result.valid
        assert result.value.name == "Expenses:Bank:CHF"
        assert result.value.type == AccountType.EXPENSES
        assert bank_account.name == "Assets:Bank:CHF"

    def test_rename_to_own_name_is_not_duplicate(self, bank_account, index):
        result = validate_account_update(bank_account, AccountUpdate(name="Assets:Bank:CHF", description="x"), index)

        assert result.valid
        assert result.value.description == "x"

    def test_type_and_name_must_agree(self, bank_account, index):
        result = validate_account_update(
            bank_account,
            AccountUpdate(type="Liabilities", name="Assets:Bank:CHF"),
            index,
        )

        assert fields(result) == ["name"]

    def test_next_account_id(self):
        accounts = {"acc_001": None, "acc_010": None, "legacy": None}

        assert next_account_id(accounts) == "acc_011"
        assert next_account_id({}) == "acc_001"


# =============================================================================
# DOCUMENT STRUCTURE
# =============================================================================


class TestValidateDocument:
    """Tests for validate_document."""

    def test_sample_document_is_valid(self, sample_toml):
        assert validate_document(load(sample_toml).document) == []

    def test_two_defaults_rejected(self, sample_toml):
        document = load(sample_toml).document
        document.currencies[1].is_default = True

        errors = validate_document(document)

        assert [e.field for e in errors] == ["isDefault"]

    def test_default_must_match_metadata(self, sample_toml):
        document = load(sample_toml).document
        document.metadata.default_currency = "EUR"

        errors = validate_document(document)

        assert [e.field for e in errors] == ["defaultCurrency"]

    def test_version_must_be_semver(self, sample_toml):
        document = load(sample_toml.replace('version = "1.0.0"', 'version = "1.0"')).document

        errors = validate_document(document)

        assert [e.field for e in errors] == ["version"]

    def test_account_with_unknown_currency(self, sample_toml):
        document = load(sample_toml).document
        document.accounts[0].currency = "GBP"

        errors = validate_document(document)

        assert [e.field for e in errors] == ["currency"]
