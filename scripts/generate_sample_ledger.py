#!/usr/bin/env python3
"""
Generate a realistic sample ledger file.

Builds a new document through the DocumentStore (so every rule applies),
with a few currencies, weekly exchange rates over the last 3 months and a
small chart of accounts, then writes it atomically.

Usage:
  python scripts/generate_sample_ledger.py [path/to/budget.toml]
"""

import asyncio
import random
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

from cashflow.codec import serialize
from cashflow.config.settings import get_settings
from cashflow.domain.validation import AccountCreate, CurrencyCreate, ExchangeRateCreate
from cashflow.services import DocumentStore
from cashflow.storage import FileWriteTarget


# Approximate CHF value of one unit
CURRENCIES = [
    ("EUR", "Euro", "€", 0.95),
    ("USD", "US Dollar", "$", 0.88),
    ("GBP", "British Pound", "£", 1.12),
]

ACCOUNTS = [
    ("Assets:Bank:CHF", "CHF", "Compte courant"),
    ("Assets:Bank:EUR", "EUR", "Compte en euros"),
    ("Assets:Cash", "CHF", "Porte-monnaie"),
    ("Liabilities:CreditCard", "CHF", "Carte de crédit"),
    ("Equity:Opening", "CHF", "Soldes d'ouverture"),
    ("Income:Salary", "CHF", "Salaire"),
    ("Expenses:Food:Groceries", "CHF", "Courses"),
    ("Expenses:Food:Restaurant", "CHF", ""),
    ("Expenses:Housing:Rent", "CHF", "Loyer"),
    ("Expenses:Travel", "EUR", "Vacances"),
]


def check(result) -> None:
    if not result.success:
        messages = "; ".join(error.message for error in result.errors)
        raise SystemExit(f"✗ {messages}")


def generate_sample_ledger(path: Path) -> None:
    """Generate the sample ledger and write it to ``path``."""
    store = DocumentStore()
    check(store.new_document("CHF"))

    today = date.today()
    start_date = today - timedelta(days=90)
    print(f"Generating exchange rates from {start_date} to {today}")
    print("=" * 60)

    for code, name, symbol, base_rate in CURRENCIES:
        check(store.add_currency(CurrencyCreate(code=code, name=name, symbol=symbol)))
        rate_date = start_date
        count = 0
        while rate_date <= today:
            rate = Decimal(str(round(base_rate * random.uniform(0.97, 1.03), 4)))
            check(store.add_exchange_rate(code, ExchangeRateCreate(date=rate_date, rate=rate, source="BNS")))
            rate_date += timedelta(days=7)
            count += 1
        print(f"✓ {code}: {count} rates")

    for name, currency, description in ACCOUNTS:
        account_type = name.split(":", 1)[0]
        check(
            store.add_account(
                AccountCreate(
                    name=name,
                    type=account_type,
                    currency=currency,
                    opened=start_date,
                    description=description,
                )
            )
        )
    print(f"✓ {len(ACCOUNTS)} accounts")

    content = serialize(store.document())
    target = FileWriteTarget(path, backup_dir=path.parent / "backups")
    result = asyncio.run(target.write(content.encode("utf-8")))
    if not result.success:
        raise SystemExit(f"✗ {result.message}")

    stats = store.stats()
    print("=" * 60)
    print(f"✓ Wrote {path}")
    print(f"  Currencies: {stats.currencies}, accounts: {stats.accounts}")


if __name__ == "__main__":
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else get_settings().get_data_file()
    generate_sample_ledger(output)
