"""Cashflow Chronicles: TOML-backed household ledger core."""

__version__ = "0.1.0"
