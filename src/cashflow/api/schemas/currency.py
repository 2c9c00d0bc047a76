"""Pydantic schemas for currency and exchange-rate endpoints."""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CurrencyCreateRequest(BaseModel):
    """Request schema for adding a currency."""

    code: str = Field(..., description="ISO 4217 code, 3 uppercase letters")
    name: str
    symbol: Optional[str] = Field(default=None, description="Defaults to the code")
    decimal_places: int = 2
    is_default: bool = False


class CurrencyUpdateRequest(BaseModel):
    """Partial update of a currency. The code cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    symbol: Optional[str] = None
    decimal_places: Optional[int] = None
    is_default: Optional[bool] = None


class ExchangeRateCreateRequest(BaseModel):
    """Request schema for recording an exchange rate."""

    date: dt.date
    rate: Decimal
    source: Optional[str] = None


class ExchangeRateUpdateRequest(BaseModel):
    """Partial update of an exchange rate. The date is the key and cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    rate: Optional[Decimal] = None
    source: Optional[str] = None


class ExchangeRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    rate: float
    source: str


class CurrencyResponse(BaseModel):
    """Response schema for a single currency."""

    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    symbol: str
    decimal_places: int
    is_default: bool
    exchange_rates: list[ExchangeRateResponse] = []


class CurrencyListResponse(BaseModel):
    currencies: list[CurrencyResponse]
    count: int


class RateLookupResponse(BaseModel):
    """Applicable rate of a currency on a date."""

    code: str
    on: dt.date
    rate: Optional[float] = None
