"""Currency and exchange-rate endpoints."""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cashflow.api.deps import get_loaded_store, unwrap
from cashflow.api.schemas import (
    CurrencyCreateRequest,
    CurrencyListResponse,
    CurrencyResponse,
    CurrencyUpdateRequest,
    ExchangeRateCreateRequest,
    ExchangeRateResponse,
    ExchangeRateUpdateRequest,
    RateLookupResponse,
)
from cashflow.core.exceptions import NotFoundError
from cashflow.domain.models import search_currencies
from cashflow.domain.validation import (
    CurrencyCreate,
    CurrencyUpdate,
    ExchangeRateCreate,
    ExchangeRateUpdate,
)
from cashflow.services import DocumentStore

router = APIRouter(prefix="/currencies", tags=["currencies"])


@router.get("", response_model=CurrencyListResponse)
async def list_currencies(store: DocumentStore = Depends(get_loaded_store)):
    currencies = store.list_currencies()
    return CurrencyListResponse(
        currencies=[CurrencyResponse.model_validate(c) for c in currencies],
        count=len(currencies),
    )


@router.post("", response_model=CurrencyResponse, status_code=201)
async def create_currency(data: CurrencyCreateRequest, store: DocumentStore = Depends(get_loaded_store)):
    """Add a currency. Making it the default clears the flag on the others."""
    currency = unwrap(store.add_currency(CurrencyCreate(**data.model_dump())))
    return CurrencyResponse.model_validate(currency)


@router.get("/iso", response_model=CurrencyListResponse)
async def iso_currencies(q: str = Query(default="", description="Code or name fragment")):
    """ISO 4217 currencies matching ``q``, offered when adding a currency."""
    currencies = search_currencies(q)
    return CurrencyListResponse(
        currencies=[CurrencyResponse.model_validate(c) for c in currencies],
        count=len(currencies),
    )


@router.get("/{code}", response_model=CurrencyResponse)
async def get_currency(code: str, store: DocumentStore = Depends(get_loaded_store)):
    currency = store.get_currency(code)
    if currency is None:
        raise NotFoundError("Devise", code)
    return CurrencyResponse.model_validate(currency)


@router.patch("/{code}", response_model=CurrencyResponse)
async def update_currency(
    code: str,
    data: CurrencyUpdateRequest,
    store: DocumentStore = Depends(get_loaded_store),
):
    currency = unwrap(store.update_currency(code, CurrencyUpdate(**data.model_dump())))
    return CurrencyResponse.model_validate(currency)


@router.delete("/{code}", status_code=204)
async def delete_currency(code: str, store: DocumentStore = Depends(get_loaded_store)):
    """Delete a currency. Fails while an account or a posting uses it."""
    unwrap(store.delete_currency(code))


@router.post("/{code}/rates", response_model=ExchangeRateResponse, status_code=201)
async def create_exchange_rate(
    code: str,
    data: ExchangeRateCreateRequest,
    store: DocumentStore = Depends(get_loaded_store),
):
    rate = unwrap(store.add_exchange_rate(code, ExchangeRateCreate(**data.model_dump())))
    return ExchangeRateResponse.model_validate(rate)


@router.patch("/{code}/rates/{rate_date}", response_model=ExchangeRateResponse)
async def update_exchange_rate(
    code: str,
    rate_date: dt.date,
    data: ExchangeRateUpdateRequest,
    store: DocumentStore = Depends(get_loaded_store),
):
    """Edit the rate or source of an exchange rate. The date cannot be changed."""
    rate = unwrap(store.update_exchange_rate(code, rate_date, ExchangeRateUpdate(**data.model_dump())))
    return ExchangeRateResponse.model_validate(rate)


@router.delete("/{code}/rates/{rate_date}", status_code=204)
async def delete_exchange_rate(code: str, rate_date: dt.date, store: DocumentStore = Depends(get_loaded_store)):
    unwrap(store.delete_exchange_rate(code, rate_date))


@router.get("/{code}/rate", response_model=RateLookupResponse)
async def lookup_rate(
    code: str,
    on: Optional[dt.date] = Query(default=None, description="Defaults to today"),
    store: DocumentStore = Depends(get_loaded_store),
):
    """Most recent rate dated on or before ``on``; 1 for the default currency."""
    if store.get_currency(code) is None:
        raise NotFoundError("Devise", code)
    on = on or store.today()
    rate = store.get_exchange_rate(code, on)
    return RateLookupResponse(code=code, on=on, rate=float(rate) if rate is not None else None)
