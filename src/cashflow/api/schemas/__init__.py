"""Pydantic schemas for API request/response."""

from cashflow.api.schemas.account import (
    AccountCreateRequest,
    AccountUpdateRequest,
    AccountCloseRequest,
    AccountResponse,
    AccountListResponse,
    AccountNodeResponse,
)
from cashflow.api.schemas.currency import (
    CurrencyCreateRequest,
    CurrencyUpdateRequest,
    CurrencyResponse,
    CurrencyListResponse,
    ExchangeRateCreateRequest,
    ExchangeRateUpdateRequest,
    ExchangeRateResponse,
    RateLookupResponse,
)
from cashflow.api.schemas.document import (
    LoadRequest,
    NewDocumentRequest,
    StatsResponse,
    DocumentStateResponse,
    LoadResponse,
    SaveResponse,
)

__all__ = [
    "AccountCreateRequest",
    "AccountUpdateRequest",
    "AccountCloseRequest",
    "AccountResponse",
    "AccountListResponse",
    "AccountNodeResponse",
    "CurrencyCreateRequest",
    "CurrencyUpdateRequest",
    "CurrencyResponse",
    "CurrencyListResponse",
    "ExchangeRateCreateRequest",
    "ExchangeRateUpdateRequest",
    "ExchangeRateResponse",
    "RateLookupResponse",
    "LoadRequest",
    "NewDocumentRequest",
    "StatsResponse",
    "DocumentStateResponse",
    "LoadResponse",
    "SaveResponse",
]
