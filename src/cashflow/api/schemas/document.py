"""Pydantic schemas for document lifecycle endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoadRequest(BaseModel):
    """TOML text to load into the store."""

    content: str


class NewDocumentRequest(BaseModel):
    default_currency: Optional[str] = Field(default=None, description="Code of the single default currency, defaults to the configured one")


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    currencies: int
    accounts: int
    transactions: int
    budgets: int
    recurring: int


class DocumentStateResponse(BaseModel):
    """Store state as seen by observers."""

    status: str
    revision: int
    is_dirty: bool
    stats: StatsResponse
    last_saved_at: Optional[datetime] = None
    last_error: Optional[dict[str, Any]] = None
    version: Optional[str] = None
    default_currency: Optional[str] = None


class LoadResponse(BaseModel):
    success: bool
    message: str
    load_time_ms: int
    stats: StatsResponse


class SaveResponse(BaseModel):
    success: bool
    writes: int
    state: DocumentStateResponse
