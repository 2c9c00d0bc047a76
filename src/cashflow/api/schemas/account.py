"""Pydantic schemas for account endpoints."""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountCreateRequest(BaseModel):
    """Request schema for creating an account."""

    name: str = Field(..., description="Colon path whose first segment is the type, e.g. Assets:Bank:CHF")
    type: str = Field(..., description="Assets, Liabilities, Equity, Income or Expenses")
    currency: str
    opened: Optional[dt.date] = None
    description: str = ""


class AccountUpdateRequest(BaseModel):
    """Partial update of an account. Changing only the type renames the first segment."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    type: Optional[str] = None
    currency: Optional[str] = None
    opened: Optional[dt.date] = None
    description: Optional[str] = None


class AccountCloseRequest(BaseModel):
    closed_date: Optional[dt.date] = None


class AccountResponse(BaseModel):
    """Response schema for a single account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    name: str
    currency: str
    opened: Optional[dt.date] = None
    description: str = ""
    closed: bool = False
    closed_date: Optional[dt.date] = None


class AccountListResponse(BaseModel):
    """Response schema for listing accounts."""

    accounts: list[AccountResponse]
    count: int


class AccountNodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment: str
    path: str
    account: Optional[AccountResponse] = None
    children: list["AccountNodeResponse"] = []


AccountNodeResponse.model_rebuild()
