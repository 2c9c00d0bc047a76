"""Core utilities and shared functionality."""

from cashflow.core.timezone import (
    now_utc,
    today_local,
    parse_iso_temporal,
    coerce_date,
    UTC,
)
from cashflow.core.exceptions import (
    ErrorDetail,
    AppError,
    EmptyInputError,
    TomlSyntaxError,
    MalformedDocumentError,
    ValidationError,
    DuplicateKeyError,
    ReferentialIntegrityError,
    NotFoundError,
    DocumentNotLoadedError,
    WriteFailure,
)

__all__ = [
    "now_utc",
    "today_local",
    "parse_iso_temporal",
    "coerce_date",
    "UTC",
    "ErrorDetail",
    "AppError",
    "EmptyInputError",
    "TomlSyntaxError",
    "MalformedDocumentError",
    "ValidationError",
    "DuplicateKeyError",
    "ReferentialIntegrityError",
    "NotFoundError",
    "DocumentNotLoadedError",
    "WriteFailure",
]
