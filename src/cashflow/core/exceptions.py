"""Application-level exceptions and the structured error shape surfaced outward."""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error returned by the codec, the validation rules and the store."""

    kind: str
    message: str
    field: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR", field: Optional[str] = None):
        self.message = message
        self.code = code
        self.field = field
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(kind=self.code, message=self.message, field=self.field)

    def details(self) -> list[ErrorDetail]:
        return [self.to_detail()]


class EmptyInputError(AppError):
    """Raised when the TOML input is empty or whitespace only."""

    def __init__(self, message: str = "Le fichier TOML est vide"):
        super().__init__(message, code="EMPTY_INPUT")


class TomlSyntaxError(AppError):
    """Raised when the text violates the TOML grammar."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message, code="SYNTAX_ERROR")
        self.line = line
        self.column = column

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(
            kind=self.code,
            message=self.message,
            line=self.line,
            column=self.column,
        )


class MalformedDocumentError(AppError):
    """Raised when required sections or entity fields are missing or mistyped."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, code="MALFORMED_DOCUMENT", field=path)


class ValidationError(AppError):
    """Raised when one or more field-level rules fail."""

    def __init__(self, errors: list[ErrorDetail]):
        message = "; ".join(error.message for error in errors) or "Validation échouée"
        super().__init__(message, code="VALIDATION_ERROR")
        self.errors = list(errors)

    def details(self) -> list[ErrorDetail]:
        return list(self.errors)


class DuplicateKeyError(AppError):
    """Raised when a currency code or exchange-rate date already exists."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, code="DUPLICATE_KEY", field=field)


class ReferentialIntegrityError(AppError):
    """Raised when a deletion is blocked by dependent entities."""

    def __init__(self, message: str):
        super().__init__(message, code="REFERENTIAL_INTEGRITY")


class NotFoundError(AppError):
    """Raised when a requested entity is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} introuvable : {identifier}", code="NOT_FOUND")


class DocumentNotLoadedError(AppError):
    """Raised when an operation needs a document and none is loaded."""

    def __init__(self):
        super().__init__("Aucun document chargé.", code="NOT_LOADED")


class WriteFailure(AppError):
    """Raised or reported when the write capability fails."""

    def __init__(self, message: str):
        super().__init__(message, code="WRITE_FAILURE")
