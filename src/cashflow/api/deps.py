"""Dependency injection and error mapping for FastAPI."""

from typing import Any

from fastapi import Depends

from cashflow.app_context import AppContext, get_app_context
from cashflow.core.exceptions import AppError, DocumentNotLoadedError, ErrorDetail, ValidationError
from cashflow.csv import CsvExporter
from cashflow.services import DocumentStore, PersistenceCoordinator, StoreResult

NOT_FOUND_KINDS = {"NOT_FOUND", "NOT_LOADED"}
CONFLICT_KINDS = {"DUPLICATE_KEY", "REFERENTIAL_INTEGRITY"}


def get_context() -> AppContext:
    """Provide the process AppContext."""
    return get_app_context()


def get_store(context: AppContext = Depends(get_context)) -> DocumentStore:
    """Provide the DocumentStore instance."""
    return context.store


def get_persistence(context: AppContext = Depends(get_context)) -> PersistenceCoordinator:
    """Provide the PersistenceCoordinator instance."""
    return context.persistence


def get_csv_exporter(context: AppContext = Depends(get_context)) -> CsvExporter:
    """Provide the CsvExporter instance."""
    return context.csv_exporter


def unwrap(result: StoreResult) -> Any:
    """Return the committed entity or raise the store's errors as an AppError."""
    if not result.success:
        raise ValidationError(result.errors)
    return result.entity


def status_for(errors: list[ErrorDetail]) -> int:
    kinds = {error.kind for error in errors}
    if kinds & NOT_FOUND_KINDS:
        return 404
    if kinds & CONFLICT_KINDS:
        return 409
    return 400


def error_body(exc: AppError) -> dict[str, Any]:
    return {"success": False, "errors": [detail.to_dict() for detail in exc.details()]}


def get_loaded_store(store: DocumentStore = Depends(get_store)) -> DocumentStore:
    """Provide the DocumentStore, failing with NOT_LOADED when it holds no document."""
    if not store.is_loaded:
        raise DocumentNotLoadedError()
    return store
