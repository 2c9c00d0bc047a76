"""Service layer: the document store and its persistence."""

from cashflow.services.document_store import (
    DocumentStore,
    StoreResult,
    StoreSnapshot,
    AccountNode,
)
from cashflow.services.persistence import DebounceScheduler, PersistenceCoordinator

__all__ = [
    "DocumentStore",
    "StoreResult",
    "StoreSnapshot",
    "AccountNode",
    "DebounceScheduler",
    "PersistenceCoordinator",
]
