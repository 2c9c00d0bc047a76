"""API routers package."""

from cashflow.api.routers.document import router as document_router
from cashflow.api.routers.currencies import router as currencies_router
from cashflow.api.routers.accounts import router as accounts_router
from cashflow.api.routers.export import router as export_router

__all__ = [
    "document_router",
    "currencies_router",
    "accounts_router",
    "export_router",
]
