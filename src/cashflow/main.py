"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cashflow import __version__
from cashflow.api.deps import error_body, status_for
from cashflow.api.routers import (
    accounts_router,
    currencies_router,
    document_router,
    export_router,
)
from cashflow.app_context import get_app_context
from cashflow.config.logging_config import setup_logging
from cashflow.config.settings import get_settings
from cashflow.core.exceptions import AppError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    context = get_app_context()
    await context.start()
    yield
    # Shutdown: write pending changes
    await context.stop()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="TOML-backed personal ledger: currencies, exchange rates and accounts",
    version=__version__,
    lifespan=lifespan,
)

# Include routers
app.include_router(document_router)
app.include_router(currencies_router)
app.include_router(accounts_router)
app.include_router(export_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    return JSONResponse(status_code=status_for(exc.details()), content=error_body(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies in the same shape as domain errors."""
    errors = [
        {
            "kind": "VALIDATION_ERROR",
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"success": False, "errors": errors})


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
    }
