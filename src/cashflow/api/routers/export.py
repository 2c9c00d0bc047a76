"""CSV export endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from cashflow.api.deps import get_csv_exporter, get_loaded_store
from cashflow.csv import CsvExporter
from cashflow.services import DocumentStore

router = APIRouter(prefix="/export", tags=["export"])


def _csv(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/accounts.csv")
async def export_accounts(
    store: DocumentStore = Depends(get_loaded_store),
    exporter: CsvExporter = Depends(get_csv_exporter),
):
    return _csv(exporter.export_accounts(), "comptes.csv")


@router.get("/currencies.csv")
async def export_currencies(
    store: DocumentStore = Depends(get_loaded_store),
    exporter: CsvExporter = Depends(get_csv_exporter),
):
    return _csv(exporter.export_currencies(), "devises.csv")


@router.get("/exchange-rates.csv")
async def export_exchange_rates(
    code: Optional[str] = None,
    store: DocumentStore = Depends(get_loaded_store),
    exporter: CsvExporter = Depends(get_csv_exporter),
):
    return _csv(exporter.export_exchange_rates(code=code), "taux.csv")
