"""Document lifecycle endpoints: load, new, save, download, state."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from cashflow.api.deps import get_context, get_loaded_store, get_persistence, get_store, unwrap
from cashflow.api.schemas import (
    DocumentStateResponse,
    LoadRequest,
    LoadResponse,
    NewDocumentRequest,
    SaveResponse,
    StatsResponse,
)
from cashflow.app_context import AppContext
from cashflow.codec import serialize
from cashflow.core.exceptions import AppError, ValidationError, WriteFailure
from cashflow.services import DocumentStore, PersistenceCoordinator

router = APIRouter(prefix="/document", tags=["document"])


def document_state(store: DocumentStore) -> DocumentStateResponse:
    snapshot = store.snapshot()
    default = store.default_currency()
    document = store.document()
    return DocumentStateResponse(
        status=snapshot.status.value,
        revision=snapshot.revision,
        is_dirty=snapshot.is_dirty,
        stats=StatsResponse.model_validate(snapshot.stats),
        last_saved_at=snapshot.last_saved_at,
        last_error=snapshot.last_error.to_dict() if snapshot.last_error else None,
        version=document.version if document else None,
        default_currency=default.code if default else None,
    )


@router.get("", response_model=DocumentStateResponse)
async def get_document_state(store: DocumentStore = Depends(get_store)):
    """Current store state, also when no document is loaded."""
    return document_state(store)


@router.post("/load", response_model=LoadResponse)
async def load_document(data: LoadRequest, store: DocumentStore = Depends(get_store)):
    """Replace the current document with the given TOML text."""
    result = store.load(data.content)
    if not result.success:
        if isinstance(result.cause, AppError):
            raise result.cause
        raise ValidationError([result.error])
    return LoadResponse(
        success=True,
        message=result.message,
        load_time_ms=result.load_time_ms,
        stats=StatsResponse.model_validate(result.stats),
    )


@router.post("/new", response_model=DocumentStateResponse, status_code=201)
async def new_document(
    data: NewDocumentRequest,
    store: DocumentStore = Depends(get_store),
    context: AppContext = Depends(get_context),
):
    """Start an empty document seeded with one default currency."""
    unwrap(store.new_document(data.default_currency or context.settings.default_currency))
    return document_state(store)


@router.post("/save", response_model=SaveResponse)
async def save_document(
    store: DocumentStore = Depends(get_loaded_store),
    persistence: PersistenceCoordinator = Depends(get_persistence),
):
    """Write the document now instead of waiting for autosave."""
    saved = await persistence.flush()
    if not saved:
        last_error = store.snapshot().last_error
        raise WriteFailure(last_error.message if last_error else "Échec de l'écriture")
    return SaveResponse(success=True, writes=persistence.write_count, state=document_state(store))


@router.get("/download")
async def download_document(
    store: DocumentStore = Depends(get_loaded_store),
    context: AppContext = Depends(get_context),
):
    """Serialized document as a TOML attachment."""
    content = serialize(store.document())
    return Response(
        content=content,
        media_type="application/toml",
        headers={"Content-Disposition": f'attachment; filename="{context.data_file.name}"'},
    )
