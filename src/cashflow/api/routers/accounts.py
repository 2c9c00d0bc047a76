"""Account endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from cashflow.api.deps import get_loaded_store, unwrap
from cashflow.api.schemas import (
    AccountCloseRequest,
    AccountCreateRequest,
    AccountListResponse,
    AccountNodeResponse,
    AccountResponse,
    AccountUpdateRequest,
)
from cashflow.core.exceptions import NotFoundError
from cashflow.domain.models import Account, AccountType
from cashflow.domain.validation import AccountCreate, AccountUpdate
from cashflow.services import AccountNode, DocumentStore

router = APIRouter(prefix="/accounts", tags=["accounts"])


def account_out(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        type=account.type.value,
        name=account.name,
        currency=account.currency,
        opened=account.opened,
        description=account.description,
        closed=account.closed,
        closed_date=account.closed_date,
    )


def node_out(node: AccountNode) -> AccountNodeResponse:
    return AccountNodeResponse(
        segment=node.segment,
        path=node.path,
        account=account_out(node.account) if node.account else None,
        children=[node_out(child) for child in node.children],
    )


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    search: Optional[str] = None,
    account_type: Optional[AccountType] = Query(default=None, alias="type"),
    currency: Optional[str] = None,
    status: Optional[str] = Query(default=None, pattern="^(active|closed)$"),
    store: DocumentStore = Depends(get_loaded_store),
):
    """List accounts, optionally filtered by text, type, currency and status."""
    accounts = store.search_accounts(
        search=search,
        account_type=account_type,
        currency=currency,
        status=status,
    )
    return AccountListResponse(accounts=[account_out(a) for a in accounts], count=len(accounts))


@router.get("/hierarchy", response_model=list[AccountNodeResponse])
async def account_hierarchy(store: DocumentStore = Depends(get_loaded_store)):
    """Account tree, one root per account type."""
    return [node_out(node) for node in store.account_hierarchy()]


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(data: AccountCreateRequest, store: DocumentStore = Depends(get_loaded_store)):
    account = unwrap(store.add_account(AccountCreate(**data.model_dump())))
    return account_out(account)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str, store: DocumentStore = Depends(get_loaded_store)):
    account = store.get_account(account_id)
    if account is None:
        raise NotFoundError("Compte", account_id)
    return account_out(account)


@router.get("/{account_id}/children", response_model=AccountListResponse)
async def child_accounts(account_id: str, store: DocumentStore = Depends(get_loaded_store)):
    account = store.get_account(account_id)
    if account is None:
        raise NotFoundError("Compte", account_id)
    children = store.get_child_accounts(account.name)
    return AccountListResponse(accounts=[account_out(a) for a in children], count=len(children))


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    data: AccountUpdateRequest,
    store: DocumentStore = Depends(get_loaded_store),
):
    """Edit an account. Changing only the type rewrites the first name segment."""
    account = unwrap(store.update_account(account_id, AccountUpdate(**data.model_dump())))
    return account_out(account)


@router.post("/{account_id}/close", response_model=AccountResponse)
async def close_account(
    account_id: str,
    data: Optional[AccountCloseRequest] = None,
    store: DocumentStore = Depends(get_loaded_store),
):
    closed_date = data.closed_date if data else None
    return account_out(unwrap(store.close_account(account_id, closed_date)))


@router.post("/{account_id}/reopen", response_model=AccountResponse)
async def reopen_account(account_id: str, store: DocumentStore = Depends(get_loaded_store)):
    return account_out(unwrap(store.reopen_account(account_id)))


@router.delete("/{account_id}", status_code=204)
async def delete_account(account_id: str, store: DocumentStore = Depends(get_loaded_store)):
    """Delete an account. Fails while a transaction posts to it."""
    unwrap(store.delete_account(account_id))
