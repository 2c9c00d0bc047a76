"""Domain store: the authoritative in-memory ledger document."""

import copy
import functools
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Union

from cashflow.codec.toml_codec import LoadResult, load as load_text
from cashflow.core.exceptions import (
    AppError,
    DocumentNotLoadedError,
    ErrorDetail,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
    WriteFailure,
)
from cashflow.core.timezone import coerce_date, now_utc, today_local
from cashflow.domain.models import (
    Account,
    AccountType,
    Currency,
    Document,
    ExchangeRate,
    LoadStats,
    StoreStatus,
    name_prefixes,
    split_account_name,
)
from cashflow.domain.validation import (
    AccountCreate,
    AccountUpdate,
    CurrencyCreate,
    CurrencyUpdate,
    ExchangeRateCreate,
    ExchangeRateUpdate,
    StoreIndex,
    ValidationResult,
    validate_account_update,
    validate_currency_update,
    validate_document,
    validate_exchange_rate_update,
    validate_new_account,
    validate_new_currency,
    validate_new_exchange_rate,
)

logger = logging.getLogger(__name__)

DateInput = Union[date, str]


@dataclass
class StoreResult:
    """Outcome of a store mutation: the committed entity or the rejection errors."""

    success: bool
    entity: Any = None
    errors: list[ErrorDetail] = field(default_factory=list)

    @classmethod
    def ok(cls, entity: Any = None) -> "StoreResult":
        return cls(success=True, entity=entity)

    @classmethod
    def failure(cls, errors: list[ErrorDetail]) -> "StoreResult":
        return cls(success=False, errors=list(errors))


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable state handed to observers."""

    status: StoreStatus
    revision: int
    is_dirty: bool
    stats: LoadStats
    last_saved_at: Optional[datetime] = None
    last_error: Optional[ErrorDetail] = None


@dataclass
class AccountNode:
    """Node of the account tree; ``account`` is None for intermediate segments with no account."""

    segment: str
    path: str
    account: Optional[Account] = None
    children: list["AccountNode"] = field(default_factory=list)


Observer = Callable[[StoreSnapshot], None]


def _captured(method):
    """Turn AppError raised by a mutation into a failed StoreResult."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs) -> StoreResult:
        try:
            return method(self, *args, **kwargs)
        except AppError as exc:
            logger.debug("%s rejected: %s", method.__name__, exc.code)
            return StoreResult.failure(exc.details())

    return wrapper


def _checked(result: ValidationResult) -> Any:
    if not result.valid:
        raise ValidationError(result.errors)
    return result.value


class DocumentStore:
    """
    Owner of the live Document.

    Every mutation validates against the current indices, then commits in one
    step: revision bump, dirty flag, index rebuild and synchronous observer
    notification all happen before the call returns. A rejected mutation
    leaves the document untouched. Queries return deep copies so no caller
    ever holds a mutable reference to the live document.
    """

    def __init__(self, today: Callable[[], date] = today_local):
        self._today = today
        self._document: Optional[Document] = None
        self._status = StoreStatus.UNLOADED
        self._revision = 0
        self._dirty = False
        self._last_saved_at: Optional[datetime] = None
        self._last_error: Optional[ErrorDetail] = None
        self._saving: Optional[Document] = None
        self._observers: list[Observer] = []
        self._currencies_by_code: dict[str, Currency] = {}
        self._accounts_by_id: dict[str, Account] = {}
        self._accounts_by_name: dict[str, Account] = {}
        self._accounts_by_prefix: dict[str, list[Account]] = {}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    def today(self) -> date:
        return self._today()

    def load(self, text: Optional[str]) -> LoadResult:
        """
        Load TOML text. On failure the previous document and state are kept.
        """
        result = load_text(text)
        if not result.success:
            return result

        errors = validate_document(result.document)
        if errors:
            error = ValidationError(errors)
            logger.warning("Rejected ledger document with %d structural error(s)", len(errors))
            return LoadResult(success=False, error=error.to_detail(), cause=error)

        self._install(result.document, dirty=False)
        return result

    def load_document(self, document: Document) -> StoreResult:
        """Install an already-typed document after checking its structure."""
        errors = validate_document(document)
        if errors:
            return StoreResult.failure(errors)
        self._install(copy.deepcopy(document), dirty=False)
        return StoreResult.ok(self.document())

    def new_document(self, default_currency: str = "CHF") -> StoreResult:
        """Replace the current document with an empty one. It starts unsaved."""
        document = Document.new_empty(default_currency)
        errors = validate_document(document)
        if errors:
            return StoreResult.failure(errors)
        self._install(document, dirty=True)
        return StoreResult.ok(self.document())

    def reset(self) -> None:
        """Drop the document and return to the unloaded state."""
        self._document = None
        self._status = StoreStatus.UNLOADED
        self._revision += 1
        self._dirty = False
        self._last_error = None
        self._rebuild_indices()
        self._notify()

    def _install(self, document: Document, dirty: bool) -> None:
        self._document = document
        self._revision += 1
        self._dirty = dirty
        self._status = StoreStatus.MODIFIED if dirty else StoreStatus.LOADED
        self._last_error = None
        self._rebuild_indices()
        logger.info("Installed ledger document (revision %d)", self._revision)
        self._notify()

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            status=self._status,
            revision=self._revision,
            is_dirty=self._dirty,
            stats=self.stats(),
            last_saved_at=self._last_saved_at,
            last_error=self._last_error,
        )

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """
        Register an observer and call it once with the current snapshot.

        Returns a function that removes the observer.
        """
        self._observers.append(observer)
        self._call(observer, self.snapshot())

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for observer in list(self._observers):
            self._call(observer, snapshot)

    @staticmethod
    def _call(observer: Observer, snapshot: StoreSnapshot) -> None:
        try:
            observer(snapshot)
        except Exception:
            logger.exception("Store observer %r failed", observer)

    # =========================================================================
    # SAVE PROTOCOL
    # =========================================================================

    def begin_save(self) -> tuple[int, Document]:
        """Enter SAVING and hand out a deep copy of the document with its revision."""
        document = self._require_document()
        self._saving = document
        self._status = StoreStatus.SAVING
        self._notify()
        return self._revision, copy.deepcopy(document)

    def finish_save(
        self,
        revision: int,
        saved_at: Optional[datetime] = None,
        error: Optional[str] = None,
    ) -> None:
        """
        Record the outcome of a write started with ``begin_save``.

        On success the dirty flag is cleared only when no mutation happened
        after the snapshot was taken; ``metadata.last_modified`` is stamped
        either way. On failure the document stays dirty and the error is kept
        for observers.

        When the document was replaced (load, new, reset) while the write was
        in flight, the outcome belongs to the old document: nothing is stamped
        and the status follows the current dirty flag.
        """
        saved_document, self._saving = self._saving, None
        if self._document is None:
            return

        if self._document is not saved_document:
            logger.info("Discarding write outcome for replaced document (revision %d)", revision)
            if self._status == StoreStatus.SAVING:
                self._status = StoreStatus.MODIFIED if self._dirty else StoreStatus.LOADED
                self._notify()
            return

        if error is not None:
            self._last_error = WriteFailure(error).to_detail()
            self._status = StoreStatus.MODIFIED if self._dirty else StoreStatus.LOADED
            logger.warning("Ledger write failed at revision %d: %s", revision, error)
            self._notify()
            return

        saved_at = saved_at or now_utc()
        self._document.metadata.last_modified = saved_at
        self._last_saved_at = saved_at
        self._last_error = None
        if revision == self._revision:
            self._dirty = False
            self._status = StoreStatus.LOADED
        else:
            self._status = StoreStatus.MODIFIED if self._dirty else StoreStatus.LOADED
        logger.info("Ledger saved at revision %d (current %d)", revision, self._revision)
        self._notify()

    # =========================================================================
    # CURRENCY MUTATIONS
    # =========================================================================

    @_captured
    def add_currency(self, data: CurrencyCreate) -> StoreResult:
        document = self._require_document()
        currency = _checked(validate_new_currency(data, self._index()))

        if currency.is_default:
            self._make_default(document, currency)
        document.currencies.append(currency)
        document.currencies.sort(key=lambda c: c.code)
        self._commit()
        return StoreResult.ok(copy.deepcopy(currency))

    @_captured
    def update_currency(self, code: str, patch: CurrencyUpdate) -> StoreResult:
        document = self._require_document()
        current = self._require_currency(code)
        updated = _checked(validate_currency_update(current, patch, self._index()))

        if updated.is_default and not current.is_default:
            self._make_default(document, updated)
        position = document.currencies.index(current)
        document.currencies[position] = updated
        self._commit()
        return StoreResult.ok(copy.deepcopy(updated))

    @_captured
    def delete_currency(self, code: str) -> StoreResult:
        document = self._require_document()
        currency = self._require_currency(code)

        if currency.is_default:
            raise ValidationError(
                [ErrorDetail(kind="VALIDATION_ERROR", field="code", message="Impossible de supprimer la devise par défaut.")]
            )
        accounts = [a.name for a in document.accounts if a.currency == code]
        if accounts:
            raise ReferentialIntegrityError(
                f"Impossible de supprimer {code} : utilisée par {len(accounts)} compte(s) ({', '.join(accounts)})."
            )
        postings = [p for p in document.postings() if p.get("currency") == code]
        if postings:
            raise ReferentialIntegrityError(
                f"Impossible de supprimer {code} : utilisée dans {len(postings)} écriture(s)."
            )

        document.currencies.remove(currency)
        self._commit()
        return StoreResult.ok(copy.deepcopy(currency))

    @staticmethod
    def _make_default(document: Document, currency: Currency) -> None:
        for other in document.currencies:
            other.is_default = False
        currency.is_default = True
        document.metadata.default_currency = currency.code

    # =========================================================================
    # EXCHANGE RATE MUTATIONS
    # =========================================================================

    @_captured
    def add_exchange_rate(self, code: str, data: ExchangeRateCreate) -> StoreResult:
        self._require_document()
        currency = self._require_currency(code)
        rate = _checked(validate_new_exchange_rate(currency, data))

        currency.exchange_rates.append(rate)
        currency.sort_rates()
        self._commit()
        return StoreResult.ok(copy.deepcopy(rate))

    @_captured
    def update_exchange_rate(self, code: str, rate_date: DateInput, patch: ExchangeRateUpdate) -> StoreResult:
        self._require_document()
        currency = self._require_currency(code)
        current = self._require_rate(currency, rate_date)
        updated = _checked(validate_exchange_rate_update(current, patch))

        currency.exchange_rates[currency.exchange_rates.index(current)] = updated
        self._commit()
        return StoreResult.ok(copy.deepcopy(updated))

    @_captured
    def delete_exchange_rate(self, code: str, rate_date: DateInput) -> StoreResult:
        self._require_document()
        currency = self._require_currency(code)
        rate = self._require_rate(currency, rate_date)

        currency.exchange_rates.remove(rate)
        self._commit()
        return StoreResult.ok(copy.deepcopy(rate))

    # =========================================================================
    # ACCOUNT MUTATIONS
    # =========================================================================

    @_captured
    def add_account(self, data: AccountCreate) -> StoreResult:
        document = self._require_document()
        account = _checked(validate_new_account(data, self._index()))

        document.accounts.append(account)
        document.accounts.sort(key=lambda a: a.name)
        self._commit()
        return StoreResult.ok(copy.deepcopy(account))

    @_captured
    def update_account(self, account_id: str, patch: AccountUpdate) -> StoreResult:
        document = self._require_document()
        current = self._require_account(account_id)
        updated = _checked(validate_account_update(current, patch, self._index()))

        document.accounts[document.accounts.index(current)] = updated
        self._commit()
        return StoreResult.ok(copy.deepcopy(updated))

    @_captured
    def close_account(self, account_id: str, closed_date: Optional[DateInput] = None) -> StoreResult:
        """Close an account that no transaction references, on ``closed_date`` or today."""
        self._require_document()
        account = self._require_account(account_id)
        self._guard_postings(account, "clôturer")

        when = self._today() if closed_date is None else coerce_date(closed_date)
        if when is None:
            raise ValidationError(
                [ErrorDetail(kind="VALIDATION_ERROR", field="closedDate", message="La date doit être au format YYYY-MM-DD.")]
            )
        account.closed = True
        account.closed_date = when
        self._commit()
        return StoreResult.ok(copy.deepcopy(account))

    @_captured
    def reopen_account(self, account_id: str) -> StoreResult:
        self._require_document()
        account = self._require_account(account_id)
        account.closed = False
        account.closed_date = None
        self._commit()
        return StoreResult.ok(copy.deepcopy(account))

    @_captured
    def delete_account(self, account_id: str) -> StoreResult:
        document = self._require_document()
        account = self._require_account(account_id)
        self._guard_postings(account, "supprimer")

        document.accounts.remove(account)
        self._commit()
        return StoreResult.ok(copy.deepcopy(account))

    def _guard_postings(self, account: Account, action: str) -> None:
        count = sum(
            1
            for transaction in self._document.transactions
            if any(
                isinstance(p, dict) and p.get("accountId") == account.id
                for p in transaction.get("posting") or []
            )
        )
        if count:
            raise ReferentialIntegrityError(
                f"Impossible de {action} ce compte. Il est utilisé dans {count} transaction(s)."
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def document(self) -> Optional[Document]:
        return copy.deepcopy(self._document)

    def stats(self) -> LoadStats:
        return self._document.stats if self._document else LoadStats()

    def list_currencies(self) -> list[Currency]:
        if self._document is None:
            return []
        return copy.deepcopy(self._document.currencies)

    def get_currency(self, code: str) -> Optional[Currency]:
        return copy.deepcopy(self._currencies_by_code.get(code))

    def default_currency(self) -> Optional[Currency]:
        if self._document is None:
            return None
        defaults = self._document.default_currencies()
        return copy.deepcopy(defaults[0]) if defaults else None

    def get_exchange_rate(self, code: str, on_date: Optional[DateInput] = None) -> Optional[Decimal]:
        """
        Rate converting ``code`` into the default currency on ``on_date``.

        Uses the most recent rate dated on or before ``on_date`` (today when
        omitted). The default currency converts at 1.
        """
        currency = self._currencies_by_code.get(code)
        if currency is None:
            return None
        if currency.is_default:
            return Decimal("1")
        when = self._today() if on_date is None else coerce_date(on_date)
        if when is None:
            return None
        rate = currency.applicable_rate(when)
        return rate.rate if rate else None

    def list_accounts(self, include_closed: bool = True) -> list[Account]:
        if self._document is None:
            return []
        return copy.deepcopy(
            [a for a in self._document.accounts if include_closed or not a.closed]
        )

    def get_account(self, account_id: str) -> Optional[Account]:
        return copy.deepcopy(self._accounts_by_id.get(account_id))

    def get_account_by_name(self, name: str) -> Optional[Account]:
        return copy.deepcopy(self._accounts_by_name.get(name))

    def accounts_by_type(self) -> dict[AccountType, list[Account]]:
        grouped: dict[AccountType, list[Account]] = {t: [] for t in AccountType}
        for account in self.list_accounts():
            grouped[account.type].append(account)
        return grouped

    def search_accounts(
        self,
        search: Optional[str] = None,
        account_type: Optional[Union[AccountType, str]] = None,
        currency: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Account]:
        """
        Filter accounts by type, currency, status (``active`` or ``closed``)
        and a case-insensitive text found in the name or description.
        """
        results = self.list_accounts()
        if account_type:
            results = [a for a in results if a.type == AccountType(account_type)]
        if currency:
            results = [a for a in results if a.currency == currency]
        if status == "active":
            results = [a for a in results if not a.closed]
        elif status == "closed":
            results = [a for a in results if a.closed]
        if search:
            needle = search.lower()
            results = [
                a for a in results
                if needle in a.name.lower() or needle in (a.description or "").lower()
            ]
        return results

    def get_child_accounts(self, parent_name: str) -> list[Account]:
        """All accounts below ``parent_name`` in the hierarchy, at any depth."""
        return copy.deepcopy(
            [a for a in self._accounts_by_prefix.get(parent_name, []) if a.name != parent_name]
        )

    def get_parent_account(self, name: str) -> Optional[Account]:
        segments = split_account_name(name)
        if len(segments) <= 2:
            return None
        return self.get_account_by_name(":".join(segments[:-1]))

    def account_hierarchy(self) -> list[AccountNode]:
        """Account tree with one root per account type, in type order."""
        roots = {t.value: AccountNode(segment=t.value, path=t.value) for t in AccountType}
        nodes: dict[str, AccountNode] = dict(roots)
        for account in sorted(self.list_accounts(), key=lambda a: a.name):
            parent = roots[account.type.value]
            for path in name_prefixes(account.name)[1:]:
                node = nodes.get(path)
                if node is None:
                    node = AccountNode(segment=path.rsplit(":", 1)[-1], path=path)
                    nodes[path] = node
                    parent.children.append(node)
                parent = node
            parent.account = account
        return list(roots.values())

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_document(self) -> Document:
        if self._document is None:
            raise DocumentNotLoadedError()
        return self._document

    def _require_currency(self, code: str) -> Currency:
        currency = self._currencies_by_code.get(code)
        if currency is None:
            raise NotFoundError("Devise", code)
        return currency

    def _require_rate(self, currency: Currency, rate_date: DateInput) -> ExchangeRate:
        when = coerce_date(rate_date)
        rate = currency.find_rate(when) if when else None
        if rate is None:
            raise NotFoundError("Taux de change", f"{currency.code} {rate_date}")
        return rate

    def _require_account(self, account_id: str) -> Account:
        account = self._accounts_by_id.get(account_id)
        if account is None:
            raise NotFoundError("Compte", account_id)
        return account

    def _index(self) -> StoreIndex:
        return StoreIndex.build(self._currencies_by_code, self._accounts_by_id, self._today())

    def _commit(self) -> None:
        self._revision += 1
        self._dirty = True
        self._status = StoreStatus.MODIFIED
        self._rebuild_indices()
        self._notify()

    def _rebuild_indices(self) -> None:
        document = self._document
        self._currencies_by_code = {c.code: c for c in document.currencies} if document else {}
        accounts = document.accounts if document else []
        self._accounts_by_id = {a.id: a for a in accounts}
        self._accounts_by_name = {a.name: a for a in accounts}
        prefixes: dict[str, list[Account]] = {}
        for account in accounts:
            for prefix in name_prefixes(account.name):
                prefixes.setdefault(prefix, []).append(account)
        self._accounts_by_prefix = prefixes
