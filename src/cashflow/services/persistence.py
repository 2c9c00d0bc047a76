"""
Persistence coordinator: debounced, single-write-in-flight autosave.

The coordinator observes the store. Each new revision restarts the debounce
window; when the window elapses the current document is copied, serialized
and handed to the write target. At most one write is outstanding at a time;
a save requested while one is in flight runs right after it.
"""

import asyncio
import logging
from typing import Callable, Optional

from cashflow.codec.toml_codec import serialize
from cashflow.core.timezone import now_utc
from cashflow.services.document_store import DocumentStore, StoreSnapshot
from cashflow.storage.targets import WriteResult, WriteTarget

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """Run ``callback`` once, ``delay`` seconds after the last ``schedule`` call."""

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class PersistenceCoordinator:
    """
    Autosave driver between a DocumentStore and a WriteTarget.

    Must be started from inside a running event loop. Store mutations are
    synchronous, so the only suspension point is the awaited write, and the
    document it writes is a deep copy serialized before that await.
    """

    def __init__(
        self,
        store: DocumentStore,
        target: WriteTarget,
        delay: float = 2.0,
        retry_on_failure: bool = True,
        autosave: bool = True,
    ):
        self._store = store
        self._target = target
        self._delay = delay
        self._retry_on_failure = retry_on_failure
        self._autosave = autosave
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._scheduler: Optional[DebounceScheduler] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._pending = False
        self._seen_revision: Optional[int] = None
        self._write_count = 0

    @property
    def write_count(self) -> int:
        """Number of serialize+write cycles performed."""
        return self._write_count

    @property
    def is_writing(self) -> bool:
        return self._in_flight is not None

    @property
    def target(self) -> WriteTarget:
        return self._target

    def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._scheduler = DebounceScheduler(self._delay, self._on_window_elapsed, self._loop)
        self._unsubscribe = self._store.subscribe(self._on_store_change)
        logger.info("Persistence started (debounce %.2fs, autosave %s)", self._delay, self._autosave)

    async def flush(self) -> bool:
        """
        Save now if the store is dirty, after any in-flight write completes.

        Returns False when the last write attempted failed.
        """
        if self._scheduler is not None:
            self._scheduler.cancel()
        # Waiters resume one by one; re-check so only one of them starts the next write.
        while self._in_flight is not None:
            await self._in_flight
        if not self._store.is_loaded or not self._store.is_dirty:
            return True
        self._in_flight = asyncio.get_running_loop().create_task(self._run())
        return await self._in_flight

    async def stop(self) -> bool:
        saved = await self.flush()
        if self._scheduler is not None:
            self._scheduler.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        logger.info("Persistence stopped after %d write(s)", self._write_count)
        return saved

    def _on_store_change(self, snapshot: StoreSnapshot) -> None:
        # Status-only notifications (SAVING, save outcome) keep the revision.
        if snapshot.revision == self._seen_revision:
            return
        self._seen_revision = snapshot.revision
        if snapshot.is_dirty and self._autosave:
            self._scheduler.schedule()
        elif not snapshot.is_dirty:
            self._scheduler.cancel()

    def _on_window_elapsed(self) -> None:
        if self._in_flight is not None:
            self._pending = True
            return
        if not self._store.is_loaded or not self._store.is_dirty:
            return
        self._in_flight = self._loop.create_task(self._run())

    async def _run(self) -> bool:
        try:
            success = await self._write_once()
            while self._pending and self._store.is_dirty:
                self._pending = False
                success = await self._write_once()
        finally:
            self._in_flight = None
            self._pending = False

        if (
            not success
            and self._retry_on_failure
            and self._autosave
            and self._scheduler is not None
            and self._store.is_dirty
        ):
            logger.info("Retrying ledger write in %.2fs", self._delay)
            self._scheduler.schedule()
        return success

    async def _write_once(self) -> bool:
        revision, document = self._store.begin_save()
        saved_at = now_utc()
        try:
            payload = serialize(document, saved_at).encode("utf-8")
            self._write_count += 1
            result = await self._target.write(payload)
        except Exception as exc:
            logger.exception("Saving revision %d raised", revision)
            result = WriteResult(success=False, message=str(exc) or type(exc).__name__)

        if result.success:
            self._store.finish_save(revision, saved_at=saved_at)
        else:
            self._store.finish_save(revision, error=result.message or "Échec de l'écriture")
        return result.success
