"""Application context for in-process service management.

Owns the one DocumentStore of the process together with its persistence
coordinator and exporter. The HTTP layer and tests reach the services
through it.
"""

import logging
from pathlib import Path
from typing import Optional

from cashflow.config.settings import Settings, get_settings, set_settings
from cashflow.csv import CsvExporter
from cashflow.services import DocumentStore, PersistenceCoordinator
from cashflow.storage import FileWriteTarget, WriteTarget

logger = logging.getLogger(__name__)


class AppContext:
    """
    Application context providing access to the store and its collaborators.

    ``start`` must run inside the event loop that will serve requests: the
    persistence coordinator schedules its debounce timers on that loop.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        target: Optional[WriteTarget] = None,
    ):
        if settings is not None:
            set_settings(settings)
        self._settings = settings or get_settings()
        self._target = target
        self._store: Optional[DocumentStore] = None
        self._persistence: Optional[PersistenceCoordinator] = None
        self._csv_exporter: Optional[CsvExporter] = None
        self._started = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def data_file(self) -> Path:
        return self._settings.get_data_file()

    @property
    def store(self) -> DocumentStore:
        """Get the DocumentStore instance."""
        if self._store is None:
            self._store = DocumentStore()
        return self._store

    @property
    def target(self) -> WriteTarget:
        if self._target is None:
            self._target = FileWriteTarget(
                path=self.data_file,
                backup_dir=self._settings.get_backup_dir(),
                max_backups=self._settings.max_backups,
            )
        return self._target

    @property
    def persistence(self) -> PersistenceCoordinator:
        """Get the PersistenceCoordinator instance."""
        if self._persistence is None:
            self._persistence = PersistenceCoordinator(
                store=self.store,
                target=self.target,
                delay=self._settings.autosave_debounce_seconds,
                retry_on_failure=self._settings.autosave_retry_on_failure,
                autosave=self._settings.autosave_enabled,
            )
        return self._persistence

    @property
    def csv_exporter(self) -> CsvExporter:
        """Get the CsvExporter instance."""
        if self._csv_exporter is None:
            self._csv_exporter = CsvExporter(self.store)
        return self._csv_exporter

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self, load_existing: bool = True) -> None:
        """Load the ledger file when it exists, then start autosave."""
        if self._started:
            return
        if load_existing and isinstance(self.target, FileWriteTarget):
            self.load_data_file()
        self.persistence.start()
        self._started = True

    def load_data_file(self) -> bool:
        path = self.data_file
        if not path.exists():
            logger.info("No ledger file at %s; waiting for a document", path)
            return False
        result = self.store.load(path.read_text(encoding="utf-8"))
        if not result.success:
            logger.error("Could not load %s: %s", path, result.error.message)
        return result.success

    async def stop(self) -> None:
        """Flush pending changes and stop autosave."""
        if not self._started:
            return
        await self.persistence.stop()
        self._started = False


# Global application context (one per process)
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set the global application context."""
    global _app_context
    _app_context = context
