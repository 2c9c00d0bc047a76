"""
Write capabilities for serialized ledger documents.

The coordinator only sees the WriteTarget protocol; whether bytes end up in a
file on disk or in memory for a download is the target's business.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup.toml"
BACKUP_STAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True)
class WriteResult:
    success: bool
    message: str = ""


class WriteTarget(Protocol):
    """Destination for serialized document bytes."""

    async def write(self, data: bytes) -> WriteResult:
        ...


class MemoryWriteTarget:
    """Keeps the last payload in memory. Used for downloads and in tests."""

    def __init__(self):
        self.payload: Optional[bytes] = None
        self.writes = 0

    async def write(self, data: bytes) -> WriteResult:
        self.payload = data
        self.writes += 1
        return WriteResult(success=True, message=f"{len(data)} octets en mémoire")


class FileWriteTarget:
    """
    Atomic file writer with rotating backups.

    Before replacing the file, the current version is copied to
    ``<backup_dir>/<stem>.<YYYYMMDD-HHMMSS>.backup.toml``; only the newest
    ``max_backups`` copies are kept. The new content goes to a temporary file
    in the same directory and is moved into place with ``os.replace``. The
    blocking work runs in a worker thread.
    """

    def __init__(
        self,
        path: Union[str, Path],
        backup_dir: Optional[Union[str, Path]] = None,
        max_backups: int = 10,
        fsync: bool = True,
    ):
        self.path = Path(path)
        self.backup_dir = Path(backup_dir) if backup_dir is not None else None
        self.max_backups = max_backups
        self.fsync = fsync

    async def write(self, data: bytes) -> WriteResult:
        try:
            await asyncio.to_thread(self._write_sync, data)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            return WriteResult(success=False, message=f"Erreur d'écriture de {self.path.name} : {exc}")
        return WriteResult(success=True, message=f"Fichier {self.path.name} sauvegardé")

    def _write_sync(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.backup_dir is not None and self.max_backups > 0 and self.path.exists():
            self._backup()

        temp_name: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="wb",
                prefix=self.path.name + "-",
                suffix=".tmp",
                dir=self.path.parent,
                delete=False,
            ) as tf:
                temp_name = tf.name
                tf.write(data)
                tf.flush()
                if self.fsync:
                    os.fsync(tf.fileno())
            os.replace(temp_name, self.path)
        except OSError:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise
        logger.debug("Atomic write successful: %s", self.path)

    def _backup(self) -> Path:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime(BACKUP_STAMP_FORMAT)
        backup = self.backup_dir / f"{self.path.stem}.{stamp}{BACKUP_SUFFIX}"
        shutil.copy2(self.path, backup)
        self._prune()
        return backup

    def list_backups(self) -> list[Path]:
        """Backups of this file, newest first."""
        if self.backup_dir is None or not self.backup_dir.exists():
            return []
        backups = self.backup_dir.glob(f"{self.path.stem}.*{BACKUP_SUFFIX}")
        return sorted(backups, key=lambda p: p.name, reverse=True)

    def _prune(self) -> None:
        for old in self.list_backups()[self.max_backups:]:
            old.unlink()
            logger.debug("Removed old backup %s", old)
