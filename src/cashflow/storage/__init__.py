"""Write targets used by the persistence coordinator."""

from cashflow.storage.targets import (
    WriteResult,
    WriteTarget,
    FileWriteTarget,
    MemoryWriteTarget,
)

__all__ = [
    "WriteResult",
    "WriteTarget",
    "FileWriteTarget",
    "MemoryWriteTarget",
]
