"""Storage module - Directories that hold cached files."""

from filecache_core.store.backend import StorageRoot, PendingWrite
from filecache_core.store.file import DirectoryRoot, TemporaryRoot

__all__ = [
    "StorageRoot",
    "PendingWrite",
    "DirectoryRoot",
    "TemporaryRoot",
]
