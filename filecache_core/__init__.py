"""FileCache - Filesystem-Backed Get-or-Populate Cache.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A cache of files in a directory, populated by caller callbacks, with:
- Time-based freshness (never, always, or after an interval)
- Cache-wide default with per-file overrides
- Eager and lazy retrieval
- Forced refresh
- Manual locks that suppress refresh
- At most one population in flight per file
- Temporary or persistent storage, optional cross-process file locks

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        FileCache System                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Cache     │  │ CachedFile  │  │   Entry     │   CACHE     │
    │  │ get/lazy    │  │ open/lock   │  │ timestamp   │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘             │
    │         │                │                │                     │
    │  ┌──────┴────────────────┴────────────────┴──────┐             │
    │  │      Refresh Policy  +  Populator              │   REFRESH   │
    │  └──────────────────────┬────────────────────────┘   LAYER     │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │   Entry Guard (mutex, manual lock, OS lock)    │   LOCKING   │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │   Storage Root (directory / temporary)         │   STORAGE   │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    import filecache_core

    cache = filecache_core.new().set_refresh_interval(60)

    def download(f):
        f.write(fetch_bytes())

    data = cache.get("data/latest.json", download)
    with data.open() as f:
        payload = f.read()

    # Nothing is fetched until the handle is opened
    report = cache.get_lazy("report.txt", write_report)

    # Keep the file stable while reading and editing it
    cache.lock("data/latest.json")
    try:
        ...
    finally:
        cache.unlock("data/latest.json")
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from filecache_core.errors import (
    CacheError,
    CacheIOError,
    ConfigError,
    InvalidKeyError,
    LockError,
    PathTraversalError,
    PopulateError,
)
from filecache_core.cache.policy import (
    DEFAULT_REFRESH_POLICY,
    PolicyKind,
    RefreshPolicy,
)
from filecache_core.cache.entry import CacheEntry
from filecache_core.cache.handle import CachedFile, HandleState
from filecache_core.cache.cache import (
    Cache,
    CacheConfig,
    CacheStats,
)
from filecache_core.locking.guard import EntryGuard, LockState, ProcessLock
from filecache_core.store.backend import StorageRoot
from filecache_core.store.file import DirectoryRoot, TemporaryRoot


def new(config: Optional[CacheConfig] = None) -> Cache:
    """Create a cache in a temporary directory."""
    return Cache.temporary(config=config)


def with_prefix(prefix: str, config: Optional[CacheConfig] = None) -> Cache:
    """Create a cache in a temporary directory whose name starts with ``prefix``."""
    return Cache.temporary(prefix, config=config)


def with_dir(path: Union[str, Path], config: Optional[CacheConfig] = None) -> Cache:
    """Create a cache over a directory that outlives it."""
    return Cache.in_directory(path, config=config)


__all__ = [
    # Constructors
    "new",
    "with_prefix",
    "with_dir",
    # Cache
    "Cache",
    "CacheConfig",
    "CacheStats",
    "CacheEntry",
    "CachedFile",
    "HandleState",
    # Policy
    "RefreshPolicy",
    "PolicyKind",
    "DEFAULT_REFRESH_POLICY",
    # Locking
    "EntryGuard",
    "LockState",
    "ProcessLock",
    # Storage
    "StorageRoot",
    "DirectoryRoot",
    "TemporaryRoot",
    # Errors
    "CacheError",
    "CacheIOError",
    "ConfigError",
    "InvalidKeyError",
    "LockError",
    "PathTraversalError",
    "PopulateError",
]
