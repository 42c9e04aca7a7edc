"""FileCache Errors - Exception Taxonomy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

All errors raised by the library derive from CacheError so callers can catch
broadly, or pick out CacheIOError / PopulateError / LockError to decide
whether to retry, force a refresh, or give up.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class CacheError(Exception):
    """Base class for all cache errors."""


class ConfigError(CacheError):
    """Unusable configuration, e.g. a storage root that is not a directory."""


class InvalidKeyError(CacheError, ValueError):
    """Key cannot be resolved to a file under the storage root."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid key {key!r}: {reason}")
        self.key = key
        self.reason = reason


class PathTraversalError(InvalidKeyError):
    """Key resolves to a path outside the storage root."""

    def __init__(self, key: str, root: Path):
        super().__init__(key, f"escapes cache directory {root}")
        self.root = root


class CacheIOError(CacheError):
    """Filesystem access failed (create, open, read, write, remove)."""

    def __init__(self, message: str, key: Optional[str] = None, path: Optional[Path] = None):
        super().__init__(message)
        self.key = key
        self.path = path


class PopulateError(CacheError):
    """The populate callback raised.

    The callback's exception is kept unchanged in ``cause`` and chained as
    ``__cause__``.
    """

    def __init__(self, key: str, cause: BaseException):
        super().__init__(f"Populating {key!r} failed: {cause!r}")
        self.key = key
        self.cause = cause


class LockError(CacheError):
    """Lock misuse: double lock, double unlock, or lock held elsewhere."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key!r}: {message}")
        self.key = key


__all__ = [
    "CacheError",
    "ConfigError",
    "InvalidKeyError",
    "PathTraversalError",
    "CacheIOError",
    "PopulateError",
    "LockError",
]
