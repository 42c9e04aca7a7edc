"""FileCache Directory Roots - Persistent and Temporary Storage.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

from filecache_core.errors import CacheIOError, ConfigError
from filecache_core.store.backend import StorageRoot

logger = logging.getLogger(__name__)


class DirectoryRoot(StorageRoot):
    """Caller-supplied directory.

    Files persist after the cache is closed. The directory is created if
    missing.

    Example:
        root = DirectoryRoot("/var/cache/myapp")
        cache = Cache(root)
    """

    def __init__(self, path: Union[str, Path], atomic_writes: bool = True):
        """Initialize directory root.

        Args:
            path: Directory for cached files
            atomic_writes: Publish populations with an atomic replace

        Raises:
            ConfigError: Path exists and is not a directory
            CacheIOError: Directory cannot be created
        """
        path = Path(path)
        if path.exists() and not path.is_dir():
            raise ConfigError(f"Path is not a directory: {path}")
        try:
            path.mkdir(parents=True, exist_ok=True)
            path = path.resolve(strict=True)
        except OSError as e:
            raise CacheIOError(f"Cannot create cache directory {path}: {e}", path=path) from e
        super().__init__(path, atomic_writes)

    @property
    def is_temporary(self) -> bool:
        return False

    def close(self) -> None:
        """Nothing to release; files stay on disk."""


class TemporaryRoot(StorageRoot):
    """Private temporary directory, removed on close.

    The directory is also removed by the interpreter's finalizer if the
    owner never calls close().
    """

    DEFAULT_PREFIX = "filecache"

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        atomic_writes: bool = True,
        dir: Optional[Union[str, Path]] = None,
    ):
        """Initialize temporary root.

        Args:
            prefix: Directory name prefix
            atomic_writes: Publish populations with an atomic replace
            dir: Parent for the temporary directory, system default if None
        """
        try:
            self._temp_dir: Optional[tempfile.TemporaryDirectory] = tempfile.TemporaryDirectory(
                prefix=prefix, dir=dir
            )
            path = Path(self._temp_dir.name).resolve(strict=True)
        except OSError as e:
            raise CacheIOError(f"Cannot create temporary cache directory: {e}") from e
        super().__init__(path, atomic_writes)
        logger.debug(f"Created temporary cache directory {path}")

    @property
    def is_temporary(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._temp_dir is None

    def close(self) -> None:
        """Remove the directory and everything in it."""
        if self._temp_dir is None:
            return
        temp_dir, self._temp_dir = self._temp_dir, None
        try:
            temp_dir.cleanup()
        except OSError as e:
            raise CacheIOError(f"Cannot remove {self.path}: {e}", path=self.path) from e
        logger.debug(f"Removed temporary cache directory {self.path}")


__all__ = ["DirectoryRoot", "TemporaryRoot"]
