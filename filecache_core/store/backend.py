"""FileCache Storage Root - Abstract Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import logging
import os
import posixpath
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, Optional, Tuple

from filecache_core.errors import CacheIOError, InvalidKeyError, PathTraversalError

logger = logging.getLogger(__name__)

LOCK_DIR_NAME = ".filecache-locks"


def _target_mode(path: Path) -> int:
    """Get the mode of an existing file, or the umask default for a new one."""
    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


class PendingWrite:
    """Writable stream for one population attempt.

    Atomic writes go to a temp file beside the target and are moved over it
    on commit, so an aborted attempt leaves the previous content untouched.
    Non-atomic writes truncate the target in place.
    """

    def __init__(self, key: str, path: Path, atomic: bool = True):
        """Open the stream.

        Args:
            key: Entry key
            path: Target file
            atomic: Write through a temp file

        Raises:
            CacheIOError: Parent directory or file cannot be created
        """
        self.key = key
        self.path = path
        self.atomic = atomic
        self._temp_path: Optional[Path] = None

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if atomic:
                fd, temp_name = tempfile.mkstemp(
                    prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
                )
                self._temp_path = Path(temp_name)
                # mkstemp creates 0600; publish with the mode a plain write would get
                try:
                    os.chmod(temp_name, _target_mode(path))
                except OSError:
                    os.close(fd)
                    self._temp_path.unlink(missing_ok=True)
                    raise
                self.stream: IO[bytes] = os.fdopen(fd, "wb")
            else:
                self.stream = open(path, "wb")
        except OSError as e:
            logger.error(f"Error opening {key} for writing: {e}")
            raise CacheIOError(f"Cannot open {path} for writing: {e}", key, path) from e

    def commit(self) -> None:
        """Flush and publish the written content."""
        try:
            self.stream.close()
            if self._temp_path is not None:
                os.replace(self._temp_path, self.path)
                self._temp_path = None
        except OSError as e:
            logger.error(f"Error writing {self.key}: {e}")
            self.abort()
            raise CacheIOError(f"Cannot write {self.path}: {e}", self.key, self.path) from e

    def abort(self) -> None:
        """Discard the attempt."""
        self.stream.close()
        if self._temp_path is not None:
            try:
                self._temp_path.unlink()
            except FileNotFoundError:
                pass
            self._temp_path = None


class StorageRoot(ABC):
    """Directory that cached files live in.

    Implementations:
    - DirectoryRoot: caller-supplied directory, files outlive the cache
    - TemporaryRoot: private temp directory, removed on close

    Keys are relative POSIX paths and double as file names under the root.
    """

    def __init__(self, path: Path, atomic_writes: bool = True):
        """Initialize root.

        Args:
            path: Canonical root directory
            atomic_writes: Publish populations with an atomic replace
        """
        self.path = path
        self.atomic_writes = atomic_writes

    @property
    @abstractmethod
    def is_temporary(self) -> bool:
        """Check if the directory is removed on close."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the root."""
        pass

    @property
    def closed(self) -> bool:
        """Check if the root was released."""
        return False

    def resolve(self, key: str) -> Tuple[str, Path]:
        """Resolve a key to its normalized form and file path.

        Never creates directories.

        Args:
            key: Relative path of the cached file

        Returns:
            (normalized key, absolute path)

        Raises:
            InvalidKeyError: Malformed key
            PathTraversalError: Key points outside the root
        """
        if not isinstance(key, str):
            raise InvalidKeyError(repr(key), "key must be a string")
        if key.endswith("/"):
            raise InvalidKeyError(key, "key must name a file, not a directory")
        if posixpath.isabs(key) or Path(key).is_absolute():
            raise InvalidKeyError(key, "key must be relative")

        raw_name = key.rsplit("/", 1)[-1]
        if not raw_name.strip() or raw_name in (".", ".."):
            raise InvalidKeyError(key, "empty file name")

        normalized = posixpath.normpath(key)
        if normalized == ".." or normalized.startswith("../"):
            raise PathTraversalError(key, self.path)
        if normalized.split("/", 1)[0] == LOCK_DIR_NAME:
            raise InvalidKeyError(key, f"{LOCK_DIR_NAME} is reserved")

        path = self.path.joinpath(*normalized.split("/"))
        # Symlinks inside the root may still point elsewhere
        if not path.parent.resolve().is_relative_to(self.path):
            raise PathTraversalError(key, self.path)
        return normalized, path

    def lock_path(self, key: str) -> Path:
        """Get the sidecar lock file for a normalized key."""
        digest = hashlib.sha256(key.encode()).hexdigest()
        return self.path / LOCK_DIR_NAME / f"{digest}.lock"

    def exists(self, path: Path) -> bool:
        """Check if a cached file exists."""
        return path.is_file()

    def mtime(self, path: Path) -> Optional[float]:
        """Get modification time, or None if missing."""
        try:
            return path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheIOError(f"Cannot stat {path}: {e}", path=path) from e

    def begin_write(self, key: str, path: Path) -> PendingWrite:
        """Open a population attempt for a file."""
        return PendingWrite(key, path, atomic=self.atomic_writes)

    def open(self, key: str, path: Path, mode: str = "rb", encoding: Optional[str] = None) -> IO[Any]:
        """Open a cached file for reading.

        Raises:
            CacheIOError: File missing or unreadable
        """
        if any(flag in mode for flag in "wax+"):
            raise ValueError(f"Cached files are opened read-only, got mode {mode!r}")
        try:
            return open(path, mode, encoding=encoding)
        except OSError as e:
            raise CacheIOError(f"Cannot open {path}: {e}", key, path) from e

    def remove(self, key: str, path: Path) -> bool:
        """Remove a cached file and the directories it leaves empty.

        Returns:
            True if a file was removed
        """
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheIOError(f"Cannot remove {path}: {e}", key, path) from e

        parent = path.parent
        while parent != self.path and parent.is_relative_to(self.path):
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.path})"


__all__ = ["StorageRoot", "PendingWrite", "LOCK_DIR_NAME"]
