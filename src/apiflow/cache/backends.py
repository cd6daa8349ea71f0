"""Storage backends behind :class:`~apiflow.cache.store.CacheStore`.

Three implementations share the :class:`Backend` interface:

* :class:`MemoryBackend` -- a plain dict, gone when the process exits.
* :class:`DiskBackend` -- a :class:`diskcache.Cache` directory that survives
  restarts (the ``durable`` backend).
* :class:`SessionBackend` -- a :class:`diskcache.Cache` in a private
  temporary directory, deleted when the backend is closed.

Disk backends store each entry as the JSON text of
:meth:`~apiflow.models.CacheEntry.to_record`, so anything cached there must
survive a JSON round-trip.  Failures while writing are logged and dropped:
caching is an optimisation and must never break a request.
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import diskcache

from apiflow.models import CacheEntry

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class Backend(ABC):
    """Minimal key/value interface the cache store needs."""

    @abstractmethod
    def read(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under *key*, or ``None``."""

    @abstractmethod
    def write(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*.  Must not raise on storage failures."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key* if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return every key currently stored."""

    def clear(self, prefix: str) -> None:
        """Remove every key that starts with *prefix*."""
        for key in self.keys():
            if key.startswith(prefix):
                self.delete(key)

    def count(self, prefix: str) -> int:
        return sum(1 for key in self.keys() if key.startswith(prefix))

    def close(self) -> None:
        """Release resources held by the backend."""


class MemoryBackend(Backend):
    """In-process backend.  Cleared only explicitly or by a restart."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def read(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def write(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)


class DiskBackend(Backend):
    """Persistent backend built on :class:`diskcache.Cache`.

    Args:
        directory: Cache directory, or a callable returning it.  The
            directory is resolved and opened lazily on first use so that a
            store which never touches this backend never creates it.
    """

    def __init__(self, directory: Path | str | Callable[[], Path]) -> None:
        self._directory = directory
        self._cache: Optional[diskcache.Cache] = None

    @property
    def directory(self) -> Optional[Path]:
        if self._cache is None:
            return None
        return Path(self._cache.directory)

    def _open(self) -> diskcache.Cache:
        if self._cache is None:
            directory = self._directory() if callable(self._directory) else self._directory
            self._cache = diskcache.Cache(str(directory))
        return self._cache

    def read(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self._open().get(key)
        except _STORAGE_ERRORS as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.from_record(json.loads(raw))
        except (TypeError, ValueError, KeyError) as exc:
            logger.debug("Ignoring unreadable cache record %s: %s", key, exc)
            return None

    def write(self, key: str, entry: CacheEntry) -> None:
        try:
            payload = json.dumps(entry.to_record())
            self._open().set(key, payload)
        except (TypeError, ValueError) as exc:
            logger.warning("Cache entry %s is not JSON serialisable, skipping: %s", key, exc)
        except _STORAGE_ERRORS as exc:
            logger.warning("Failed to save cache entry %s: %s", key, exc)

    def delete(self, key: str) -> None:
        try:
            self._open().delete(key)
        except _STORAGE_ERRORS as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    def keys(self) -> list[str]:
        try:
            return [key for key in self._open().iterkeys() if isinstance(key, str)]
        except _STORAGE_ERRORS as exc:
            logger.warning("Cannot list cache keys: %s", exc)
            return []

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()
            self._cache = None


class SessionBackend(DiskBackend):
    """Disk backend scoped to the lifetime of one cache store."""

    def __init__(self) -> None:
        super().__init__(self._make_directory)
        self._tmpdir: Optional[str] = None

    def _make_directory(self) -> Path:
        self._tmpdir = tempfile.mkdtemp(prefix="apiflow-session-")
        return Path(self._tmpdir)

    def close(self) -> None:
        super().close()
        if self._tmpdir is not None:
            shutil.rmtree(self._tmpdir, ignore_errors=True)
            self._tmpdir = None
