"""TTL cache for endpoint results with process, durable, and session backends.

Entries are written as ``{data, timestamp, duration}`` under
``<policy.key_prefix><key>`` in the backend named by the endpoint's
:class:`~apiflow.models.CachePolicy`.  Expiry is computed lazily on read
(``now - timestamp > duration``); there is no background sweep, and an
expired entry is deleted the next time someone reads it.

Key derivation is not done here -- see
:func:`~apiflow.executor.build_cache_key`.

See Also:
    :mod:`apiflow.cache.backends` -- the storage implementations.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from apiflow.cache.backends import Backend, DiskBackend, MemoryBackend, SessionBackend
from apiflow.models import DEFAULT_KEY_PREFIX, CacheBackend, CacheEntry, CachePolicy

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheStore:
    """TTL key/value store shared by every call of one executor.

    Args:
        cache_dir: Root directory for the durable backend.  A ``responses/``
            subdirectory is created inside it on first use.  Defaults to
            :func:`~apiflow.config.get_cache_dir`.
        default_prefix: Prefix used when a policy has none, and for
            discovering entries in :meth:`clear` and :meth:`get_stats`.
        clock: Callable returning the current time in epoch milliseconds.
        backends: Replacement backends, keyed by :class:`CacheBackend`.

    Example::

        store = CacheStore(tmp_path)
        policy = CachePolicy(backend="durable", ttl_ms=5000)
        store.set("users.list", [{"id": 1}], policy)
        store.get("users.list", policy)   # -> [{"id": 1}]
    """

    def __init__(
        self,
        cache_dir: Optional[Path | str] = None,
        default_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Optional[Callable[[], int]] = None,
        backends: Optional[dict[CacheBackend, Backend]] = None,
    ) -> None:
        self._default_prefix = default_prefix
        self._clock = clock or now_ms
        self._backends: dict[CacheBackend, Backend] = {
            CacheBackend.PROCESS: MemoryBackend(),
            CacheBackend.DURABLE: DiskBackend(self._durable_dir_resolver(cache_dir)),
            CacheBackend.SESSION: SessionBackend(),
        }
        if backends:
            self._backends.update(backends)

    @staticmethod
    def _durable_dir_resolver(cache_dir: Optional[Path | str]) -> Callable[[], Path]:
        def resolve() -> Path:
            if cache_dir is not None:
                return Path(cache_dir) / "responses"
            from apiflow.config import get_cache_dir

            return get_cache_dir() / "responses"

        return resolve

    @property
    def default_prefix(self) -> str:
        return self._default_prefix

    def backend(self, name: CacheBackend) -> Backend:
        return self._backends[CacheBackend(name)]

    # ------------------------------------------------------------------ #
    # Entry operations
    # ------------------------------------------------------------------ #

    def get(self, key: str, policy: CachePolicy) -> Any:
        """Return the cached value for *key*, or ``None`` when absent.

        Returns ``None`` immediately when the policy is disabled.  Missing
        and expired entries are both reported as absent; expired ones are
        removed from the backend as a side effect.
        """
        if not policy.enabled:
            return None

        full_key = self._full_key(key, policy)
        backend = self._backends[policy.backend]
        entry = backend.read(full_key)
        if entry is None:
            logger.debug("Cache miss: %s (%s)", full_key, policy.backend.value)
            return None

        if entry.is_expired(self._clock()):
            logger.debug("Cache expired: %s (%s)", full_key, policy.backend.value)
            backend.delete(full_key)
            return None

        logger.debug("Cache hit: %s (%s)", full_key, policy.backend.value)
        return entry.data

    def set(self, key: str, value: Any, policy: CachePolicy) -> None:
        """Store *value* under *key* for ``policy.ttl_ms`` milliseconds.

        A no-op when the policy is disabled.  Persistent write failures are
        logged by the backend, never raised.
        """
        if not policy.enabled:
            return
        entry = CacheEntry(data=value, stored_at_ms=self._clock(), ttl_ms=policy.ttl_ms)
        self._backends[policy.backend].write(self._full_key(key, policy), entry)

    def remove(self, key: str, policy: CachePolicy) -> None:
        self._backends[policy.backend].delete(self._full_key(key, policy))

    def has(self, key: str, policy: CachePolicy) -> bool:
        return self.get(key, policy) is not None

    def remove_matching(self, key: str, policy: CachePolicy) -> int:
        """Remove the entry for *key* and every entry keyed ``key:<...>``.

        Used to drop all cached variants (path/query combinations) of one
        endpoint.

        Returns:
            The number of entries removed.
        """
        backend = self._backends[policy.backend]
        full_key = self._full_key(key, policy)
        removed = 0
        for stored in backend.keys():
            if stored == full_key or stored.startswith(full_key + ":"):
                backend.delete(stored)
                removed += 1
        return removed

    # ------------------------------------------------------------------ #
    # Bulk operations
    # ------------------------------------------------------------------ #

    def clear(self, backend: CacheBackend | str = CacheBackend.PROCESS) -> None:
        """Remove every entry carrying the default prefix from one backend."""
        name = CacheBackend(backend)
        self._backends[name].clear(self._default_prefix)
        logger.debug("Cleared %s cache", name.value)

    def clear_all(self) -> None:
        for name in CacheBackend:
            self.clear(name)

    def get_stats(self) -> dict[str, int]:
        """Count prefix-matching entries per backend (expired ones included)."""
        return {
            name.value: self._backends[name].count(self._default_prefix)
            for name in CacheBackend
        }

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        """Close every backend.  The session backend deletes its files."""
        for backend in self._backends.values():
            backend.close()

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _full_key(self, key: str, policy: CachePolicy) -> str:
        return f"{policy.key_prefix or self._default_prefix}{key}"
