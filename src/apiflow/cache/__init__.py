"""Multi-backend TTL caching for endpoint results.

This package provides :class:`CacheStore`, which keeps successful GET results
in one of three backends chosen per endpoint by
:class:`~apiflow.models.CachePolicy`: an in-process dict, a durable
:mod:`diskcache` directory, or a session-scoped :mod:`diskcache` directory.

The store is owned by :class:`~apiflow.executor.Executor`; there is no
module-level default instance.
"""

from apiflow.cache.backends import Backend, DiskBackend, MemoryBackend, SessionBackend
from apiflow.cache.store import CacheStore, now_ms

__all__ = [
    "Backend",
    "CacheStore",
    "DiskBackend",
    "MemoryBackend",
    "SessionBackend",
    "now_ms",
]
