"""Factories for conventional endpoint groups.

:func:`crud_endpoints` produces the seven endpoints of a REST resource and
:func:`lookup_endpoints` the two cached endpoints of a reference-data list.
Both return plain descriptors; register them with
:meth:`~apiflow.endpoints.EndpointRegistry.register_group`.
"""

from __future__ import annotations

from typing import Any, Optional

from apiflow.models import (
    DEFAULT_KEY_PREFIX,
    CachePolicy,
    EndpointDescriptor,
    HTTPMethod,
    PaginationPolicy,
)

CRUD_KEY_PREFIX = f"{DEFAULT_KEY_PREFIX}crud_"
LOOKUP_KEY_PREFIX = f"{DEFAULT_KEY_PREFIX}lookup_"
LOOKUP_TTL_MS = 3_600_000


def crud_endpoints(
    name: str,
    base_url: str,
    *,
    mapper: Any = None,
    pagination: Optional[PaginationPolicy] = None,
    cache: Optional[CachePolicy] = None,
) -> list[EndpointDescriptor]:
    """Build ``<name>.list|get|create|update|patch|delete|search``.

    ``list``, ``get`` and ``search`` are GETs and receive *cache*;
    ``list`` and ``search`` also receive *pagination*.  Every endpoint except
    ``delete`` gets *mapper*.

    Example::

        registry.register_group("users", crud_endpoints("users", "/api/users"))
    """
    base = base_url.rstrip("/") or "/"
    item = f"{base.rstrip('/')}/:id"
    if cache is not None and cache.key_prefix == DEFAULT_KEY_PREFIX:
        cache = cache.model_copy(update={"key_prefix": CRUD_KEY_PREFIX})

    def endpoint(action: str, url: str, method: HTTPMethod, **extra: Any) -> EndpointDescriptor:
        return EndpointDescriptor(id=f"{name}.{action}", url=url, method=method, **extra)

    return [
        endpoint("list", base, HTTPMethod.GET, mapper=mapper, pagination=pagination, cache=cache),
        endpoint("get", item, HTTPMethod.GET, mapper=mapper, cache=cache),
        endpoint("create", base, HTTPMethod.POST, mapper=mapper),
        endpoint("update", item, HTTPMethod.PUT, mapper=mapper),
        endpoint("patch", item, HTTPMethod.PATCH, mapper=mapper),
        endpoint("delete", item, HTTPMethod.DELETE),
        endpoint("search", base, HTTPMethod.GET, mapper=mapper, pagination=pagination, cache=cache),
    ]


def lookup_endpoints(
    base_url: str,
    *,
    mapper: Any = None,
    cache: Optional[CachePolicy] = None,
) -> list[EndpointDescriptor]:
    """Build the cached ``lookup.<entity>.list`` and ``lookup.<entity>.get`` endpoints.

    The entity name is the last path segment of *base_url*
    (``/api/countries`` gives ``lookup.countries.list``).  Lookup data changes
    rarely, so results are cached in process for an hour unless *cache* says
    otherwise.
    """
    segments = [s for s in base_url.split("/") if s]
    entity = segments[-1] if segments else "lookup"
    policy = cache or CachePolicy(ttl_ms=LOOKUP_TTL_MS, key_prefix=LOOKUP_KEY_PREFIX)
    base = base_url.rstrip("/") or "/"

    return [
        EndpointDescriptor(id=f"lookup.{entity}.list", url=base, cache=policy, mapper=mapper),
        EndpointDescriptor(
            id=f"lookup.{entity}.get", url=f"{base.rstrip('/')}/:id", cache=policy, mapper=mapper
        ),
    ]
