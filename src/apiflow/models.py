"""Canonical Pydantic models shared across all apiflow modules.

This is the single source of truth for data shapes in the project.  The
models fall into three groups:

**Endpoint configuration** -- created once when an application is configured
and read-only afterwards:
    :class:`HTTPMethod`, :class:`CacheBackend`, :class:`CachePolicy`,
    :class:`PaginationType`, :class:`PaginationPolicy`, and
    :class:`EndpointDescriptor`.

**Per-call data** -- built fresh for every :meth:`~apiflow.executor.Executor.execute`:
    :class:`CallOptions`, :class:`RequestDescription`, :class:`MultipartBody`,
    :class:`NormalizedResponse`, and :class:`CacheEntry`.

**Persisted configuration** -- serialised as JSON/YAML on disk:
    :class:`CacheSettings`, :class:`PluginsConfig`, :class:`GlobalConfig`,
    and :class:`Manifest`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_KEY_PREFIX = "apiflow_cache_"
"""Prefix shared by every cache key so bulk clears can discover entries."""

DEFAULT_TIMEOUT_MS = 30000


# --- Endpoint configuration ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods an endpoint can be declared with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def has_body(self) -> bool:
        """Whether this is a body-bearing mutation (POST, PUT, PATCH)."""
        return self in (HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH)


class CacheBackend(str, enum.Enum):
    """Where cached results are kept.

    ``PROCESS`` lives in memory for the lifetime of the store.  ``DURABLE``
    persists on disk across restarts.  ``SESSION`` persists on disk only
    until the store is closed.
    """

    PROCESS = "process"
    DURABLE = "durable"
    SESSION = "session"


class CachePolicy(BaseModel):
    """Per-endpoint decision of whether, where, and how long to cache GET results.

    Example::

        CachePolicy(backend="durable", ttl_ms=86_400_000)
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    backend: CacheBackend = CacheBackend.PROCESS
    ttl_ms: int = Field(default=60000, ge=0, description="Entry lifetime in milliseconds")
    key_prefix: str = Field(default=DEFAULT_KEY_PREFIX)


class PaginationType(str, enum.Enum):
    OFFSET = "offset"
    CURSOR = "cursor"


class PaginationPolicy(BaseModel):
    """Pagination hints attached to list-style endpoints."""

    model_config = ConfigDict(frozen=True)

    type: PaginationType = PaginationType.OFFSET
    default_limit: int = 20
    max_limit: int = 100


class EndpointDescriptor(BaseModel):
    """Immutable description of one callable network operation.

    The ``url`` template may contain ``:name`` placeholders and optional
    ``:name?`` placeholders which are dropped together with their leading
    slash when no value is supplied.

    ``before_request`` receives ``(request, ctx)`` and returns the request to
    send.  ``after_response`` receives ``(response, ctx)`` and returns the
    payload.  Both may be plain functions or coroutines.

    Descriptors are frozen; use :meth:`with_cache` and :meth:`with_hooks` to
    derive a copy with more configuration attached.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    url: str
    method: HTTPMethod = HTTPMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    cache: Optional[CachePolicy] = None
    pagination: Optional[PaginationPolicy] = None
    mapper: Optional[Any] = Field(default=None, exclude=True)
    before_request: Optional[Callable[..., Any]] = Field(default=None, exclude=True)
    after_response: Optional[Callable[..., Any]] = Field(default=None, exclude=True)

    @field_validator("id")
    @classmethod
    def _id_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("endpoint id is required")
        return value

    @field_validator("url")
    @classmethod
    def _url_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("endpoint url is required")
        return value

    @field_validator("method", mode="before")
    @classmethod
    def _normalise_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def caches(self) -> bool:
        """Whether calls to this endpoint may read or write the cache."""
        return self.method is HTTPMethod.GET and self.cache is not None and self.cache.enabled

    def with_cache(self, policy: Optional[CachePolicy]) -> EndpointDescriptor:
        return self.model_copy(update={"cache": policy})

    def with_hooks(
        self,
        before_request: Optional[Callable[..., Any]] = None,
        after_response: Optional[Callable[..., Any]] = None,
    ) -> EndpointDescriptor:
        update: dict[str, Any] = {}
        if before_request is not None:
            update["before_request"] = before_request
        if after_response is not None:
            update["after_response"] = after_response
        return self.model_copy(update=update)


# --- Per-call data ---


class CallOptions(BaseModel):
    """Per-invocation overrides supplied fresh by the caller.

    Unknown keys are rejected.  ``skipCache`` is accepted for ``skip_cache``.
    """

    model_config = ConfigDict(extra="forbid")

    path: Optional[dict[str, Any]] = None
    query: Optional[dict[str, Any]] = None
    body: Any = None
    headers: Optional[dict[str, str]] = None
    skip_cache: bool = Field(False, validation_alias=AliasChoices("skip_cache", "skipCache"))


class MultipartBody(BaseModel):
    """A multipart/form-data payload.

    ``files`` uses the httpx convention: ``{"field": (filename, content,
    content_type)}``.  The transport leaves the ``Content-Type`` header to
    httpx so the boundary is set correctly.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    fields: dict[str, Any] = Field(default_factory=dict)
    files: dict[str, Any] = Field(default_factory=dict)


class RequestDescription(BaseModel):
    """Fully resolved request; the only thing the transport ever sees.

    Interceptors receive it, may mutate it in place or build a new one, and
    must return the description to use from then on.
    """

    url: str
    method: HTTPMethod
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS


class NormalizedResponse(BaseModel):
    """A successful (2xx) response with its body already decoded."""

    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    data: Any = None


class CacheEntry(BaseModel):
    """A cached value with its write time and lifetime, both in epoch milliseconds.

    Persistent backends store :meth:`to_record` as JSON; that layout
    (``data``, ``timestamp``, ``duration``) must stay stable between
    versions.
    """

    data: Any = None
    stored_at_ms: int
    ttl_ms: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms - self.stored_at_ms > self.ttl_ms

    def to_record(self) -> dict[str, Any]:
        return {"data": self.data, "timestamp": self.stored_at_ms, "duration": self.ttl_ms}

    @classmethod
    def from_record(cls, record: Any) -> CacheEntry:
        if not isinstance(record, dict):
            raise ValueError(f"cache record must be an object, got {type(record).__name__}")
        return cls(
            data=record.get("data"),
            stored_at_ms=record["timestamp"],
            ttl_ms=record["duration"],
        )


# --- Persisted configuration ---


class CacheSettings(BaseModel):
    """Location of the durable cache stored in :class:`GlobalConfig`."""

    directory: Optional[str] = Field(
        default=None, description="Override for the durable cache directory"
    )


class PluginsConfig(BaseModel):
    """Explicit plugin allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/apiflow/config.json``.

    Fields here have the lowest precedence; see
    :func:`~apiflow.config.resolve_config` for the full chain.
    """

    base_url: Optional[str] = None
    default_headers: dict[str, str] = Field(default_factory=dict)
    default_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    manifest: Optional[str] = Field(
        default=None, description="Path to the default endpoint manifest"
    )
    cache: CacheSettings = Field(default_factory=CacheSettings)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


class Manifest(BaseModel):
    """An endpoint manifest file (JSON or YAML).

    Example (YAML)::

        base_url: https://api.example.com
        endpoints:
          - id: users.get
            url: /users/:id
            cache: {backend: durable, ttl_ms: 60000}
    """

    base_url: Optional[str] = None
    default_headers: dict[str, str] = Field(default_factory=dict)
    default_timeout_ms: Optional[int] = Field(default=None, gt=0)
    endpoints: list[EndpointDescriptor] = Field(default_factory=list)
