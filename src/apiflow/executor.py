"""The request execution pipeline.

:class:`Executor` turns an :class:`~apiflow.models.EndpointDescriptor` and a
set of :class:`~apiflow.models.CallOptions` into one network call::

    cache lookup -> build request -> map body -> request interceptors
      -> global / endpoint before-hooks -> transport
      -> endpoint / global after-hooks -> response interceptors
      -> map payload -> cache write -> result

Any failure after the cache lookup is normalized into an
:class:`~apiflow.exceptions.ApiError` and offered to the error interceptors,
which may recover the call with a value.

The executor owns its :class:`~apiflow.cache.CacheStore`,
:class:`~apiflow.interceptors.InterceptorChain`,
:class:`~apiflow.endpoints.EndpointRegistry`, and
:class:`~apiflow.client.Transport`; nothing is shared between executors
unless passed in explicitly.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from apiflow.cache import CacheStore
from apiflow.client import Transport
from apiflow.endpoints import EndpointRegistry
from apiflow.exceptions import ApiError, InvalidUsageError
from apiflow.interceptors.chain import Interceptor, InterceptorChain, call_hook
from apiflow.models import (
    DEFAULT_TIMEOUT_MS,
    CallOptions,
    EndpointDescriptor,
    MultipartBody,
    RequestDescription,
)
from apiflow.urls import build_url

logger = logging.getLogger(__name__)

EndpointRef = Union[str, EndpointDescriptor]
OptionsArg = Union[CallOptions, Mapping[str, Any], None]


def build_request(
    endpoint: EndpointDescriptor,
    options: CallOptions,
    base_url: str,
    default_headers: Mapping[str, str],
    default_timeout_ms: int,
) -> RequestDescription:
    """Assemble the request for one call.

    Headers are merged with increasing precedence: executor defaults, then
    the endpoint's headers, then the call's headers.  The endpoint timeout
    falls back to *default_timeout_ms*.
    """
    headers = {**default_headers, **endpoint.headers, **(options.headers or {})}
    return RequestDescription(
        url=build_url(base_url, endpoint.url, options.path, options.query),
        method=endpoint.method,
        headers=headers,
        body=options.body,
        timeout_ms=endpoint.timeout_ms or default_timeout_ms,
    )


def build_cache_key(endpoint_id: str, options: CallOptions) -> str:
    """Derive the cache key for a call.

    The key is the endpoint id followed by the JSON of the path and query
    parameters (each only when non-empty), joined with ``:``.  Dictionary
    keys are sorted so equal parameters always give the same key.

    Example::

        >>> build_cache_key("users.get", CallOptions(path={"id": 1}))
        'users.get:{"id": 1}'
    """
    parts = [endpoint_id]
    if options.path:
        parts.append(json.dumps(options.path, sort_keys=True, default=str))
    if options.query:
        parts.append(json.dumps(options.query, sort_keys=True, default=str))
    return ":".join(parts)


def _coerce_options(options: OptionsArg) -> CallOptions:
    if options is None:
        return CallOptions()
    if isinstance(options, CallOptions):
        return options
    try:
        return CallOptions.model_validate(dict(options))
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid call options: {exc}") from exc


class Executor:
    """Runs endpoint calls through cache, interceptors, and transport.

    Args:
        base_url: Prefix for relative endpoint URLs.
        default_headers: Headers sent with every call.  Defaults to
            ``Content-Type: application/json``.
        default_timeout_ms: Timeout for endpoints that declare none.
        cache: Cache store to use.  One with default locations is created
            when omitted.
        transport: Transport to send requests with.
        registry: Registry that endpoint ids are resolved against.
        interceptors: Interceptors to register up front.

    Example::

        async with Executor("https://api.example.com") as executor:
            executor.register_endpoint(
                EndpointDescriptor(id="users.get", url="/users/:id", cache=CachePolicy())
            )
            user = await executor.execute("users.get", {"path": {"id": 7}})
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        default_headers: Optional[Mapping[str, str]] = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        cache: Optional[CacheStore] = None,
        transport: Optional[Transport] = None,
        registry: Optional[EndpointRegistry] = None,
        interceptors: Iterable[Interceptor] = (),
    ) -> None:
        self._base_url = base_url
        if default_headers is None:
            default_headers = {"Content-Type": "application/json"}
        self._default_headers: dict[str, str] = dict(default_headers)
        self._default_timeout_ms = default_timeout_ms
        self._owns_cache = cache is None
        self._cache = cache or CacheStore()
        self._owns_transport = transport is None
        self._transport = transport or Transport()
        self._registry = registry or EndpointRegistry()
        self._interceptors = InterceptorChain(interceptors)
        self._before_request: Optional[Callable[..., Any]] = None
        self._after_response: Optional[Callable[..., Any]] = None

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, url: str) -> None:
        self._base_url = url

    @property
    def default_headers(self) -> dict[str, str]:
        return dict(self._default_headers)

    @default_headers.setter
    def default_headers(self, headers: Mapping[str, str]) -> None:
        self._default_headers = dict(headers)

    def add_default_header(self, name: str, value: str) -> None:
        self._default_headers[name] = value

    def remove_default_header(self, name: str) -> None:
        self._default_headers.pop(name, None)

    @property
    def default_timeout_ms(self) -> int:
        return self._default_timeout_ms

    @default_timeout_ms.setter
    def default_timeout_ms(self, timeout_ms: int) -> None:
        if timeout_ms <= 0:
            raise InvalidUsageError("Default timeout must be positive")
        self._default_timeout_ms = timeout_ms

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def registry(self) -> EndpointRegistry:
        return self._registry

    def set_before_request(self, hook: Optional[Callable[..., Any]]) -> None:
        """Set the global before-request hook.

        Deprecated in favour of interceptors.  It runs after the request
        interceptors and before the endpoint's own ``before_request``.
        """
        self._before_request = hook

    def set_after_response(self, hook: Optional[Callable[..., Any]]) -> None:
        """Set the global after-response hook.

        Deprecated in favour of interceptors.  It runs after the endpoint's
        own ``after_response`` and before the response interceptors.
        """
        self._after_response = hook

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    def register_endpoint(self, endpoint: EndpointDescriptor, *, replace: bool = False) -> None:
        self._registry.register(endpoint, replace=replace)

    def register_endpoints(self, endpoints: Iterable[EndpointDescriptor], *, replace: bool = False) -> None:
        for endpoint in endpoints:
            self._registry.register(endpoint, replace=replace)

    def _resolve(self, endpoint: EndpointRef) -> EndpointDescriptor:
        if isinstance(endpoint, EndpointDescriptor):
            return endpoint
        return self._registry.get(endpoint)

    # ------------------------------------------------------------------ #
    # Interceptors
    # ------------------------------------------------------------------ #

    def add_interceptor(self, interceptor: Optional[Interceptor] = None, **hooks: Any) -> None:
        """Register an interceptor, given as an object or as keyword arguments.

        Example::

            executor.add_interceptor(name="auth", priority=10, request=add_token)
        """
        if interceptor is None:
            interceptor = Interceptor(**hooks)
        elif hooks:
            raise InvalidUsageError("Pass either an Interceptor or keyword arguments, not both")
        self._interceptors.register(interceptor)

    def remove_interceptor(self, name: str) -> bool:
        return self._interceptors.unregister(name)

    def get_interceptors(self) -> list[Interceptor]:
        return self._interceptors.list()

    def clear_interceptors(self) -> None:
        self._interceptors.clear()

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    async def execute(
        self,
        endpoint: EndpointRef,
        options: OptionsArg = None,
        context: Any = None,
    ) -> Any:
        """Call *endpoint* and return its (mapped) payload.

        Args:
            endpoint: An endpoint id registered with this executor, or a
                descriptor.
            options: Path, query, body, headers, and ``skip_cache`` for this
                call, as :class:`CallOptions` or a plain dict.
            context: Passed unchanged to every hook and interceptor.

        Returns:
            The payload, from the cache or from the network, or the value an
            error interceptor recovered the call with.

        Raises:
            EndpointNotFoundError: If an id is not registered.
            InvalidUsageError: If *options* is malformed.
            ApiError: If the call failed and no error interceptor recovered it.
        """
        descriptor = self._resolve(endpoint)
        opts = _coerce_options(options)
        chain = self._interceptors.snapshot()

        use_cache = descriptor.caches and not opts.skip_cache
        cache_key = build_cache_key(descriptor.id, opts) if use_cache else ""
        if use_cache:
            cached = self._cache.get(cache_key, descriptor.cache)
            if cached is not None:
                return cached

        request: Optional[RequestDescription] = None
        try:
            request = build_request(
                descriptor, opts, self._base_url, self._default_headers, self._default_timeout_ms
            )
            mapper = descriptor.mapper
            if mapper is not None and request.method.has_body:
                request.body = _map_outgoing(mapper, request.body)

            request = await chain.run_request(request, context)
            if self._before_request is not None:
                request = await call_hook(self._before_request, request, context)
            if descriptor.before_request is not None:
                request = await call_hook(descriptor.before_request, request, context)

            response = await self._transport.send(request)

            data = response.data
            if descriptor.after_response is not None:
                data = await call_hook(descriptor.after_response, response, context)
            if self._after_response is not None:
                data = await call_hook(
                    self._after_response, response.model_copy(update={"data": data}), context
                )
            data = await chain.run_response(response.model_copy(update={"data": data}), context)

            if mapper is not None:
                data = mapper.to_dto_list(data) if isinstance(data, list) else mapper.to_dto(data)
        except Exception as exc:
            error = exc if isinstance(exc, ApiError) else ApiError.internal(exc)
            if error.request is None:
                error.request = request
            logger.debug("Call to %s failed: %r", descriptor.id, error)

            recovered, value = await chain.run_error(error, context)
            if recovered:
                return value
            if error is exc:
                raise
            raise error from exc

        if use_cache:
            self._cache.set(cache_key, data, descriptor.cache)
        return data

    # ------------------------------------------------------------------ #
    # Cache & stats
    # ------------------------------------------------------------------ #

    def clear_cache(self, endpoint: Optional[EndpointRef] = None) -> int:
        """Drop cached results for one endpoint, or for everything.

        With an endpoint, every cached variant of it (all path/query
        combinations) is removed from its backend and the count returned.
        Without one, every backend is cleared and ``0`` is returned.
        """
        if endpoint is None:
            self._cache.clear_all()
            return 0
        descriptor = self._resolve(endpoint)
        if descriptor.cache is None:
            return 0
        return self._cache.remove_matching(descriptor.id, descriptor.cache)

    def get_stats(self) -> dict[str, Any]:
        return {
            "cache": self._cache.get_stats(),
            "interceptors": len(self._interceptors),
            "endpoints": len(self._registry),
        }

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def aclose(self) -> None:
        """Close the transport and cache this executor created itself."""
        if self._owns_transport:
            await self._transport.aclose()
        if self._owns_cache:
            self._cache.close()

    async def __aenter__(self) -> Executor:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


def _map_outgoing(mapper: Any, body: Any) -> Any:
    if body is None or isinstance(body, (bytes, bytearray, MultipartBody)):
        return body
    if isinstance(body, list):
        return mapper.to_entity_list(body)
    return mapper.to_entity(body)
