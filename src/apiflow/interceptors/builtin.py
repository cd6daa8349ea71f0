"""Ready-made interceptors for common cross-cutting concerns.

Each factory returns an :class:`~apiflow.interceptors.chain.Interceptor`
with a fixed default name and priority, which can be overridden:

* ``logging`` (1): log requests, responses and errors.
* ``correlation`` (5): add a fresh ``X-Correlation-ID``.
* ``auth`` (10): add ``Authorization: Bearer <token>``.
* ``tenant`` (15): add ``X-Tenant-ID``.
* ``error-transform`` (50): rewrite errors before they propagate.
* ``unauthorized`` (100): react to 401 / 403.
* ``retry`` (200): re-send requests that failed transiently.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from apiflow.exceptions import ApiError
from apiflow.interceptors.chain import Interceptor
from apiflow.models import NormalizedResponse, RequestDescription

if TYPE_CHECKING:
    from apiflow.client import Transport

logger = logging.getLogger(__name__)

DEFAULT_RETRY_STATUSES = (408, 429, 500, 502, 503, 504)


def auth_interceptor(
    get_token: Optional[Callable[[Any], Optional[str]]] = None,
    *,
    source: Optional[str] = None,
    header_name: str = "Authorization",
    token_prefix: str = "Bearer",
    name: str = "auth",
    priority: int = 10,
) -> Interceptor:
    """Add an authorization header to every request.

    The token comes from *get_token* (called with the call context), or from
    a credential *source* such as ``"env:API_TOKEN"`` resolved once on first
    use, or by default from ``ctx.auth_token``.  No header is added when the
    token is empty.

    Args:
        get_token: ``ctx -> token`` callable.
        source: Credential source understood by
            :func:`~apiflow.config.resolve_credential`.
        header_name: Header to set.
        token_prefix: Scheme placed before the token; empty for none.
    """
    resolved: dict[str, str] = {}

    def _token(ctx: Any) -> Optional[str]:
        if get_token is not None:
            return get_token(ctx)
        if source is not None:
            if "token" not in resolved:
                from apiflow.config import resolve_credential

                resolved["token"] = resolve_credential(source)
            return resolved["token"]
        return getattr(ctx, "auth_token", None)

    def on_request(request: RequestDescription, ctx: Any) -> RequestDescription:
        token = _token(ctx)
        if token:
            request.headers[header_name] = f"{token_prefix} {token}" if token_prefix else token
        return request

    return Interceptor(name=name, priority=priority, request=on_request)


def logging_interceptor(
    *,
    log_body: bool = False,
    log_response: bool = False,
    log: Optional[logging.Logger] = None,
    name: str = "logging",
    priority: int = 1,
) -> Interceptor:
    """Log every request, response, and error.

    Bodies and response payloads are left out unless asked for, since they
    may contain credentials or personal data.
    """
    log = log or logger

    def on_request(request: RequestDescription, ctx: Any) -> RequestDescription:
        if log_body and request.body is not None:
            log.info("API request %s %s body=%r", request.method.value, request.url, request.body)
        else:
            log.info("API request %s %s", request.method.value, request.url)
        return request

    def on_response(response: NormalizedResponse, ctx: Any) -> Any:
        if log_response:
            log.info("API response %s %s data=%r", response.status, response.status_text, response.data)
        else:
            log.info("API response %s %s", response.status, response.status_text)
        return response.data

    def on_error(error: ApiError, ctx: Any) -> None:
        log.error("API error %s (%s): %s", error.status, error.kind.value, error.message)
        return None

    return Interceptor(
        name=name,
        priority=priority,
        request=on_request,
        response=on_response,
        error=on_error,
    )


def correlation_interceptor(
    *,
    header_name: str = "X-Correlation-ID",
    generate_id: Optional[Callable[[], str]] = None,
    name: str = "correlation",
    priority: int = 5,
) -> Interceptor:
    """Tag every request with a fresh correlation id for tracing."""
    make_id = generate_id or (lambda: str(uuid.uuid4()))

    def on_request(request: RequestDescription, ctx: Any) -> RequestDescription:
        request.headers[header_name] = make_id()
        return request

    return Interceptor(name=name, priority=priority, request=on_request)


def tenant_interceptor(
    get_tenant_id: Optional[Callable[[Any], Optional[str]]] = None,
    *,
    header_name: str = "X-Tenant-ID",
    name: str = "tenant",
    priority: int = 15,
) -> Interceptor:
    """Add the caller's tenant id (default ``ctx.tenant_id``) to every request."""

    def on_request(request: RequestDescription, ctx: Any) -> RequestDescription:
        tenant_id = get_tenant_id(ctx) if get_tenant_id else getattr(ctx, "tenant_id", None)
        if tenant_id:
            request.headers[header_name] = tenant_id
        return request

    return Interceptor(name=name, priority=priority, request=on_request)


def error_transform_interceptor(
    transform: Callable[[ApiError, Any], ApiError],
    *,
    name: str = "error-transform",
    priority: int = 50,
) -> Interceptor:
    """Replace errors with ``transform(error, ctx)`` and re-raise.

    Because the transformed error is raised, error interceptors with a
    higher priority number never see the failure.

    Example::

        error_transform_interceptor(
            lambda err, ctx: ApiError(err.kind, err.status, translate(err.message))
        )
    """

    def on_error(error: ApiError, ctx: Any) -> None:
        transformed = transform(error, ctx)
        if transformed.request is None:
            transformed.request = error.request
        raise transformed

    return Interceptor(name=name, priority=priority, error=on_error)


def unauthorized_interceptor(
    *,
    login_path: str = "/login",
    forbidden_path: str = "/forbidden",
    on_unauthorized: Optional[Callable[[ApiError, Any], Any]] = None,
    on_forbidden: Optional[Callable[[ApiError, Any], Any]] = None,
    name: str = "unauthorized",
    priority: int = 100,
) -> Interceptor:
    """React to 401 and 403 responses without recovering them.

    Calls the matching callback, or else ``ctx.navigate(path)`` when the
    context provides a navigator.  The error always keeps propagating.
    """

    def _redirect(ctx: Any, path: str) -> None:
        navigate = getattr(ctx, "navigate", None)
        if navigate is not None:
            navigate(path)

    def on_error(error: ApiError, ctx: Any) -> None:
        if error.status == 401:
            if on_unauthorized is not None:
                on_unauthorized(error, ctx)
            else:
                _redirect(ctx, login_path)
        elif error.status == 403:
            if on_forbidden is not None:
                on_forbidden(error, ctx)
            else:
                _redirect(ctx, forbidden_path)
        return None

    return Interceptor(name=name, priority=priority, error=on_error)


def retry_interceptor(
    transport: Transport,
    *,
    max_retries: int = 3,
    retry_statuses: Iterable[int] = DEFAULT_RETRY_STATUSES,
    retry_delay_ms: int = 1000,
    name: str = "retry",
    priority: int = 200,
) -> Interceptor:
    """Re-send requests that failed with a retryable status.

    The failed request (``error.request``) is sent again through *transport*
    with exponential backoff: ``retry_delay_ms``, then twice that, and so
    on.  The first successful payload recovers the call; it is returned as
    decoded from the wire, without endpoint mapping.  Gives up (letting the
    original error propagate) when the retries are exhausted, when a retry
    fails with a non-retryable status, or when the successful payload is
    empty.
    """
    statuses = frozenset(retry_statuses)

    async def on_error(error: ApiError, ctx: Any) -> Any:
        if error.status not in statuses or error.request is None:
            return None

        request = error.request
        for attempt in range(max_retries):
            delay = retry_delay_ms * (2 ** attempt) / 1000
            logger.debug(
                "Status %s for %s, retrying in %ss (attempt %d/%d)",
                error.status, request.url, delay, attempt + 1, max_retries,
            )
            await asyncio.sleep(delay)
            try:
                response = await transport.send(request)
            except ApiError as exc:
                if exc.status not in statuses:
                    break
                continue
            return response.data

        logger.warning("Giving up on %s %s after retries", request.method.value, request.url)
        return None

    return Interceptor(name=name, priority=priority, error=on_error)
