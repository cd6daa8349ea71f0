"""Asynchronous transport -- the only component that touches the network.

:class:`Transport` sends a :class:`~apiflow.models.RequestDescription` with
:class:`httpx.AsyncClient` and classifies the outcome into exactly one of:

* a :class:`~apiflow.models.NormalizedResponse` (2xx, body decoded by
  content type),
* an ``http-error`` :class:`~apiflow.exceptions.ApiError` (non-2xx),
* a ``timeout`` error (the request deadline elapsed; status 408),
* a ``network`` error (the request never reached the server; status 0),
* an ``internal`` error for anything else (status 500).

Raw httpx exceptions never escape.  The transport does not retry; retries
are an interceptor concern (see
:func:`~apiflow.interceptors.builtin.retry_interceptor`).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from apiflow.client.response import decode_body, error_message, field_errors
from apiflow.exceptions import ApiError, ErrorKind
from apiflow.models import HTTPMethod, MultipartBody, NormalizedResponse, RequestDescription

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


class Transport:
    """Sends requests and normalizes every outcome.

    Args:
        client: An existing :class:`httpx.AsyncClient` to use.  When omitted
            one is created lazily and closed by :meth:`aclose`.
        transport: Optional httpx transport for the lazily created client
            (e.g. :class:`httpx.MockTransport` in tests).
        verify_ssl: Verify TLS certificates on the lazily created client.

    Example::

        async with Transport() as transport:
            response = await transport.send(request)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        verify_ssl: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._verify_ssl = verify_ssl

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Transport:
        self._get_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                verify=self._verify_ssl,
                follow_redirects=True,
            )
        return self._client

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #

    async def send(self, request: RequestDescription) -> NormalizedResponse:
        """Send *request* and return the decoded success response.

        The request's ``timeout_ms`` is a hard deadline for the whole
        exchange: the in-flight request is cancelled when it elapses.

        Raises:
            ApiError: For every failure, already normalized.
        """
        timeout_s = request.timeout_ms / 1000
        logger.debug("%s %s (timeout %sms)", request.method.value, request.url, request.timeout_ms)

        try:
            kwargs = self._build_kwargs(request)
            response = await asyncio.wait_for(
                self._get_client().request(**kwargs, timeout=timeout_s),
                timeout=timeout_s,
            )
            data = decode_body(response)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ApiError(
                ErrorKind.TIMEOUT,
                408,
                f"Request timed out after {request.timeout_ms}ms",
                status_text="Request Timeout",
                request=request,
            ) from exc
        except httpx.TransportError as exc:
            raise ApiError(
                ErrorKind.NETWORK,
                0,
                NETWORK_ERROR_MESSAGE,
                status_text="Network Error",
                request=request,
            ) from exc
        except Exception as exc:
            error = ApiError.internal(exc)
            error.request = request
            raise error from exc

        if not response.is_success:
            reason = response.reason_phrase or f"HTTP {response.status_code}"
            raise ApiError(
                ErrorKind.HTTP,
                response.status_code,
                error_message(data, reason),
                status_text=reason,
                errors=field_errors(data),
                data=data,
                request=request,
            )

        return NormalizedResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=data,
        )

    def _build_kwargs(self, request: RequestDescription) -> dict[str, Any]:
        """Translate a request description into :meth:`httpx.AsyncClient.request` arguments."""
        headers = dict(request.headers)
        kwargs: dict[str, Any] = {
            "method": request.method.value,
            "url": request.url,
            "headers": headers,
        }

        body = request.body
        if body is None or request.method is HTTPMethod.GET:
            return kwargs

        if isinstance(body, MultipartBody):
            # httpx must generate the multipart boundary itself
            _pop_header(headers, "content-type")
            kwargs["data"] = body.fields
            if body.files:
                kwargs["files"] = body.files
        elif isinstance(body, (bytes, bytearray)):
            if _get_header(headers, "content-type") == "application/json":
                _pop_header(headers, "content-type")
            kwargs["content"] = bytes(body)
        else:
            if _get_header(headers, "content-type") is None:
                headers["Content-Type"] = "application/json"
            kwargs["content"] = json.dumps(body, default=str)

        return kwargs


def _get_header(headers: dict[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _pop_header(headers: dict[str, str], name: str) -> None:
    for key in [k for k in headers if k.lower() == name]:
        del headers[key]
