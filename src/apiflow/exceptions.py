"""Errors raised by apiflow.

Every error is an :class:`ApiflowError` and knows the process exit code the
CLI should end with.  :class:`ApiError` is the one failure type endpoint
calls produce: transport problems, bad payloads, and interceptor crashes are
all folded into it before the error interceptors run, so callers switch on
:attr:`ApiError.kind` rather than on exception classes.

``ConfigError`` and ``InterceptorError`` exit with 1, ``InvalidUsageError``
with 2, ``EndpointNotFoundError`` with 4 and ``PluginError`` with 10.  The
exit code of an ``ApiError`` depends on its kind and status.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any, Optional

from apiflow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PLUGIN_ERROR,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    from apiflow.models import RequestDescription


class ApiflowError(Exception):
    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApiflowError):
    """A malformed ``--path``/``--query``/``--header``/``--body`` value."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ApiflowError):
    """Unreadable config, an invalid manifest, or an unresolvable credential."""


class EndpointNotFoundError(ApiflowError):
    exit_code = EXIT_NOT_FOUND


class InterceptorError(ApiflowError):
    """Two interceptors registered under one name."""


class PluginError(ApiflowError):
    exit_code = EXIT_PLUGIN_ERROR


class ErrorKind(str, enum.Enum):
    """The four shapes a normalized failure can take."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http-error"
    INTERNAL = "internal"


class ApiError(ApiflowError):
    """Normalized failure of a single endpoint call.

    Attributes:
        kind: Which of the four failure classes this is.
        status: HTTP status (``408`` for timeouts, ``0`` for connectivity
            failures, ``500`` for internal errors).
        status_text: Short reason phrase.
        message: Human-readable message, taken from the response body when
            the server supplied one.
        errors: Optional per-field validation messages from the server.
        data: Decoded response body, if any.
        request: The request that failed, once it has been built.
    """

    def __init__(
        self,
        kind: ErrorKind,
        status: int,
        message: str,
        status_text: str = "",
        errors: Optional[dict[str, list[str]]] = None,
        data: Any = None,
        request: Optional[RequestDescription] = None,
    ) -> None:
        super().__init__(message, exit_code=_exit_code_for(kind, status))
        self.kind = kind
        self.status = status
        self.status_text = status_text
        self.message = message
        self.errors = errors
        self.data = data
        self.request = request

    @classmethod
    def internal(cls, exc: BaseException) -> ApiError:
        """Wrap an unclassified exception into an ``internal`` error."""
        return cls(
            ErrorKind.INTERNAL,
            500,
            str(exc) or "An unexpected error occurred",
            status_text="Internal Error",
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the error for output."""
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "status": self.status,
            "status_text": self.status_text,
            "message": self.message,
        }
        if self.errors:
            result["errors"] = self.errors
        return result

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.value!r}, status={self.status}, message={self.message!r})"


def _exit_code_for(kind: ErrorKind, status: int) -> int:
    if kind is ErrorKind.HTTP:
        if status in (401, 403):
            return EXIT_AUTH_FAILURE
        if status == 404:
            return EXIT_NOT_FOUND
        return EXIT_SERVER_ERROR
    if kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK):
        return EXIT_CONNECTION_ERROR
    return EXIT_GENERIC_FAILURE
