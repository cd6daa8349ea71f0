"""Response decoding helpers shared by the transport.

After an HTTP exchange completes, :func:`decode_body` turns the
:class:`httpx.Response` body into a Python value based on its content type,
and :func:`error_message` / :func:`field_errors` pull the human message and
per-field validation errors out of an error body.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


def decode_body(response: httpx.Response) -> Any:
    """Decode the body of *response* by content type.

    JSON content types are parsed (falling back to text if the body is not
    valid JSON), ``text/*`` is returned as ``str``, and anything else as
    ``bytes``.  Empty bodies decode to ``None``.
    """
    if not response.content:
        return None

    content_type = response.headers.get("content-type", "").lower()
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    if content_type.startswith("text/"):
        return response.text
    return response.content


def error_message(data: Any, fallback: str) -> str:
    """Extract a human-readable message from a decoded error body.

    Looks for ``message``, ``error``, or ``detail`` keys in a JSON object;
    otherwise uses *fallback* (normally the HTTP reason phrase).
    """
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


def field_errors(data: Any) -> Optional[dict[str, list[str]]]:
    """Return the ``errors`` mapping of a validation error body, if present."""
    if not isinstance(data, dict):
        return None
    errors = data.get("errors")
    if not isinstance(errors, dict):
        return None
    normalised: dict[str, list[str]] = {}
    for field, messages in errors.items():
        if isinstance(messages, (list, tuple)):
            normalised[str(field)] = [str(m) for m in messages]
        else:
            normalised[str(field)] = [str(messages)]
    return normalised
