"""HTTP transport for apiflow.

Provides :class:`Transport`, a thin wrapper around :class:`httpx.AsyncClient`
that enforces per-request deadlines and normalizes every outcome into a
:class:`~apiflow.models.NormalizedResponse` or an
:class:`~apiflow.exceptions.ApiError`.

Example::

    from apiflow.client import Transport

    async with Transport() as transport:
        response = await transport.send(request)
"""

from apiflow.client.response import decode_body, error_message, field_errors
from apiflow.client.transport import Transport

__all__ = ["Transport", "decode_body", "error_message", "field_errors"]
