"""Call command -- execute one endpoint from the active manifest.

Example::

    apiflow call users.get --path id=7
    apiflow call users.list --query page=2 --query active=true
    apiflow call users.create --body '{"name": "Ada"}'
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import typer

from apiflow.commands.common import exit_on_error, load_settings, open_executor
from apiflow.exceptions import InvalidUsageError
from apiflow.models import CallOptions
from apiflow.output import debug, format_response


def _parse_pairs(values: Optional[list[str]], separator: str, flag: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition(separator)
        key = key.strip()
        if not sep or not key:
            raise InvalidUsageError(f"Expected {flag} KEY{separator}VALUE, got '{item}'")
        pairs[key] = value.strip() if separator == ":" else value
    return pairs


def _parse_body(body: Optional[str]) -> Any:
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body


def call_command(
    ctx: typer.Context,
    endpoint_id: str = typer.Argument(help="Endpoint id, e.g. 'users.get'."),
    path: Optional[list[str]] = typer.Option(None, "--path", "-p", help="Path parameter KEY=VALUE."),
    query: Optional[list[str]] = typer.Option(None, "--query", help="Query parameter KEY=VALUE."),
    header: Optional[list[str]] = typer.Option(None, "--header", "-H", help="Request header 'Name: value'."),
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Request body (JSON or raw text)."),
    skip_cache: bool = typer.Option(False, "--skip-cache", help="Bypass the response cache."),
) -> None:
    """Execute an endpoint and print its result."""
    with exit_on_error():
        options = CallOptions(
            path=_parse_pairs(path, "=", "--path") or None,
            query=_parse_pairs(query, "=", "--query") or None,
            headers=_parse_pairs(header, ":", "--header") or None,
            body=_parse_body(body),
            skip_cache=skip_cache,
        )
        config, manifest = load_settings(ctx)
        debug(f"Calling {endpoint_id} against {manifest.base_url or '<no base url>'}")

        async def _run() -> Any:
            async with open_executor(config, manifest) as executor:
                return await executor.execute(endpoint_id, options)

        data = asyncio.run(_run())

    format_response(data)
