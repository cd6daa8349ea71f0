"""Endpoint commands -- inspect the endpoints declared by the active manifest."""

from __future__ import annotations

import typer

from apiflow.commands.common import exit_on_error, load_settings
from apiflow.endpoints import EndpointRegistry
from apiflow.output import info, print_table

endpoints_app = typer.Typer(no_args_is_help=True)


@endpoints_app.command("list")
def endpoints_list(ctx: typer.Context) -> None:
    """List the endpoints of the active manifest.

    Example::

        apiflow endpoints list
        apiflow --json endpoints list
    """
    with exit_on_error():
        _, manifest = load_settings(ctx)
        registry = EndpointRegistry()
        for endpoint in manifest.endpoints:
            registry.register(endpoint)

    if not len(registry):
        info("No endpoints configured. Pass --manifest or create ./apiflow.yaml.")
        return

    rows = []
    for endpoint in registry.list():
        cache = "-"
        if endpoint.caches:
            cache = f"{endpoint.cache.backend.value} {endpoint.cache.ttl_ms}ms"
        rows.append([endpoint.id, endpoint.method.value, endpoint.url, cache])
    print_table(["ID", "METHOD", "URL", "CACHE"], rows, title="Endpoints")
