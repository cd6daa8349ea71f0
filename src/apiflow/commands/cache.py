"""Cache commands -- inspect and clear the response cache.

Only the durable backend outlives a single CLI invocation, so ``stats``
mostly reports durable entries.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from apiflow.commands.common import exit_on_error, load_settings, make_cache, open_executor
from apiflow.models import CacheBackend
from apiflow.output import print_table, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show the number of cached entries per backend."""
    with exit_on_error():
        config, _ = load_settings(ctx)
        with make_cache(config) as cache:
            stats = cache.get_stats()

    print_table(
        ["BACKEND", "ENTRIES"],
        [[name, str(count)] for name, count in stats.items()],
        title="Cache",
    )


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    backend: Optional[CacheBackend] = typer.Option(
        None, "--backend", help="Only clear this backend."
    ),
) -> None:
    """Clear cached responses (all backends by default)."""
    with exit_on_error():
        config, _ = load_settings(ctx)
        with make_cache(config) as cache:
            if backend is None:
                cache.clear_all()
            else:
                cache.clear(backend)

    success(f"Cleared {backend.value if backend else 'all'} cache.")


@cache_app.command("clear-endpoint")
def cache_clear_endpoint(
    ctx: typer.Context,
    endpoint_id: str = typer.Argument(help="Endpoint id whose cached results to drop."),
) -> None:
    """Clear every cached result of one endpoint."""
    with exit_on_error():
        config, manifest = load_settings(ctx)

        async def _run() -> int:
            async with open_executor(config, manifest) as executor:
                return executor.clear_cache(endpoint_id)

        removed = asyncio.run(_run())

    success(f"Removed {removed} cached entr{'y' if removed == 1 else 'ies'} for {endpoint_id}.")
