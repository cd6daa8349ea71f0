"""Shared plumbing for the CLI commands: settings, executor wiring, error reporting."""

from __future__ import annotations

import contextlib
from typing import AsyncIterator, Iterator

import typer

from apiflow.cache import CacheStore
from apiflow.client import Transport
from apiflow.exceptions import ApiError, ApiflowError
from apiflow.executor import Executor
from apiflow.models import GlobalConfig, Manifest
from apiflow.output import error, get_output


def load_settings(ctx: typer.Context) -> tuple[GlobalConfig, Manifest]:
    """Resolve config using the global ``--manifest`` / ``--base-url`` flags."""
    from apiflow.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(cli_manifest=obj.get("manifest"), cli_base_url=obj.get("base_url"))


def make_transport() -> Transport:
    return Transport()


def make_cache(config: GlobalConfig) -> CacheStore:
    return CacheStore(cache_dir=config.cache.directory)


@contextlib.asynccontextmanager
async def open_executor(config: GlobalConfig, manifest: Manifest) -> AsyncIterator[Executor]:
    """Build an executor from resolved settings, with plugins installed.

    Transport, cache, and plugins are released on exit.
    """
    from apiflow.plugins import PluginManager

    transport = make_transport()
    cache = make_cache(config)
    default_headers = {"Content-Type": "application/json", **manifest.default_headers}
    executor = Executor(
        manifest.base_url or "",
        default_headers=default_headers,
        default_timeout_ms=manifest.default_timeout_ms,
        cache=cache,
        transport=transport,
    )
    executor.register_endpoints(manifest.endpoints)

    plugins = PluginManager()
    try:
        plugins.discover(config)
        plugins.install(executor)
        yield executor
    finally:
        plugins.cleanup()
        await transport.aclose()
        cache.close()


def report_error(exc: ApiflowError) -> None:
    """Print *exc* to stderr, including per-field messages of an :class:`ApiError`."""
    error(str(exc))
    if isinstance(exc, ApiError) and exc.errors:
        output = get_output()
        for field, messages in exc.errors.items():
            for message in messages:
                output.info(f"  {field}: {message}")


@contextlib.contextmanager
def exit_on_error() -> Iterator[None]:
    """Turn :class:`ApiflowError` into an error message and its exit code."""
    try:
        yield
    except ApiflowError as exc:
        report_error(exc)
        raise typer.Exit(code=exc.exit_code) from None
