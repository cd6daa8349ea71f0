"""Config commands -- view the global and effective configuration."""

from __future__ import annotations

import typer

from apiflow.commands.common import exit_on_error, load_settings
from apiflow.output import format_response, info

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the stored global config and the effective settings.

    The effective settings apply the full precedence chain: CLI flags,
    ``APIFLOW_*`` environment variables, the project manifest, and the
    global config.

    Example::

        apiflow config show
        apiflow --json config show
    """
    from apiflow.config import get_config_dir

    with exit_on_error():
        config, manifest = load_settings(ctx)

    info(f"Config directory: {get_config_dir()}")
    format_response(
        {
            "config": config.model_dump(mode="json"),
            "effective": {
                "base_url": manifest.base_url,
                "default_headers": manifest.default_headers,
                "default_timeout_ms": manifest.default_timeout_ms,
                "endpoints": len(manifest.endpoints),
            },
        }
    )
