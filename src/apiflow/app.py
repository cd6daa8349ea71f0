"""The ``apiflow`` command line.

``main`` is the console script.  The root callback turns the global flags
into an :class:`~apiflow.output.OutputManager` and leaves ``--manifest`` and
``--base-url`` in ``ctx.obj`` for the sub-commands to resolve config with.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from apiflow import __version__
from apiflow.commands.cache import cache_app
from apiflow.commands.call import call_command
from apiflow.commands.config import config_app
from apiflow.commands.endpoints import endpoints_app
from apiflow.exceptions import ApiflowError
from apiflow.exit_codes import EXIT_GENERIC_FAILURE
from apiflow.output import OutputFormat, OutputManager, configure_logging, error, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="apiflow",
    help="Call declared API endpoints through the apiflow pipeline.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("call")(call_command)
app.add_typer(endpoints_app, name="endpoints", help="Inspect declared endpoints.")
app.add_typer(cache_app, name="cache", help="Inspect or clear cached responses.")
app.add_typer(config_app, name="config", help="Show resolved configuration.")


def _print_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"apiflow {__version__}")
    raise typer.Exit()


def _pick_format(as_json: bool, as_plain: bool) -> OutputFormat:
    if as_json:
        return OutputFormat.JSON
    if as_plain:
        return OutputFormat.PLAIN
    return OutputFormat.AUTO


@app.callback()
def root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Print the version."
    ),
    manifest: Optional[str] = typer.Option(
        None, "--manifest", "-m", help="Path to an endpoint manifest (JSON or YAML)."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Base URL for relative endpoint URLs."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
    as_plain: bool = typer.Option(False, "--plain", help="Print results as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Turn off colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results and problems."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print debug messages and logs."),
) -> None:
    output = OutputManager(
        format=_pick_format(as_json, as_plain),
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(output)
    ctx.obj = {"manifest": manifest, "base_url": base_url, "verbose": verbose}


def _on_sigint(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _dump_traceback() -> Path:
    from apiflow.config import get_data_dir

    target = get_data_dir() / "logs" / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(traceback.format_exc(), encoding="utf-8")
    return target


def main() -> None:
    """Run the CLI.

    An :class:`ApiflowError` that escapes a command exits with its own code.
    Anything else is written to a crash log and exits with
    ``EXIT_GENERIC_FAILURE``.
    """
    signal.signal(signal.SIGINT, _on_sigint)
    try:
        app()
    except KeyboardInterrupt:
        _on_sigint(signal.SIGINT, None)
    except ApiflowError as exc:
        from apiflow.commands.common import report_error

        report_error(exc)
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_dump_traceback()}")
        sys.exit(EXIT_GENERIC_FAILURE)
