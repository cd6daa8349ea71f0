"""Terminal output for the CLI: call results on stdout, diagnostics on stderr.

Call results, tables, and JSON go to **stdout** so they can be piped; status
lines, warnings, errors, and log records go to **stderr**.  Rich styling is
used only when stdout is a terminal and colour has not been turned off with
``--no-color``, ``NO_COLOR``, or ``TERM=dumb``.

:class:`OutputManager` holds the per-invocation preferences.  The root
command installs one with :func:`set_output`; commands then use the
module-level helpers (:func:`info`, :func:`format_response`, ...) which
delegate to it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How call results and tables are rendered.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    style: str
    quiet_hides: bool


_LEVELS = {
    "info": _Level("", "", True),
    "success": _Level("", "green", True),
    "warning": _Level("Warning: ", "yellow", False),
    "error": _Level("Error: ", "red", False),
    "debug": _Level("[debug] ", "dim", False),
}


class OutputManager:
    """Per-invocation output preferences and consoles.

    Args:
        format: Result format; ``AUTO`` is resolved from the terminal.
        no_color: Disable colour and Rich markup.
        quiet: Hide ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = _resolve_format(format, self._no_color)

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a call result to stdout.

        JSON mode dumps the payload (bytes are decoded as UTF-8).  Plain mode
        writes one ``key<TAB>value`` line per dict entry and one line per list
        item.  Rich mode pretty-prints containers and summarises binary
        payloads by size.  ``None`` produces no output outside JSON mode.
        """
        if self._format == OutputFormat.JSON:
            if isinstance(data, bytes):
                self._write(data.decode("utf-8", errors="replace"))
            else:
                self._write(_to_json(data))
            return

        if data is None:
            return

        if self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self._write(line)
        elif isinstance(data, (dict, list)):
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        elif isinstance(data, bytes):
            self._stdout.print(f"<{len(data)} bytes>", markup=False, highlight=False)
        else:
            # Server text is never Rich markup.
            self._stdout.print(str(data), markup=False, highlight=False)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout as a Rich table, JSON records, or TSV lines."""
        if self._format == OutputFormat.JSON:
            self._write(_to_json([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self._write("\t".join(row))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*(Text(cell) for cell in row))
            self._stdout.print(table)

    def _write(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._notify("info", message)

    def success(self, message: str) -> None:
        self._notify("success", message)

    def warning(self, message: str) -> None:
        self._notify("warning", message)

    def error(self, message: str) -> None:
        self._notify("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._notify("debug", message)

    def _notify(self, level: str, message: str) -> None:
        lvl = _LEVELS[level]
        if lvl.quiet_hides and self._quiet:
            return
        if self._no_color:
            print(f"{lvl.prefix}{message}", file=sys.stderr, flush=True)
            return
        line = Text()
        if lvl.prefix:
            line.append(lvl.prefix, style=f"bold {lvl.style}")
            line.append(message)
        else:
            line.append(message, style=lvl.style)
        self._stderr.print(line, highlight=False)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    if isinstance(data, bytes):
        return [data.decode("utf-8", errors="replace")]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def configure_logging(output: OutputManager) -> None:
    """Send ``apiflow.*`` log records to stderr through a single RichHandler.

    The level is WARNING, or DEBUG with ``--verbose``.  Calling this again
    replaces the previous handler.
    """
    logger = logging.getLogger("apiflow")
    for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(handler)
    handler = RichHandler(console=output.stderr_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
