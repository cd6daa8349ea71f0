"""OutputManager: format selection, stream separation, renderers, logging."""

from __future__ import annotations

import json
import logging

import pytest
from rich.logging import RichHandler

from apiflow import output as output_module
from apiflow.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    configure_logging,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("apiflow.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("apiflow.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    @pytest.mark.parametrize("method", ["info", "success", "warning", "error"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.info("loading...")
        mgr.format_response({"result": "ok"})
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"result": "ok"}
        assert "loading..." in captured.err


class TestQuietAndVerbose:
    @pytest.mark.parametrize("method", ["info", "success"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("hidden")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_keeps_problems(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("shown")
        assert "shown" in capfd.readouterr().err

    def test_debug_only_when_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("trace")
        err = capfd.readouterr().err
        assert "hidden" not in err
        assert "[debug] trace" in err


class TestFormatResponse:
    def test_json_nested(self, capfd, non_tty):
        data = {"users": [{"id": 1, "name": "Alice"}]}
        OutputManager(format=OutputFormat.JSON).format_response(data)
        assert json.loads(capfd.readouterr().out) == data

    def test_json_bytes_decoded(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response(b"raw text")
        assert capfd.readouterr().out.strip() == "raw text"

    def test_plain_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"name": "Alice", "age": 30})
        assert capfd.readouterr().out.splitlines() == ["name\tAlice", "age\t30"]

    def test_plain_list_of_dicts_as_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response([{"id": 1, "n": "a"}, {"id": 2, "n": "b"}])
        assert capfd.readouterr().out.splitlines() == ["1\ta", "2\tb"]

    def test_plain_none_prints_nothing(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(None)
        assert capfd.readouterr().out == ""

    def test_rich_bytes_summarised(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response(b"\x00\x01\x02")
        assert "<3 bytes>" in capfd.readouterr().out

    def test_rich_text_printed_verbatim(self, capfd, non_tty):
        body = "closing tag [/x] and [bold]not bold[/bold]"
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response(body)
        assert body in capfd.readouterr().out


class TestPrintTable:
    HEADERS = ["ID", "METHOD"]
    ROWS = [["users.get", "GET"], ["users.create", "POST"]]

    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(self.HEADERS, self.ROWS)
        assert json.loads(capfd.readouterr().out) == [
            {"ID": "users.get", "METHOD": "GET"},
            {"ID": "users.create", "METHOD": "POST"},
        ]

    def test_plain(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(self.HEADERS, self.ROWS)
        assert capfd.readouterr().out.splitlines() == ["ID\tMETHOD", "users.get\tGET", "users.create\tPOST"]

    def test_rich(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(self.HEADERS, self.ROWS, title="Endpoints")
        out = capfd.readouterr().out
        assert "Endpoints" in out
        assert "users.create" in out


class TestConfigureLogging:
    def test_level_follows_verbose(self, non_tty):
        configure_logging(OutputManager(verbose=True))
        assert logging.getLogger("apiflow").level == logging.DEBUG
        configure_logging(OutputManager())
        assert logging.getLogger("apiflow").level == logging.WARNING

    def test_single_rich_handler(self, non_tty):
        configure_logging(OutputManager())
        configure_logging(OutputManager())
        handlers = [h for h in logging.getLogger("apiflow").handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_convenience_functions(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        output_module.format_response({"ok": True})
        output_module.error("bad")
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"ok": True}
        assert "Error: bad" in captured.err
