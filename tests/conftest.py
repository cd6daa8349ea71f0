"""Fixtures shared across the apiflow test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import httpx
import pytest

from apiflow.cache import CacheStore
from apiflow.client import Transport
from apiflow.output import reset_output

_ENV_VARS = ("APIFLOW_MANIFEST", "APIFLOW_BASE_URL", "APIFLOW_TIMEOUT_MS")


@pytest.fixture(autouse=True)
def _fresh_output_and_logging() -> None:
    # A CliRunner invocation leaves consoles and a RichHandler bound to its
    # captured streams; drop them before the next test.
    yield
    reset_output()
    logger = logging.getLogger("apiflow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> CacheStore:
    s = CacheStore(tmp_path, clock=clock)
    yield s
    s.close()


def mock_transport(handler: Callable[[httpx.Request], object]) -> Transport:
    """A Transport whose requests are answered in-process by *handler*."""
    return Transport(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_transport() -> Callable[[Callable[[httpx.Request], object]], Transport]:
    return mock_transport


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every apiflow directory at tmp_path and run from there.

    Config, cache, and data live in ``config/``, ``cache/`` and ``data/``
    under tmp_path; ``APIFLOW_*`` variables from the real environment are
    removed.
    """
    for kind in ("config", "cache", "data"):
        monkeypatch.setenv(f"XDG_{kind.upper()}_HOME", str(tmp_path / kind))
    monkeypatch.setattr("apiflow.config._is_xdg_platform", lambda: True)
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
