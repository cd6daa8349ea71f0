"""Tests for apiflow.config -- XDG paths, atomic writes, manifests, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from apiflow.config import (
    _atomic_write,
    find_project_manifest,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_global_config,
    load_manifest,
    resolve_config,
    resolve_credential,
    save_global_config,
)
from apiflow.exceptions import ConfigError
from apiflow.models import CacheBackend, GlobalConfig, HTTPMethod


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


YAML_MANIFEST = """\
base_url: https://manifest.test
default_headers:
  X-Source: manifest
endpoints:
  - id: users.get
    url: /users/:id
    cache:
      backend: durable
      ttl_ms: 5000
  - id: users.create
    url: /users
    method: post
"""


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPaths:
    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apiflow.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "apiflow"
        assert result.is_dir()

    def test_dirs_follow_env(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "apiflow"
        assert get_cache_dir() == isolated_config / "cache" / "apiflow"
        assert get_data_dir() == isolated_config / "data" / "apiflow"

    def test_fallback_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apiflow.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".apiflow"
        assert get_cache_dir() == tmp_path / ".apiflow" / "cache"
        assert get_data_dir() == tmp_path / ".apiflow" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes and global config
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}'

    def test_failure_leaves_original_and_no_temp(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("original", encoding="utf-8")
        with patch("apiflow.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                _atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        assert load_global_config() == GlobalConfig()

    def test_save_and_load(self, isolated_config: Path) -> None:
        config = GlobalConfig(base_url="https://api.test", default_headers={"X-App": "1"})
        save_global_config(config)
        assert load_global_config() == config

    def test_invalid_json(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_invalid_values(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"default_timeout_ms": -5})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Manifests
# ---------------------------------------------------------------------------


class TestLoadManifest:
    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "api.yaml"
        path.write_text(YAML_MANIFEST, encoding="utf-8")
        manifest = load_manifest(path)
        assert manifest.base_url == "https://manifest.test"
        assert manifest.endpoints[0].cache.backend is CacheBackend.DURABLE
        assert manifest.endpoints[1].method is HTTPMethod.POST

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "api.json"
        _write_json(path, {"endpoints": [{"id": "health", "url": "/health"}]})
        assert [e.id for e in load_manifest(path).endpoints] == ["health"]

    def test_unknown_extension_detects_format(self, tmp_path: Path) -> None:
        path = tmp_path / "manifest.txt"
        path.write_text(YAML_MANIFEST, encoding="utf-8")
        assert len(load_manifest(path).endpoints) == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Manifest not found"):
            load_manifest(tmp_path / "nope.yaml")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "api.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_manifest(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "api.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="must be an object"):
            load_manifest(path)

    def test_invalid_endpoint(self, tmp_path: Path) -> None:
        path = tmp_path / "api.json"
        _write_json(path, {"endpoints": [{"id": "x", "url": "/x", "method": "FETCH"}]})
        with pytest.raises(ConfigError, match="Invalid manifest"):
            load_manifest(path)

    def test_duplicate_ids(self, tmp_path: Path) -> None:
        path = tmp_path / "api.json"
        _write_json(path, {"endpoints": [{"id": "x", "url": "/a"}, {"id": "x", "url": "/b"}]})
        with pytest.raises(ConfigError, match="Duplicate endpoint id 'x'"):
            load_manifest(path)

    def test_find_project_manifest(self, isolated_config: Path) -> None:
        assert find_project_manifest() is None
        (isolated_config / "apiflow.yml").write_text(YAML_MANIFEST, encoding="utf-8")
        assert find_project_manifest() == isolated_config / "apiflow.yml"


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        global_cfg, manifest = resolve_config()
        assert global_cfg == GlobalConfig()
        assert manifest.base_url is None
        assert manifest.default_timeout_ms == 30000
        assert manifest.endpoints == []

    def test_project_manifest_over_global(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(base_url="https://global.test", default_headers={"X-Source": "global", "X-G": "1"}))
        (isolated_config / "apiflow.yaml").write_text(YAML_MANIFEST, encoding="utf-8")
        _, manifest = resolve_config()
        assert manifest.base_url == "https://manifest.test"
        assert manifest.default_headers == {"X-Source": "manifest", "X-G": "1"}
        assert len(manifest.endpoints) == 2

    def test_global_fills_gaps(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(base_url="https://global.test", default_timeout_ms=999))
        _, manifest = resolve_config()
        assert manifest.base_url == "https://global.test"
        assert manifest.default_timeout_ms == 999

    def test_env_over_manifest(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (isolated_config / "apiflow.yaml").write_text(YAML_MANIFEST, encoding="utf-8")
        other = isolated_config / "other.json"
        _write_json(other, {"endpoints": [{"id": "only", "url": "/only"}]})
        monkeypatch.setenv("APIFLOW_MANIFEST", str(other))
        monkeypatch.setenv("APIFLOW_BASE_URL", "https://env.test")
        monkeypatch.setenv("APIFLOW_TIMEOUT_MS", "1500")
        _, manifest = resolve_config()
        assert [e.id for e in manifest.endpoints] == ["only"]
        assert manifest.base_url == "https://env.test"
        assert manifest.default_timeout_ms == 1500

    def test_cli_over_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        cli_manifest = isolated_config / "cli.yaml"
        cli_manifest.write_text(YAML_MANIFEST, encoding="utf-8")
        monkeypatch.setenv("APIFLOW_BASE_URL", "https://env.test")
        _, manifest = resolve_config(cli_manifest=str(cli_manifest), cli_base_url="https://cli.test")
        assert manifest.base_url == "https://cli.test"
        assert len(manifest.endpoints) == 2

    @pytest.mark.parametrize("value", ["soon", "0"])
    def test_bad_env_timeout(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("APIFLOW_TIMEOUT_MS", value)
        with pytest.raises(ConfigError, match="APIFLOW_TIMEOUT_MS"):
            resolve_config()

    def test_missing_cli_manifest(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            resolve_config(cli_manifest="missing.yaml")


# ---------------------------------------------------------------------------
# Credential resolution
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APIFLOW_SECRET", "s3cret")
        assert resolve_credential("env:APIFLOW_SECRET") == "s3cret"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APIFLOW_SECRET", raising=False)
        with pytest.raises(ConfigError, match="APIFLOW_SECRET"):
            resolve_credential("env:APIFLOW_SECRET")

    def test_file_stripped(self, tmp_path: Path) -> None:
        secret = tmp_path / "token"
        secret.write_text("  abc\n", encoding="utf-8")
        assert resolve_credential(f"file:{secret}") == "abc"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_unknown_scheme(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source format"):
            resolve_credential("vault:secret/x")
