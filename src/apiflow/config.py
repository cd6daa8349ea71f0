"""Where apiflow keeps its files, and how the effective settings are assembled.

Directories follow XDG on Linux and the BSDs and live under ``~/.apiflow``
elsewhere.  Settings come from four layers, highest first: command-line
flags, ``APIFLOW_*`` environment variables, the endpoint manifest, and the
global ``config.json``.  Secrets referenced as ``env:NAME`` or ``file:PATH``
are read by :func:`resolve_credential`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from apiflow.exceptions import ConfigError
from apiflow.models import GlobalConfig, Manifest

_APP_NAME = "apiflow"
_CONFIG_FILENAME = "config.json"
_PROJECT_MANIFEST_FILENAMES = ("apiflow.yaml", "apiflow.yml", "apiflow.json")

ENV_MANIFEST = "APIFLOW_MANIFEST"
ENV_BASE_URL = "APIFLOW_BASE_URL"
ENV_TIMEOUT_MS = "APIFLOW_TIMEOUT_MS"

# kind -> (XDG variable, default under $HOME, subdirectory of ~/.apiflow)
_DIRS = {
    "config": ("XDG_CONFIG_HOME", (".config",), ""),
    "cache": ("XDG_CACHE_HOME", (".cache",), "cache"),
    "data": ("XDG_DATA_HOME", (".local", "share"), "logs"),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, legacy_sub = _DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or Path.home().joinpath(*home_default)
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / legacy_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/apiflow``, or ``~/.apiflow``; created on demand."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Default home of the durable response cache.

    ``$XDG_CACHE_HOME/apiflow`` or ``~/.apiflow/cache``.  Overridden by
    ``cache.directory`` in the global config.
    """
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Crash logs go here: ``$XDG_DATA_HOME/apiflow`` or ``~/.apiflow/logs``."""
    return _app_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; a missing file means all defaults."""
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    text = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(_global_config_path(), text)


def _format_hint(path: Path) -> str:
    return {".json": "json", ".yaml": "yaml", ".yml": "yaml"}.get(path.suffix.lower(), "")


def _require_mapping(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        kind = "empty document" if value is None else type(value).__name__
        raise ConfigError(f"Manifest must be an object (got {kind})")
    return value


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Decode manifest text.

    ``.json`` files must be JSON.  Anything else is tried as JSON first and
    then as YAML.
    """
    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ConfigError(f"Invalid JSON: {exc}") from exc
    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse manifest as JSON or YAML: {exc}") from exc


def load_manifest(path: Path | str) -> Manifest:
    """Load and validate an endpoint manifest.

    Raises:
        ConfigError: The file is missing or unreadable, does not parse, fails
            validation, or declares the same endpoint id twice.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Manifest not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read manifest {path}: {exc}") from exc

    try:
        manifest = Manifest.model_validate(_parse_content(content, _format_hint(path)))
    except ValidationError as exc:
        raise ConfigError(f"Invalid manifest at {path}: {exc}") from exc

    ids = [endpoint.id for endpoint in manifest.endpoints]
    for index, endpoint_id in enumerate(ids):
        if endpoint_id in ids[:index]:
            raise ConfigError(f"Duplicate endpoint id '{endpoint_id}' in {path}")
    return manifest


def find_project_manifest() -> Optional[Path]:
    """The first of ``apiflow.yaml``, ``apiflow.yml``, ``apiflow.json`` in the cwd."""
    cwd = Path.cwd()
    return next(
        (cwd / name for name in _PROJECT_MANIFEST_FILENAMES if (cwd / name).is_file()),
        None,
    )


def _first(*candidates: Any) -> Any:
    return next((c for c in candidates if c), None)


def _timeout_from_env() -> Optional[int]:
    raw = os.environ.get(ENV_TIMEOUT_MS)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_TIMEOUT_MS} must be an integer, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{ENV_TIMEOUT_MS} must be positive, got {value}")
    return value


def resolve_config(
    cli_manifest: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> tuple[GlobalConfig, Manifest]:
    """Assemble the settings a command runs with.

    The manifest is taken from ``--manifest``, then ``APIFLOW_MANIFEST``,
    then ``./apiflow.yaml`` and friends, then ``manifest`` in the global
    config.  ``base_url`` and ``default_timeout_ms`` are layered the same
    way (flag, environment, manifest, global config); default headers are
    the global ones overlaid with the manifest's.

    Returns ``(global_config, manifest)`` where the manifest carries the
    effective defaults.  It has no endpoints when no manifest was found.
    """
    global_cfg = load_global_config()

    manifest_path = _first(
        cli_manifest,
        os.environ.get(ENV_MANIFEST),
        find_project_manifest(),
        global_cfg.manifest,
    )
    manifest = load_manifest(manifest_path) if manifest_path else Manifest()

    base_url = cli_base_url if cli_base_url is not None else _first(
        os.environ.get(ENV_BASE_URL), manifest.base_url, global_cfg.base_url
    )
    timeout_ms = _first(
        _timeout_from_env(), manifest.default_timeout_ms, global_cfg.default_timeout_ms
    )

    effective = manifest.model_copy(
        update={
            "base_url": base_url,
            "default_headers": {**global_cfg.default_headers, **manifest.default_headers},
            "default_timeout_ms": timeout_ms,
        }
    )
    return global_cfg, effective


def resolve_credential(source: str) -> str:
    """Read a secret from ``env:NAME`` or ``file:PATH``.

    File contents are stripped of surrounding whitespace.
    """
    scheme, _, target = source.partition(":")
    if scheme == "env" and target:
        value = os.environ.get(target)
        if value is None:
            raise ConfigError(f"Environment variable '{target}' is not set (source: {source})")
        return value

    if scheme == "file" and target:
        path = Path(target).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")
