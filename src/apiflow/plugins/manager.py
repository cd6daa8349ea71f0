"""Entry-point discovery and installation of plugins.

A package makes a plugin available by declaring::

    [project.entry-points."apiflow.plugins"]
    stamp = "my_package.plugin:StampPlugin"

``plugins.enabled`` in the global config, when non-empty, is an allowlist;
otherwise every discovered plugin loads except those in ``plugins.disabled``.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, Iterable, Iterator

from apiflow.exceptions import InterceptorError, PluginError
from apiflow.models import GlobalConfig, PluginsConfig
from apiflow.plugins.base import Plugin

if TYPE_CHECKING:
    from apiflow.executor import Executor

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "apiflow.plugins"


def _select(entry_points: Iterable, selection: PluginsConfig) -> Iterator:
    allow = set(selection.enabled)
    deny = set(selection.disabled)
    for ep in entry_points:
        if (allow and ep.name not in allow) or ep.name in deny:
            logger.debug("Skipping plugin '%s'", ep.name)
            continue
        yield ep


class PluginManager:
    """Holds loaded plugins by name and installs them onto executors."""

    def __init__(self) -> None:
        self._loaded: dict[str, Plugin] = {}

    def discover(self, config: GlobalConfig) -> list[str]:
        """Load every selected plugin from the ``apiflow.plugins`` group.

        A plugin that cannot be imported, constructed, or initialised is
        logged as a warning and left out.  Returns the names that loaded.
        """
        available = importlib.metadata.entry_points(group=ENTRY_POINT_GROUP)
        names = []
        for ep in _select(available, config.plugins):
            try:
                self.load_plugin(ep.name, ep.load()(), config)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", ep.name, exc)
            else:
                names.append(ep.name)
        return names

    def load_plugin(self, name: str, plugin: Plugin, config: GlobalConfig) -> None:
        if name in self._loaded:
            raise PluginError(f"Plugin '{name}' is already loaded")
        plugin.on_init(config)
        self._loaded[name] = plugin
        logger.info("Loaded plugin '%s' v%s", name, plugin.version)

    def get_plugin(self, name: str) -> Plugin:
        plugin = self._loaded.get(name)
        if plugin is None:
            raise PluginError(f"Plugin '{name}' is not loaded")
        return plugin

    def list_plugins(self) -> list[dict[str, str]]:
        return [
            {"name": p.name, "version": p.version, "description": p.description}
            for p in self._loaded.values()
        ]

    def install(self, executor: Executor) -> int:
        """Add each plugin's interceptors to *executor*; returns how many.

        An interceptor name already taken on the executor surfaces as a
        :class:`PluginError` naming the offending plugin.
        """
        installed = 0
        for name, plugin in self._loaded.items():
            for interceptor in plugin.interceptors():
                try:
                    executor.add_interceptor(interceptor)
                except InterceptorError as exc:
                    raise PluginError(f"Plugin '{name}': {exc}") from exc
                installed += 1
        logger.debug("Installed %d plugin interceptor(s)", installed)
        return installed

    def cleanup(self) -> None:
        """Run every plugin's cleanup, then forget them all.

        A failing cleanup is logged so the rest still run.
        """
        for name, plugin in self._loaded.items():
            try:
                plugin.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up plugin '%s': %s", name, exc)
        self._loaded.clear()
