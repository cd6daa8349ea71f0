"""The :class:`Plugin` contract.

A plugin is a small object that hands interceptors to an executor.  Packages
expose one through the ``apiflow.plugins`` entry-point group::

    class StampPlugin(Plugin):
        @property
        def name(self) -> str:
            return "stamp"

        def interceptors(self) -> list[Interceptor]:
            def stamp(request, ctx):
                request.headers["X-Client"] = "apiflow"
                return request

            return [Interceptor(name="stamp", priority=20, request=stamp)]
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from apiflow.interceptors.chain import Interceptor
from apiflow.models import GlobalConfig


class Plugin(ABC):
    """Contributes interceptors to every executor the CLI builds.

    Only :attr:`name` is required.  The manager constructs the plugin with no
    arguments, calls :meth:`on_init` once, asks for :meth:`interceptors`
    whenever it installs onto an executor, and calls :meth:`cleanup` on exit.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: GlobalConfig) -> None:
        """Read whatever settings the interceptors will need."""

    def interceptors(self) -> list[Interceptor]:
        # Give them names; unnamed interceptors cannot be removed later.
        return []

    def cleanup(self) -> None:
        pass
