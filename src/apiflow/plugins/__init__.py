"""Entry-point plugins that add interceptors to apiflow executors.

Third-party packages register plugins by declaring an entry point in the
``apiflow.plugins`` group.  :class:`PluginManager` discovers and loads them,
then installs their interceptors on an executor.
"""

from apiflow.plugins.base import Plugin
from apiflow.plugins.manager import ENTRY_POINT_GROUP, PluginManager

__all__ = ["ENTRY_POINT_GROUP", "Plugin", "PluginManager"]
