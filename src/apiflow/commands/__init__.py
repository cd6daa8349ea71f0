"""Built-in CLI sub-commands for apiflow.

* :mod:`~apiflow.commands.call` -- execute one endpoint.
* :mod:`~apiflow.commands.endpoints` -- list declared endpoints.
* :mod:`~apiflow.commands.cache` -- cache statistics and clearing.
* :mod:`~apiflow.commands.config` -- view configuration.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups) or a plain callback registered directly on the root
app (``call``).
"""
