"""Default call context handed to every hook and interceptor.

The executor never inspects the context itself; it is passed through
unchanged to interceptors, endpoint hooks, and the legacy global hooks.
Callers may supply any object, but the built-in interceptors in
:mod:`apiflow.interceptors.builtin` read their defaults from
:class:`CallContext`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class CallContext:
    """Per-caller state threaded through one :meth:`~apiflow.executor.Executor.execute`.

    Attributes:
        auth_token: Bearer token used by the auth interceptor.
        tenant_id: Tenant identifier used by the tenant interceptor.
        values: Free-form values for custom interceptors.
        navigate: Callback the unauthorized interceptor uses to redirect,
            e.g. to a login page.
    """

    auth_token: Optional[str] = None
    tenant_id: Optional[str] = None
    values: dict[str, Any] = field(default_factory=dict)
    navigate: Optional[Callable[[str], Any]] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)
