"""Endpoint registry: resolves endpoint ids to descriptors."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from apiflow.exceptions import ConfigError, EndpointNotFoundError
from apiflow.models import EndpointDescriptor

logger = logging.getLogger(__name__)


class EndpointRegistry:
    """Holds the endpoint descriptors an executor can call by id.

    Descriptors can also be registered as a named group (e.g. the seven
    endpoints produced by :func:`~apiflow.endpoints.crud_endpoints`) so they
    can be listed together.

    Example::

        registry = EndpointRegistry()
        registry.register(EndpointDescriptor(id="users.get", url="/users/:id"))
        registry.get("users.get")
    """

    def __init__(self) -> None:
        self._endpoints: dict[str, EndpointDescriptor] = {}
        self._groups: dict[str, list[str]] = {}

    def register(self, endpoint: EndpointDescriptor, *, replace: bool = False) -> None:
        """Add *endpoint* under its id.

        Raises:
            ConfigError: If the id is already taken and *replace* is false.
        """
        if endpoint.id in self._endpoints and not replace:
            raise ConfigError(f"Endpoint '{endpoint.id}' is already registered")
        self._endpoints[endpoint.id] = endpoint
        logger.debug("Registered endpoint %s %s %s", endpoint.id, endpoint.method.value, endpoint.url)

    def register_group(
        self, name: str, endpoints: Iterable[EndpointDescriptor], *, replace: bool = False
    ) -> None:
        endpoints = list(endpoints)
        if name in self._groups and not replace:
            raise ConfigError(f"Endpoint group '{name}' is already registered")
        for endpoint in endpoints:
            self.register(endpoint, replace=replace)
        self._groups[name] = [e.id for e in endpoints]

    def get(self, endpoint_id: str) -> EndpointDescriptor:
        try:
            return self._endpoints[endpoint_id]
        except KeyError:
            raise EndpointNotFoundError(f"Unknown endpoint '{endpoint_id}'") from None

    def get_group(self, name: str) -> list[EndpointDescriptor]:
        if name not in self._groups:
            raise EndpointNotFoundError(f"Unknown endpoint group '{name}'")
        return [self._endpoints[i] for i in self._groups[name] if i in self._endpoints]

    def list(self) -> list[EndpointDescriptor]:
        return sorted(self._endpoints.values(), key=lambda e: e.id)

    def group_names(self) -> list[str]:
        return [*self._groups]

    def clear(self) -> None:
        self._endpoints.clear()
        self._groups.clear()

    def __contains__(self, endpoint_id: object) -> bool:
        return endpoint_id in self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    def __iter__(self) -> Iterator[EndpointDescriptor]:
        return iter(self.list())
