"""Endpoint registration: the registry and conventional endpoint groups."""

from apiflow.endpoints.builders import crud_endpoints, lookup_endpoints
from apiflow.endpoints.registry import EndpointRegistry

__all__ = ["EndpointRegistry", "crud_endpoints", "lookup_endpoints"]
