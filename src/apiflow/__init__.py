"""apiflow -- declarative endpoints executed through a cached, intercepted pipeline.

Endpoints are described once as :class:`~apiflow.models.EndpointDescriptor`
values and called through an :class:`~apiflow.executor.Executor`, which
handles URL building, header merging, payload mapping, the interceptor
chain, and the multi-backend response cache.

Typical usage::

    from apiflow import CachePolicy, EndpointDescriptor, Executor

    async with Executor("https://api.example.com") as executor:
        executor.register_endpoint(
            EndpointDescriptor(id="users.get", url="/users/:id", cache=CachePolicy())
        )
        user = await executor.execute("users.get", {"path": {"id": 7}})

Modules:
    app: Typer application and CLI entry point.
    executor: The request execution pipeline.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and manifest loading.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"

from apiflow.context import CallContext  # noqa: E402
from apiflow.exceptions import ApiError, ApiflowError, ErrorKind  # noqa: E402
from apiflow.executor import Executor, build_cache_key, build_request  # noqa: E402
from apiflow.interceptors import Interceptor, InterceptorChain  # noqa: E402
from apiflow.models import (  # noqa: E402
    CacheBackend,
    CachePolicy,
    CallOptions,
    EndpointDescriptor,
    HTTPMethod,
    MultipartBody,
    PaginationPolicy,
)

__all__ = [
    "ApiError",
    "ApiflowError",
    "CacheBackend",
    "CachePolicy",
    "CallContext",
    "CallOptions",
    "EndpointDescriptor",
    "ErrorKind",
    "Executor",
    "HTTPMethod",
    "Interceptor",
    "InterceptorChain",
    "MultipartBody",
    "PaginationPolicy",
    "build_cache_key",
    "build_request",
    "__version__",
]
