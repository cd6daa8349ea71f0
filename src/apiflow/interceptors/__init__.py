"""Interceptor chain and built-in interceptors.

:class:`InterceptorChain` runs named, prioritized hooks around every call
made by :class:`~apiflow.executor.Executor`; :mod:`apiflow.interceptors.builtin`
provides factories for the common ones (auth, logging, retry, ...).
"""

from apiflow.interceptors.builtin import (
    auth_interceptor,
    correlation_interceptor,
    error_transform_interceptor,
    logging_interceptor,
    retry_interceptor,
    tenant_interceptor,
    unauthorized_interceptor,
)
from apiflow.interceptors.chain import DEFAULT_PRIORITY, Interceptor, InterceptorChain, call_hook

__all__ = [
    "DEFAULT_PRIORITY",
    "Interceptor",
    "InterceptorChain",
    "auth_interceptor",
    "call_hook",
    "correlation_interceptor",
    "error_transform_interceptor",
    "logging_interceptor",
    "retry_interceptor",
    "tenant_interceptor",
    "unauthorized_interceptor",
]
