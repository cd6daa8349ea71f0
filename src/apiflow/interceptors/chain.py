"""Interceptor definitions and the priority-ordered chain that runs them.

This module provides two core components:

* :class:`Interceptor` -- a named, prioritized bundle of up to three hooks
  (``request``, ``response``, ``error``).
* :class:`InterceptorChain` -- the ordered list the executor runs for each
  call.  Lower priorities run first; equal priorities keep registration
  order.

The chain follows a pipeline pattern: each hook receives the output of the
previous one.  Hooks may be plain functions or coroutines; they are awaited
one after another, never concurrently.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Optional, Union

from apiflow.exceptions import ApiError, InterceptorError
from apiflow.models import NormalizedResponse, RequestDescription

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 100

RequestHook = Callable[[RequestDescription, Any], Union[RequestDescription, Awaitable[RequestDescription]]]
ResponseHook = Callable[[NormalizedResponse, Any], Any]
ErrorHook = Callable[[ApiError, Any], Any]


@dataclass(frozen=True)
class Interceptor:
    """A named, prioritized set of hooks.

    Attributes:
        name: Unique name used by :meth:`InterceptorChain.unregister`.
            Anonymous interceptors can only be removed by :meth:`~InterceptorChain.clear`.
        priority: Ordering key; lower runs first.  ``None`` means the default (100).
        request: ``(request, ctx) -> request``.  Must return the request to
            use from then on.
        response: ``(response, ctx) -> data``.  ``response.data`` holds the
            current payload; the return value replaces it.
        error: ``(error, ctx) -> value | None``.  Returning anything other
            than ``None`` recovers the call with that value.
    """

    name: Optional[str] = None
    priority: Optional[int] = DEFAULT_PRIORITY
    request: Optional[RequestHook] = None
    response: Optional[ResponseHook] = None
    error: Optional[ErrorHook] = None


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call *hook* and await the result if it is awaitable."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class InterceptorChain:
    """Priority-ordered list of interceptors.

    The list is re-sorted on every registration.  The executor takes a
    :meth:`snapshot` when a call starts, so registering or removing
    interceptors only affects calls that begin afterwards.
    """

    def __init__(self, interceptors: Iterable[Interceptor] = ()) -> None:
        self._interceptors: list[Interceptor] = []
        for interceptor in interceptors:
            self.register(interceptor)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, interceptor: Interceptor) -> None:
        """Add *interceptor* and re-sort the chain.

        Raises:
            InterceptorError: If another interceptor already uses the same name.
        """
        if interceptor.priority is None:
            interceptor = dataclasses.replace(interceptor, priority=DEFAULT_PRIORITY)
        if interceptor.name and any(i.name == interceptor.name for i in self._interceptors):
            raise InterceptorError(f"Interceptor '{interceptor.name}' is already registered")

        self._interceptors.append(interceptor)
        # list.sort is stable, so ties keep insertion order
        self._interceptors.sort(key=lambda i: i.priority)
        logger.debug("Registered interceptor %s (priority %s)", interceptor.name or "<anonymous>", interceptor.priority)

    def unregister(self, name: str) -> bool:
        """Remove the interceptor called *name*.  Returns whether one was removed."""
        before = len(self._interceptors)
        self._interceptors = [i for i in self._interceptors if i.name != name]
        return len(self._interceptors) != before

    def list(self) -> list[Interceptor]:
        return [*self._interceptors]

    def clear(self) -> None:
        self._interceptors = []

    def snapshot(self) -> InterceptorChain:
        chain = InterceptorChain()
        chain._interceptors = [*self._interceptors]
        return chain

    def __len__(self) -> int:
        return len(self._interceptors)

    def __iter__(self) -> Iterator[Interceptor]:
        return iter([*self._interceptors])

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def run_request(self, request: RequestDescription, ctx: Any) -> RequestDescription:
        """Thread *request* through every ``request`` hook in order."""
        for interceptor in self._interceptors:
            if interceptor.request is not None:
                request = await call_hook(interceptor.request, request, ctx)
        return request

    async def run_response(self, response: NormalizedResponse, ctx: Any) -> Any:
        """Thread the payload of *response* through every ``response`` hook.

        Each hook sees a copy of *response* whose ``data`` is the output of
        the previous hook.

        Returns:
            The final payload.
        """
        data = response.data
        for interceptor in self._interceptors:
            if interceptor.response is not None:
                current = response.model_copy(update={"data": data})
                data = await call_hook(interceptor.response, current, ctx)
        return data

    async def run_error(self, error: ApiError, ctx: Any) -> tuple[bool, Any]:
        """Offer *error* to every ``error`` hook until one recovers it.

        Exceptions raised by error hooks are not caught.

        Returns:
            ``(True, value)`` for the first hook returning a non-``None``
            value, else ``(False, None)``.
        """
        for interceptor in self._interceptors:
            if interceptor.error is None:
                continue
            result = await call_hook(interceptor.error, error, ctx)
            if result is not None:
                logger.debug("Error %s recovered by interceptor %s", error.kind.value, interceptor.name)
                return True, result
        return False, None
