"""Tests for the interceptor chain."""

from __future__ import annotations

import pytest

from apiflow.exceptions import ApiError, ErrorKind, InterceptorError
from apiflow.interceptors import DEFAULT_PRIORITY, Interceptor, InterceptorChain
from apiflow.models import HTTPMethod, NormalizedResponse, RequestDescription


def _request() -> RequestDescription:
    return RequestDescription(url="https://api.test/users", method=HTTPMethod.GET)


def _tagger(tag: str):
    def hook(request: RequestDescription, ctx):
        request.headers.setdefault("X-Order", "")
        request.headers["X-Order"] += tag
        return request

    return hook


# ---------------------------------------------------------------------------
# Registration and ordering
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_sorted_by_priority(self) -> None:
        chain = InterceptorChain()
        for name, priority in [("a", 50), ("b", 10), ("c", 100)]:
            chain.register(Interceptor(name=name, priority=priority))
        assert [i.name for i in chain] == ["b", "a", "c"]

    def test_ties_keep_registration_order(self) -> None:
        chain = InterceptorChain([Interceptor(name="first"), Interceptor(name="second")])
        chain.register(Interceptor(name="early", priority=1))
        assert [i.name for i in chain.list()] == ["early", "first", "second"]

    def test_none_priority_means_default(self) -> None:
        chain = InterceptorChain([Interceptor(name="x", priority=None)])
        assert chain.list()[0].priority == DEFAULT_PRIORITY

    def test_duplicate_name_rejected(self) -> None:
        chain = InterceptorChain([Interceptor(name="auth")])
        with pytest.raises(InterceptorError, match="auth"):
            chain.register(Interceptor(name="auth", priority=1))

    def test_anonymous_interceptors_allowed_twice(self) -> None:
        chain = InterceptorChain([Interceptor(), Interceptor()])
        assert len(chain) == 2

    def test_unregister(self) -> None:
        chain = InterceptorChain([Interceptor(name="a"), Interceptor(name="b")])
        assert chain.unregister("a") is True
        assert chain.unregister("a") is False
        assert [i.name for i in chain] == ["b"]

    def test_clear(self) -> None:
        chain = InterceptorChain([Interceptor(name="a")])
        chain.clear()
        assert len(chain) == 0

    def test_snapshot_is_independent(self) -> None:
        chain = InterceptorChain([Interceptor(name="a")])
        snapshot = chain.snapshot()
        chain.register(Interceptor(name="b"))
        assert len(snapshot) == 1


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


class TestRequestPhase:
    @pytest.mark.asyncio
    async def test_hooks_run_in_priority_order(self) -> None:
        chain = InterceptorChain(
            [
                Interceptor(name="c", priority=100, request=_tagger("c")),
                Interceptor(name="a", priority=10, request=_tagger("a")),
                Interceptor(name="b", priority=50, request=_tagger("b")),
            ]
        )
        request = await chain.run_request(_request(), None)
        assert request.headers["X-Order"] == "abc"

    @pytest.mark.asyncio
    async def test_async_hooks_are_awaited(self) -> None:
        async def add_header(request: RequestDescription, ctx):
            request.headers["X-Async"] = ctx
            return request

        chain = InterceptorChain([Interceptor(request=add_header)])
        request = await chain.run_request(_request(), "yes")
        assert request.headers["X-Async"] == "yes"


class TestResponsePhase:
    @pytest.mark.asyncio
    async def test_payload_threads_through_hooks(self) -> None:
        chain = InterceptorChain(
            [
                Interceptor(priority=2, response=lambda r, ctx: r.data + [2]),
                Interceptor(priority=1, response=lambda r, ctx: r.data + [1]),
            ]
        )
        data = await chain.run_response(NormalizedResponse(status=200, data=[0]), None)
        assert data == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_hooks_see_status(self) -> None:
        seen = []
        chain = InterceptorChain([Interceptor(response=lambda r, ctx: seen.append(r.status) or r.data)])
        await chain.run_response(NormalizedResponse(status=201, data="x"), None)
        assert seen == [201]


class TestErrorPhase:
    @pytest.mark.asyncio
    async def test_first_non_none_recovers(self) -> None:
        calls = []

        def skip(error, ctx):
            calls.append("skip")
            return None

        def recover(error, ctx):
            calls.append("recover")
            return {"fallback": True}

        def never(error, ctx):
            calls.append("never")
            return "late"

        chain = InterceptorChain(
            [
                Interceptor(priority=1, error=skip),
                Interceptor(priority=2, error=recover),
                Interceptor(priority=3, error=never),
            ]
        )
        error = ApiError(ErrorKind.HTTP, 500, "boom")
        assert await chain.run_error(error, None) == (True, {"fallback": True})
        assert calls == ["skip", "recover"]

    @pytest.mark.asyncio
    async def test_no_recovery(self) -> None:
        chain = InterceptorChain([Interceptor(error=lambda e, ctx: None)])
        assert await chain.run_error(ApiError(ErrorKind.NETWORK, 0, "down"), None) == (False, None)

    @pytest.mark.asyncio
    async def test_error_hook_exceptions_propagate(self) -> None:
        def explode(error, ctx):
            raise ValueError("hook failed")

        chain = InterceptorChain([Interceptor(error=explode)])
        with pytest.raises(ValueError, match="hook failed"):
            await chain.run_error(ApiError(ErrorKind.HTTP, 500, "boom"), None)
