"""
Guards (heron.guards)

Tests guard chain ordering, result shapes and rejection responses.
"""

import pytest

from heron.components import Role
from heron.faults import HttpFault, UnauthorizedFault
from heron.guards import GuardExecutor, GuardResult, first_value, rejection_response

from tests.conftest import components, make_context, make_request, response_json


class Recording:
    def __init__(self, calls, name, result=True):
        self.calls = calls
        self.name = name
        self.result = result

    def can_activate(self, context):
        self.calls.append(self.name)
        return self.result


# ============================================================================
# first_value
# ============================================================================

class TestFirstValue:

    @pytest.mark.asyncio
    async def test_plain_and_awaitable(self):
        async def coro():
            return True

        assert await first_value(True) is True
        assert await first_value(coro()) is True

    @pytest.mark.asyncio
    async def test_async_stream_first_value(self):
        closed = []

        async def stream():
            try:
                yield False
                yield True
            finally:
                closed.append(True)

        assert await first_value(stream()) is False
        assert closed == [True]

    @pytest.mark.asyncio
    async def test_empty_stream_is_false(self):
        async def empty():
            return
            yield  # pragma: no cover

        assert await first_value(empty()) is False
        assert await first_value(iter([])) is False

    @pytest.mark.asyncio
    async def test_sync_iterator_first_value(self):
        assert await first_value(iter([True, False])) is True


# ============================================================================
# GuardExecutor
# ============================================================================

class TestGuardExecutor:

    @pytest.mark.asyncio
    async def test_all_pass_in_order(self, calls):
        guards = components(
            Role.GUARD,
            Recording(calls, "global"),
            Recording(calls, "controller"),
            Recording(calls, "method"),
        )
        result = await GuardExecutor().can_activate(guards, make_context())
        assert result.can_activate is True
        assert calls == ["global", "controller", "method"]

    @pytest.mark.asyncio
    async def test_rejection_stops_chain(self, calls):
        guards = components(
            Role.GUARD,
            Recording(calls, "global", result=False),
            Recording(calls, "local"),
        )
        result = await GuardExecutor().can_activate(guards, make_context())
        assert result.can_activate is False
        assert result.error is None
        assert calls == ["global"]

    @pytest.mark.asyncio
    async def test_later_guards_never_built(self, calls):
        def build_local():
            calls.append("built")
            return Recording(calls, "local")

        guards = components(Role.GUARD, Recording(calls, "global", result=False), build_local)
        await GuardExecutor().can_activate(guards, make_context())
        assert calls == ["global"]

    @pytest.mark.asyncio
    async def test_raising_guard_captured(self, calls):
        class Boom:
            def can_activate(self, context):
                raise UnauthorizedFault("token expired")

        guards = components(Role.GUARD, Boom(), Recording(calls, "after"))
        result = await GuardExecutor().can_activate(guards, make_context())
        assert result.can_activate is False
        assert isinstance(result.error, UnauthorizedFault)
        assert calls == []

    @pytest.mark.asyncio
    async def test_async_guard(self):
        class AsyncGuard:
            async def can_activate(self, context):
                return context.get_request().header("x-token") == "ok"

        guards = components(Role.GUARD, AsyncGuard)
        ok = await GuardExecutor().can_activate(
            guards, make_context(make_request(headers={"X-Token": "ok"}))
        )
        denied = await GuardExecutor().can_activate(guards, make_context())
        assert ok.can_activate is True
        assert denied.can_activate is False

    @pytest.mark.asyncio
    async def test_empty_chain_allows(self):
        assert (await GuardExecutor().can_activate((), make_context())).can_activate


# ============================================================================
# Rejection response
# ============================================================================

class TestRejectionResponse:

    def test_default_403(self):
        response = rejection_response(GuardResult(False))
        assert response.status == 403
        assert response_json(response) == {
            "statusCode": 403,
            "error": "Guard rejected",
            "message": "Access denied",
        }

    def test_status_and_message_surfaced(self):
        response = rejection_response(GuardResult(False, UnauthorizedFault("token expired")))
        assert response.status == 401
        assert response_json(response)["message"] == "token expired"

    def test_plain_error_message_with_403(self):
        response = rejection_response(GuardResult(False, RuntimeError("nope")))
        assert response.status == 403
        assert response_json(response)["message"] == "nope"

    def test_empty_message_uses_reason_phrase(self):
        response = rejection_response(GuardResult(False, HttpFault(401, "")))
        assert response.status == 401
        assert response_json(response)["message"] == "Unauthorized"
