"""
Controller engine (heron.controller.engine)

Tests the per-route pipeline: guards, params, interceptors, shaping and
exception filter dispatch.
"""

import pytest
from typing import Annotated

from heron.application import AppContext
from heron.components import Role
from heron.context import ResponseState
from heron.controller import (
    GET,
    POST,
    ControllerEngine,
    MetadataStore,
    controller,
    use_filters,
    use_guards,
    use_interceptors,
)
from heron.di import Container
from heron.faults import NotFoundFault
from heron.params import Body, Param, Res
from heron.pipes import ParseIntPipe, ValidationPipe
from heron.response import Response
from heron.routing import RouteEntry

from dataclasses import dataclass

from tests.conftest import make_request, response_json


CALLS = []


class Deny:
    def can_activate(self, context):
        CALLS.append("guard")
        return False


class Tracing:
    def __init__(self, name):
        self.name = name

    async def intercept(self, context, call_handler):
        CALLS.append(f"{self.name}-before")
        result = await call_handler.handle()
        CALLS.append(f"{self.name}-after")
        return result


class Named:
    def __init__(self, name, answer=True):
        self.name = name
        self.answer = answer

    def catch(self, exception, host):
        CALLS.append(self.name)
        if self.answer:
            return Response.text(self.name, status=409)
        return None


@dataclass
class CreateItem:
    name: str


@use_interceptors(Tracing("controller"))
@use_filters(Named("controller"))
@controller("items")
class ItemController:

    @GET("/none")
    def none(self):
        return None

    @GET("/text")
    def text(self):
        return "hello"

    @GET("/json")
    async def json(self):
        return {"ok": True}

    @GET("/raw")
    def raw(self):
        return Response.text("raw", status=202)

    @POST("/created")
    def created(self, res: Annotated[ResponseState, Res()]):
        res.status(201).header("Location", "/items/1")
        return {"id": 1}

    @GET("/:id")
    def show(self, id: Annotated[int, Param("id", ParseIntPipe)]):
        return {"id": id}

    @POST("/")
    def create(self, payload: Annotated[CreateItem, Body()]):
        return {"name": payload.name}

    @use_interceptors(Tracing("method"))
    @GET("/traced")
    def traced(self):
        CALLS.append("handler")
        return "traced"

    @use_filters(Named("method-pass", answer=False))
    @GET("/fails")
    def fails(self):
        raise NotFoundFault("gone")

    @use_filters(Named("method"))
    @GET("/fails-here")
    def fails_here(self):
        raise RuntimeError("boom")

    @use_guards(Deny)
    @use_filters(Named("never"))
    @GET("/denied")
    def denied(self):
        CALLS.append("handler")

    def not_a_route(self):
        return None


@pytest.fixture(autouse=True)
def reset_calls():
    CALLS.clear()
    yield
    CALLS.clear()


@pytest.fixture
def app_context():
    container = Container()
    return AppContext(container=container, metadata=MetadataStore(container))


def route_for(name, path="/"):
    instance = ItemController()
    return RouteEntry(
        method="GET",
        path=path,
        handler=getattr(instance, name),
        controller=instance,
        controller_class=ItemController,
        method_name=name,
    )


async def run(app_context, name, request=None):
    return await ControllerEngine(app_context).execute(route_for(name), request or make_request())


# ============================================================================
# Response shaping
# ============================================================================

class TestShaping:

    @pytest.mark.asyncio
    async def test_none_is_ok_text(self, app_context):
        response = await run(app_context, "none")
        assert response.status == 200
        assert response.body == b"OK"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_str_is_text(self, app_context):
        response = await run(app_context, "text")
        assert response.body == b"hello"

    @pytest.mark.asyncio
    async def test_value_is_json(self, app_context):
        response = await run(app_context, "json")
        assert response_json(response) == {"ok": True}
        assert response.headers["content-type"].startswith("application/json")

    @pytest.mark.asyncio
    async def test_response_passes_through(self, app_context):
        response = await run(app_context, "raw")
        assert response.status == 202
        assert response.body == b"raw"

    @pytest.mark.asyncio
    async def test_response_state_applied(self, app_context):
        response = await run(app_context, "created", make_request("POST", "/items/created"))
        assert response.status == 201
        assert response.headers["location"] == "/items/1"
        assert response_json(response) == {"id": 1}


# ============================================================================
# Pipeline
# ============================================================================

class TestPipeline:

    @pytest.mark.asyncio
    async def test_params_resolved(self, app_context):
        request = make_request("GET", "/items/7", params={"id": "7"})
        response = await run(app_context, "show", request)
        assert response_json(response) == {"id": 7}

    @pytest.mark.asyncio
    async def test_pipe_failure_goes_to_filters(self, app_context):
        request = make_request("GET", "/items/x", params={"id": "x"})
        response = await run(app_context, "show", request)
        assert response.status == 409
        assert CALLS == ["controller"]

    @pytest.mark.asyncio
    async def test_global_validation_pipe(self, app_context):
        app_context.add(Role.PIPE, [ValidationPipe()])
        request = make_request("POST", "/items", json_body={"name": "lamp"})
        response = await run(app_context, "create", request)
        assert response_json(response) == {"name": "lamp"}

    @pytest.mark.asyncio
    async def test_interceptor_scopes(self, app_context):
        app_context.add(Role.INTERCEPTOR, [Tracing("global")])
        response = await run(app_context, "traced")
        assert response.body == b"traced"
        assert CALLS == [
            "global-before", "controller-before", "method-before",
            "handler",
            "method-after", "controller-after", "global-after",
        ]

    @pytest.mark.asyncio
    async def test_guard_rejection_bypasses_filters(self, app_context):
        response = await run(app_context, "denied")
        assert response.status == 403
        assert response_json(response)["error"] == "Guard rejected"
        assert CALLS == ["guard"]

    @pytest.mark.asyncio
    async def test_global_guard_runs_first(self, app_context):
        app_context.add(Role.GUARD, [Deny()])
        response = await run(app_context, "text")
        assert response.status == 403
        assert CALLS == ["guard"]


# ============================================================================
# Exception filters
# ============================================================================

class TestFilterDispatch:

    @pytest.mark.asyncio
    async def test_method_filter_first(self, app_context):
        app_context.add(Role.FILTER, [Named("global")])
        response = await run(app_context, "fails_here")
        assert response.body == b"method"
        assert CALLS == ["controller-before", "method"]

    @pytest.mark.asyncio
    async def test_falls_through_to_controller(self, app_context):
        app_context.add(Role.FILTER, [Named("global")])
        response = await run(app_context, "fails")
        assert response.body == b"controller"
        assert CALLS == ["controller-before", "method-pass", "controller"]

    @pytest.mark.asyncio
    async def test_unknown_handler_uses_global_filters(self, app_context):
        response = await run(app_context, "not_a_route")
        assert response.status == 500
        assert response_json(response)["message"] == "Internal Server Error"
        assert CALLS == []
