"""
Controller metadata (heron.controller.decorators / heron.controller.metadata)

Tests decorator attributes and their compilation into records.
"""

import pytest
from typing import Annotated

from heron.controller import (
    DELETE,
    GET,
    POST,
    MetadataStore,
    controller,
    is_controller,
    is_module,
    module,
    use_guards,
    use_interceptors,
)
from heron.di import ServiceScope
from heron.params import Body, Param, Query
from heron.pipes import ParamKind


class Allow:
    def __init__(self, name="allow"):
        self.name = name

    def can_activate(self, context):
        return True


class Noop:
    async def intercept(self, context, call_handler):
        return await call_handler.handle()


@controller("users")
class UserController:

    @GET("/")
    def list(self):
        return []

    @use_guards(Allow("top"))
    @use_guards(Allow("bottom"))
    @GET("/:id")
    def show(self, id: Annotated[int, Param("id")], request, q: Annotated[str, Query("q")]):
        return id

    @POST("/")
    @POST("/bulk")
    def create(self, payload: Annotated[dict, Body()]):
        return payload

    def helper(self):
        return "not a route"


@use_guards(Allow)
@use_interceptors(Noop)
@controller("admin")
class AdminController(UserController):

    def list(self):
        return "overridden without route"

    @DELETE("/:id")
    def remove(self, id: Annotated[str, Param("id")]):
        return id


@module(controllers=[UserController], providers=[Allow])
class UserModule:
    pass


# ============================================================================
# Decorators
# ============================================================================

class TestDecorators:

    def test_predicates(self):
        assert is_module(UserModule)
        assert is_controller(UserController)
        assert not is_module(UserController)
        assert not is_controller(object)

    def test_bare_controller(self):
        @controller
        class Bare:
            pass

        assert is_controller(Bare)
        assert MetadataStore().controller(Bare).prefix == ""

    def test_controller_is_singleton(self):
        assert UserController.__di_scope__ is ServiceScope.SINGLETON

    def test_route_decorator_must_be_called(self):
        with pytest.raises(TypeError, match="must be called"):
            class Broken:
                @GET
                def index(self):
                    pass

    def test_component_decorator_needs_arguments(self):
        with pytest.raises(TypeError):
            use_guards()


# ============================================================================
# Records
# ============================================================================

class TestModuleRecords:

    def test_module_record(self):
        record = MetadataStore().module(UserModule)
        assert record.controllers == (UserController,)
        assert record.providers == (Allow,)
        assert record.imports == ()

    def test_invalid_module(self):
        with pytest.raises(TypeError, match="is not a valid module"):
            MetadataStore().module(UserController)

    def test_listing(self):
        store = MetadataStore()
        store.module(UserModule)
        store.controller(UserController)
        assert [m.module_class for m in store.modules()] == [UserModule]
        assert [c.controller_class for c in store.controllers()] == [UserController]


class TestControllerRecords:

    def test_invalid_controller(self):
        with pytest.raises(TypeError, match="is not a valid controller"):
            MetadataStore().controller(UserModule)

    def test_routes_in_declaration_order(self):
        record = MetadataStore().controller(UserController)
        assert [(r.http_method, r.path, r.method_name) for r in record.routes] == [
            ("GET", "/", "list"),
            ("GET", "/:id", "show"),
            ("POST", "/bulk", "create"),
            ("POST", "/", "create"),
        ]

    def test_records_are_cached(self):
        store = MetadataStore()
        assert store.controller(UserController) is store.controller(UserController)

    def test_inherited_routes(self):
        record = MetadataStore().controller(AdminController)
        names = [r.method_name for r in record.routes]
        assert "list" not in names
        assert names == ["show", "create", "create", "remove"]
        assert record.prefix == "admin"

    def test_class_components(self):
        record = MetadataStore().controller(AdminController)
        assert [c.source for c in record.guards] == [Allow]
        assert [c.source for c in record.interceptors] == [Noop]
        assert MetadataStore().controller(UserController).guards == ()


class TestHandlerRecords:

    def test_handler_lookup(self):
        record = MetadataStore().handler(UserController, "show")
        assert record.http_method == "GET"
        assert record.path == "/:id"

    def test_stacked_decorators_first_route_wins(self):
        record = MetadataStore().handler(UserController, "create")
        assert record.path == "/bulk"

    def test_non_handler(self):
        store = MetadataStore()
        with pytest.raises(LookupError):
            store.handler(UserController, "helper")
        with pytest.raises(LookupError):
            store.handler(UserController, "missing")

    def test_method_guards_in_declaration_order(self):
        record = MetadataStore().handler(UserController, "show")
        assert [c.source.name for c in record.guards] == ["top", "bottom"]

    def test_param_bindings(self):
        record = MetadataStore().handler(UserController, "show")
        assert record.arity == 3
        assert [(b.index, b.name, b.kind, b.key) for b in record.params] == [
            (0, "id", ParamKind.PATH, "id"),
            (2, "q", ParamKind.QUERY, "q"),
        ]
        assert record.params[0].declared_type is int

    def test_zero_parameters(self):
        record = MetadataStore().handler(UserController, "list")
        assert record.arity == 0
        assert record.params == ()

    def test_keyword_only_binding_rejected(self):
        @controller("k")
        class KeywordController:
            @GET("/:id")
            def show(self, *, id: Annotated[str, Param("id")]):
                return id

        with pytest.raises(TypeError, match="keyword-only parameter 'id'"):
            MetadataStore().controller(KeywordController)

    def test_keyword_only_without_default_rejected(self):
        @controller("k")
        class KeywordController:
            @GET("/")
            def index(self, *, verbose):
                return verbose

        with pytest.raises(TypeError, match="'verbose'"):
            MetadataStore().handler(KeywordController, "index")

    def test_keyword_only_default_allowed(self):
        @controller("k")
        class KeywordController:
            @GET("/:id")
            def show(self, id: Annotated[str, Param("id")], *, verbose=False):
                return id

        record = MetadataStore().handler(KeywordController, "show")
        assert record.arity == 1
        assert [b.name for b in record.params] == ["id"]
