"""
Parameter bindings - declare where a handler argument comes from.

Markers are placed in ``typing.Annotated`` metadata:

    @GET("/:id")
    async def show(
        self,
        id: Annotated[int, Param("id", ParseIntPipe)],
        verbose: Annotated[str, Query("verbose")],
        payload: Annotated[CreateUser, Body()],
    ):
        ...

A marker with a key selects one entry; without a key the whole table is
passed (all path params, all query params, the whole body, all headers).
Handler parameters without a marker receive the raw request.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .components import Component
from .context import ExecutionContext
from .pipes import ArgumentMetadata, ParamKind, PipeExecutor

if TYPE_CHECKING:
    from .controller.metadata import HandlerRecord
    from .request import Request


logger = logging.getLogger("heron.params")

BODY_METHODS = frozenset(("POST", "PUT", "PATCH"))


@dataclass(frozen=True)
class ParamMarker:
    """Binding declaration carried in ``Annotated`` metadata."""

    kind: ParamKind
    key: Optional[str] = None
    pipes: Tuple[Any, ...] = ()
    factory: Optional[Callable[[Optional[str], ExecutionContext], Any]] = field(default=None, compare=False)


def Param(key: Optional[str] = None, *pipes: Any) -> ParamMarker:
    """Path parameter (``:name`` segments)."""
    return ParamMarker(ParamKind.PATH, key, pipes)


def Query(key: Optional[str] = None, *pipes: Any) -> ParamMarker:
    return ParamMarker(ParamKind.QUERY, key, pipes)


def Body(key: Optional[str] = None, *pipes: Any) -> ParamMarker:
    return ParamMarker(ParamKind.BODY, key, pipes)


def Headers(key: Optional[str] = None, *pipes: Any) -> ParamMarker:
    """Request header; the key is matched case-insensitively."""
    return ParamMarker(ParamKind.HEADERS, key.lower() if key else None, pipes)


def Req() -> ParamMarker:
    return ParamMarker(ParamKind.REQUEST)


def Res() -> ParamMarker:
    """The response placeholder (status and extra headers)."""
    return ParamMarker(ParamKind.RESPONSE)


def Custom(
    factory: Callable[[Optional[str], ExecutionContext], Any],
    key: Optional[str] = None,
    *pipes: Any,
) -> ParamMarker:
    """Value computed by ``factory(key, context)``, sync or async."""
    return ParamMarker(ParamKind.CUSTOM, key, pipes, factory)


def create_param_decorator(
    factory: Callable[[Optional[str], ExecutionContext], Any],
) -> Callable[..., ParamMarker]:
    """
    Build a reusable custom marker.

    Example:
        User = create_param_decorator(lambda key, ctx: ctx.get_request().state["user"])

        @GET("/me")
        def me(self, user: Annotated[dict, User()]):
            return user
    """
    def marker(key: Optional[str] = None, *pipes: Any) -> ParamMarker:
        return Custom(factory, key, *pipes)
    marker.__name__ = getattr(factory, "__name__", "custom_param")
    return marker


# ============================================================================
# Resolution
# ============================================================================

class RequestData:
    """
    Lazily parsed request tables, computed at most once per request.
    """

    def __init__(self, request: "Request"):
        self.request = request
        self._body_loaded = False
        self._body: Any = None

    @property
    def path(self) -> Dict[str, str]:
        return self.request.params

    @property
    def query(self) -> Dict[str, str]:
        return self.request.query_params

    @property
    def headers(self) -> Dict[str, str]:
        return self.request.headers.to_dict()

    async def body(self) -> Any:
        """
        Parse the body for POST/PUT/PATCH with a JSON or urlencoded
        content type. Parse failures are logged and yield None.
        """
        if self._body_loaded:
            return self._body
        self._body_loaded = True

        if self.request.method.upper() not in BODY_METHODS:
            return None

        content_type = self.request.content_type()
        if content_type is None:
            return None

        try:
            if content_type.is_json:
                self._body = await self.request.json()
            elif content_type.is_form:
                self._body = await self.request.form()
        except Exception as exc:
            logger.warning(
                "Failed to parse %s body for %s %s: %s",
                content_type.media_type, self.request.method, self.request.path, exc,
            )
            self._body = None
        return self._body


def _select(table: Any, key: Optional[str]) -> Any:
    if key is None:
        return table
    if isinstance(table, dict):
        return table.get(key)
    return None


class ParamResolver:
    """
    Extracts and transforms every bound argument of a handler.

    Returns the positional argument list for the handler call.
    """

    def __init__(self, pipe_executor: Optional[PipeExecutor] = None):
        self.pipe_executor = pipe_executor or PipeExecutor()

    async def resolve(
        self,
        record: "HandlerRecord",
        context: ExecutionContext,
        global_pipes: Sequence[Component] = (),
        controller_pipes: Sequence[Component] = (),
    ) -> List[Any]:
        request = context.get_request()
        data = RequestData(request)
        args: List[Any] = [request] * record.arity
        scoped_pipes = (*global_pipes, *controller_pipes, *record.pipes)

        for binding in record.params:
            value = await self._extract(binding, data, context)
            if binding.kind in (ParamKind.REQUEST, ParamKind.RESPONSE):
                args[binding.index] = value
                continue
            pipes = (*scoped_pipes, *binding.pipes)
            if pipes:
                metadata = ArgumentMetadata(
                    type=binding.kind,
                    metatype=binding.declared_type,
                    data=binding.key,
                )
                value = await self.pipe_executor.run(value, pipes, metadata)
            args[binding.index] = value

        return args

    async def _extract(self, binding, data: RequestData, context: ExecutionContext) -> Any:
        kind = binding.kind
        if kind is ParamKind.PATH:
            return _select(data.path, binding.key)
        if kind is ParamKind.QUERY:
            return _select(data.query, binding.key)
        if kind is ParamKind.BODY:
            return _select(await data.body(), binding.key)
        if kind is ParamKind.HEADERS:
            return _select(data.headers, binding.key)
        if kind is ParamKind.REQUEST:
            return data.request
        if kind is ParamKind.RESPONSE:
            return context.get_response()
        if kind is ParamKind.CUSTOM:
            value = binding.factory(binding.key, context)
            if inspect.isawaitable(value):
                value = await value
            return value
        raise ValueError(f"Unknown parameter kind {kind!r}")
