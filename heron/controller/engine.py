"""
Controller Engine - runs one matched route through the request pipeline.

Pipeline:
    ExecutionContext -> guards -> parameters/pipes
        -> interceptors(handler) -> response shaping

Any error raised along the way is handed to the exception filters. The
engine always returns a ``Response``.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, TYPE_CHECKING

from ..context import ExecutionContext, ResponseState
from ..filters import DefaultExceptionFilter, ExceptionFilterExecutor
from ..guards import GuardExecutor, rejection_response
from ..interceptors import InterceptorExecutor
from ..params import ParamResolver
from ..pipes import PipeExecutor
from ..request import Request
from ..response import Response
from ..routing import RouteEntry

if TYPE_CHECKING:
    from ..application import AppContext


logger = logging.getLogger("heron.engine")


class ControllerEngine:
    """
    Executes controller handlers against the application context.

    Scope precedence:
    - guards, pipes, interceptors: global, controller, method
    - exception filters: method, controller, global
    """

    def __init__(self, app_context: "AppContext"):
        self.app = app_context
        self.guards = GuardExecutor()
        self.params = ParamResolver(PipeExecutor())
        self.interceptors = InterceptorExecutor()
        self.filters = ExceptionFilterExecutor(DefaultExceptionFilter(debug=app_context.debug))

    async def execute(self, route: RouteEntry, request: Request) -> Response:
        context = ExecutionContext(request, route.handler, route.controller_class, ResponseState())

        try:
            controller = self.app.metadata.controller(route.controller_class)
            record = self.app.metadata.handler(route.controller_class, route.method_name)
        except (LookupError, TypeError) as exc:
            return await self.filters.execute(exc, self.app.filters, context)

        try:
            guard_result = await self.guards.can_activate(
                (*self.app.guards, *controller.guards, *record.guards),
                context,
            )
            if not guard_result.can_activate:
                return rejection_response(guard_result)

            args = await self.params.resolve(
                record,
                context,
                global_pipes=self.app.pipes,
                controller_pipes=controller.pipes,
            )

            result = await self.interceptors.execute(
                (*self.app.interceptors, *controller.interceptors, *record.interceptors),
                context,
                functools.partial(route.handler, *args),
            )
            return self._to_response(result, context.get_response())

        except Exception as exc:
            return await self.filters.execute(
                exc,
                (*record.filters, *controller.filters, *self.app.filters),
                context,
            )

    @staticmethod
    def _to_response(result: Any, state: ResponseState) -> Response:
        """Convert a handler result to a Response."""
        if isinstance(result, Response):
            return result

        status = state.status_code or 200
        if result is None:
            response = Response.text("OK", status=status)
        elif isinstance(result, str):
            response = Response.text(result, status=status)
        else:
            response = Response.json(result, status=status)

        for name, value in state.headers.items():
            response.set_header(name, value)
        return response
