"""
Heron Controllers - decorators, compiled metadata and the request engine.
"""

from .decorators import (
    module,
    controller,
    RouteDecorator,
    GET,
    POST,
    PUT,
    PATCH,
    DELETE,
    OPTIONS,
    HEAD,
    use_guards,
    use_pipes,
    use_interceptors,
    use_filters,
)
from .metadata import (
    ControllerRecord,
    HandlerRecord,
    MetadataStore,
    ModuleRecord,
    ParamBinding,
    is_controller,
    is_module,
)
from .engine import ControllerEngine

__all__ = [
    "module",
    "controller",
    "RouteDecorator",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
    "HEAD",
    "use_guards",
    "use_pipes",
    "use_interceptors",
    "use_filters",
    "ControllerRecord",
    "HandlerRecord",
    "MetadataStore",
    "ModuleRecord",
    "ParamBinding",
    "is_controller",
    "is_module",
    "ControllerEngine",
]
