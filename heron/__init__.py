"""
Heron - decorator-driven async web framework core

Complete integration of:
- DI: constructor-based dependency injection with singleton/transient scopes
- Routing: ordered route table with params and wildcards
- Guards, pipes, interceptors and exception filters around every handler
- Middleware: path/method-scoped async middleware from module hooks
- Lifecycle: module and application hooks on providers and controllers
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core Framework
# ============================================================================

from .application import Application, ApplicationFactory, AppContext, CORS_HEADERS
from .config import ApplicationOptions, ConfigLoader, ConfigError, configure_logging
from .request import Request
from .response import Response, Ok, NoContent, NotFound
from .context import ArgumentsHost, ExecutionContext, ResponseState

# ============================================================================
# Controllers
# ============================================================================

from .controller import (
    module,
    controller,
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
    ControllerEngine,
    MetadataStore,
)

# Parameter markers
from .params import (
    Param,
    Query,
    Body,
    Headers,
    Req,
    Res,
    Custom,
    create_param_decorator,
)

# ============================================================================
# Pipeline Components
# ============================================================================

from .components import Component, ComponentKind, Role
from .guards import CanActivate, GuardExecutor, GuardResult
from .pipes import (
    ArgumentMetadata,
    ParamKind,
    PipeTransform,
    ParseIntPipe,
    ParseFloatPipe,
    ParseBoolPipe,
    DefaultValuePipe,
    ValidationPipe,
)
from .interceptors import (
    CallHandler,
    Interceptor,
    LoggingInterceptor,
    CacheInterceptor,
    TransformInterceptor,
)
from .filters import (
    catch,
    ExceptionFilter,
    DefaultExceptionFilter,
    ValidationFaultFilter,
)
from .middleware import (
    MiddlewareConsumer,
    RouteInfo,
    LoggerMiddleware,
    RequestIdMiddleware,
)
from .lifecycle import LifecycleCoordinator, LifecycleError, LifecyclePhase

# ============================================================================
# DI & Routing
# ============================================================================

from .di import (
    Container,
    Inject,
    injectable,
    ServiceScope,
    DIError,
    ProviderNotFoundError,
    DependencyCycleError,
)
from .routing import PathPattern, RouteEntry, RouteTable, combine_paths

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    HttpFault,
    BadRequestFault,
    UnauthorizedFault,
    AccessDeniedFault,
    NotFoundFault,
    ConflictFault,
    InternalServerFault,
    ValidationFault,
)


__all__ = [
    # Core
    "Application",
    "ApplicationFactory",
    "AppContext",
    "CORS_HEADERS",
    "ApplicationOptions",
    "ConfigLoader",
    "ConfigError",
    "configure_logging",
    "Request",
    "Response",
    "Ok",
    "NoContent",
    "NotFound",
    "ArgumentsHost",
    "ExecutionContext",
    "ResponseState",
    # Controllers
    "module",
    "controller",
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
    "ControllerEngine",
    "MetadataStore",
    "Param",
    "Query",
    "Body",
    "Headers",
    "Req",
    "Res",
    "Custom",
    "create_param_decorator",
    # Pipeline components
    "Component",
    "ComponentKind",
    "Role",
    "CanActivate",
    "GuardExecutor",
    "GuardResult",
    "ArgumentMetadata",
    "ParamKind",
    "PipeTransform",
    "ParseIntPipe",
    "ParseFloatPipe",
    "ParseBoolPipe",
    "DefaultValuePipe",
    "ValidationPipe",
    "CallHandler",
    "Interceptor",
    "LoggingInterceptor",
    "CacheInterceptor",
    "TransformInterceptor",
    "catch",
    "ExceptionFilter",
    "DefaultExceptionFilter",
    "ValidationFaultFilter",
    "MiddlewareConsumer",
    "RouteInfo",
    "LoggerMiddleware",
    "RequestIdMiddleware",
    "LifecycleCoordinator",
    "LifecycleError",
    "LifecyclePhase",
    # DI & routing
    "Container",
    "Inject",
    "injectable",
    "ServiceScope",
    "DIError",
    "ProviderNotFoundError",
    "DependencyCycleError",
    "PathPattern",
    "RouteEntry",
    "RouteTable",
    "combine_paths",
    # Faults
    "Fault",
    "FaultDomain",
    "HttpFault",
    "BadRequestFault",
    "UnauthorizedFault",
    "AccessDeniedFault",
    "NotFoundFault",
    "ConflictFault",
    "InternalServerFault",
    "ValidationFault",
]
