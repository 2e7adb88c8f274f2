"""
Expose GraphQL operations as REST endpoints.

This package binds named operations of a GraphQL document to HTTP routes
and dispatches inbound requests to an upstream GraphQL endpoint.

Features:
- Path, query and body variable binding with type coercion
- Default and static variables, required variable validation
- Response caching keyed by request fingerprint (in-process or Redis)
- Header pass-through allow-lists and transform pipelines
- OpenAPI 2 and 3 documentation modules
- aiohttp transport and aiohttp.web serving
"""

from ._version import __version__
from .cache import CacheEngine, InMemoryCache, RedisCache, fingerprint
from .exceptions import (
    ConfigurationError,
    GraphQLRestRouterError,
    MissingSchemaError,
    OperationNotFoundError,
    RouterNotMountedError,
    TransportError,
    UnknownOptionError,
    UpstreamResponseError,
    UpstreamTimeoutError,
)
from .models import (
    VERSION_HEADER,
    BasicAuthConfig,
    GraphQLRequest,
    LogLevel,
    OperationVariable,
    RouteOptions,
    RouteResponse,
    RouterConfig,
    TransportResponse,
)
from .mountable import DispatchEntry, Module, MountableItem, Operation
from .openapi import OpenApiV2, OpenApiV3
from .operation import build_optimized_document, resolve_operation
from .route import Route, RouteSnapshot
from .router import Router
from .transport import AiohttpTransport, GraphQLTransport
from .variables import assemble, coerce

__all__ = [
    "__version__",
    # Router and routes
    "Router",
    "Route",
    "RouteSnapshot",
    "MountableItem",
    "Operation",
    "Module",
    "DispatchEntry",
    # Models
    "RouterConfig",
    "RouteOptions",
    "RouteResponse",
    "OperationVariable",
    "GraphQLRequest",
    "TransportResponse",
    "BasicAuthConfig",
    "LogLevel",
    "VERSION_HEADER",
    # Operations and variables
    "resolve_operation",
    "build_optimized_document",
    "assemble",
    "coerce",
    # Caching
    "CacheEngine",
    "InMemoryCache",
    "RedisCache",
    "fingerprint",
    # Transport
    "GraphQLTransport",
    "AiohttpTransport",
    # Documentation
    "OpenApiV2",
    "OpenApiV3",
    # Exceptions
    "GraphQLRestRouterError",
    "ConfigurationError",
    "MissingSchemaError",
    "OperationNotFoundError",
    "UnknownOptionError",
    "RouterNotMountedError",
    "TransportError",
    "UpstreamTimeoutError",
    "UpstreamResponseError",
]
