"""
Router for GraphQL backed REST routes.

The router owns the shared GraphQL document, the upstream transport and the
global configuration. Routes and modules mounted on it are collected into a
single dispatch table that HTTP adapters serve.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from aiohttp import web

from .adapters.aiohttp import build_application
from .exceptions import ConfigurationError
from .models import RouteOptions, RouterConfig
from .mountable import DispatchEntry, Module, MountableItem, MountTarget, Operation
from .operation import Schema, parse_document
from .route import Route
from .transport import AiohttpTransport, GraphQLTransport

logger = logging.getLogger(__name__)


def as_mount_target(target: Union[MountTarget, str, MountableItem]) -> MountTarget:
    """Wrap operation names and modules in their mount target variant."""
    if isinstance(target, (Operation, Module)):
        return target
    if isinstance(target, str):
        return Operation(target)
    if isinstance(target, MountableItem):
        return Module(target)

    raise ConfigurationError(f"Cannot mount {target!r}: expected an operation name or a mountable item")


class Router:
    """
    Collection of REST routes backed by one GraphQL endpoint.

    Examples:
        ```python
        async with Router("https://api.example.com/graphql", schema) as router:
            router.mount("GetUserById").at("/user/:id")
            router.mount("CreateUser", {"path": "/user", "method": "post"})
            router.mount(OpenApiV3(title="Users", version="1.0.0"))

            web.run_app(router.as_aiohttp_app())
        ```
    """

    def __init__(
        self,
        endpoint: str,
        schema: Schema,
        config: Union[RouterConfig, Mapping[str, Any], None] = None,
        transport: Optional[GraphQLTransport] = None,
    ):
        """
        Initialize router.

        Args:
            endpoint: Upstream GraphQL endpoint URL
            schema: GraphQL document holding every operation to expose
            config: Global configuration
            transport: Custom transport; an aiohttp transport is built by default

        Raises:
            MissingSchemaError: If no document is given
        """
        self.endpoint = endpoint
        self.config = config if isinstance(config, RouterConfig) else RouterConfig(**(config or {}))
        self.schema = parse_document(schema)
        self.transport = transport or AiohttpTransport(
            endpoint,
            headers=self.config.headers,
            timeout_in_ms=self.config.default_timeout_in_ms,
            auth=self.config.auth,
            proxy=self.config.proxy,
        )

        self.routes: List[Route] = []
        self.modules: List[MountableItem] = []

    def mount(
        self,
        target: Union[MountTarget, str, MountableItem],
        options: Union[RouteOptions, Mapping[str, Any], None] = None,
    ) -> Union[Route, MountableItem]:
        """
        Mount an operation or a module.

        Args:
            target: Operation name, mountable item, or an explicit mount target
            options: Route options (operations) or module options

        Returns:
            The mounted route or module, for further chained configuration
        """
        match as_mount_target(target):
            case Operation(name=name):
                return self.mount_operation(name, options)
            case Module(item=item):
                return self.mount_module(item, options)

    def mount_operation(
        self,
        operation_name: Optional[str],
        options: Union[RouteOptions, Mapping[str, Any], None] = None,
    ) -> Route:
        """
        Build a route for an operation of the router's document.

        Router defaults are merged with ``options``: scalar options replace
        the defaults, header allow-lists are combined.

        Raises:
            OperationNotFoundError: If the operation does not exist
            UnknownOptionError: If an option name is not recognised
        """
        overrides = options if isinstance(options, RouteOptions) else RouteOptions.from_mapping(options)
        route_options = self.config.route_defaults().merge(overrides)

        route = Route(
            self.schema,
            operation_name,
            transport=self.transport,
            logger=self.config.logger,
            optimize_query_request=self.config.optimize_query_request,
        ).with_options(route_options)

        self.routes.append(route)
        logger.debug("Mounted %r", route)

        return route

    def mount_module(self, item: MountableItem, options: Optional[Mapping[str, Any]] = None) -> MountableItem:
        """Configure a module, hand it the router, and add it to the modules."""
        if isinstance(options, RouteOptions):
            options = {name: getattr(options, name) for name in options.model_fields_set}

        item = item.with_options(options)
        item = item.on_mount(self)

        self.modules.append(item)
        logger.debug("Mounted module %s at %s %s", type(item).__name__, item.http_method.upper(), item.path)

        return item

    def dispatch_table(self) -> List[DispatchEntry]:
        """Export every module, then every route, as dispatch entries."""
        return [
            DispatchEntry(path=item.path, http_method=item.http_method, dispatch=item.as_dispatcher())
            for item in (*self.modules, *self.routes)
        ]

    def as_aiohttp_app(self, app: Optional[web.Application] = None) -> web.Application:
        """Serve the dispatch table with ``aiohttp.web``."""
        return build_application(self.dispatch_table(), app=app, on_cleanup=self.close)

    def listen(self, port: int = 8080, host: Optional[str] = None) -> None:
        """Run an aiohttp server until interrupted."""
        web.run_app(self.as_aiohttp_app(), host=host, port=port)

    async def close(self, *_: Any) -> None:
        """Release the transport."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "Router":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
