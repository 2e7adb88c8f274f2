"""
Tests for the router: mounting, configuration merging and dispatch tables.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from graphql_rest_router import (
    VERSION_HEADER,
    AiohttpTransport,
    InMemoryCache,
    Module,
    MountableItem,
    Operation,
    Route,
    RouteResponse,
    Router,
    RouterConfig,
    __version__,
)
from graphql_rest_router.exceptions import (
    ConfigurationError,
    MissingSchemaError,
    OperationNotFoundError,
    UnknownOptionError,
)

ENDPOINT = "https://graphql.example.com/graphql"


class EchoModule(MountableItem):
    """Minimal module answering with its mount state."""

    path = "/echo"

    def __init__(self):
        self.mounted_on = None

    def on_mount(self, router):
        self.mounted_on = router
        return self

    def as_dispatcher(self):
        async def dispatch(path_params=None, query_params=None, body=None, headers=None):
            return RouteResponse(status_code=200, body={"echo": dict(query_params or {})})

        return dispatch


class TestRouterConstruction:
    """Test router construction."""

    def test_missing_schema(self):
        """Test that a router needs a document."""
        with pytest.raises(MissingSchemaError):
            Router(ENDPOINT, None)

    def test_default_transport(self, schema):
        """Test the aiohttp transport built from the configuration."""
        router = Router(ENDPOINT, schema, {"default_timeout_in_ms": 2500, "headers": {"x-api-key": "k"}})

        assert isinstance(router.transport, AiohttpTransport)
        assert router.transport.endpoint == ENDPOINT
        assert router.transport.timeout_in_ms == 2500
        assert router.transport.headers["x-api-key"] == "k"
        assert router.transport.headers[VERSION_HEADER] == __version__

    def test_config_defaults(self):
        """Test global configuration defaults."""
        config = RouterConfig()

        assert config.default_timeout_in_ms == 10000
        assert config.default_cache_time_in_ms == 0
        assert config.headers == {VERSION_HEADER: __version__}

    def test_version_header_cannot_be_overridden(self):
        """Test that the version header always carries the library version."""
        config = RouterConfig(headers={VERSION_HEADER: "0.0.0", "x-api-key": "k"})

        assert config.headers[VERSION_HEADER] == __version__
        assert config.headers["x-api-key"] == "k"


class TestMounting:
    """Test mounting operations and modules."""

    def test_mount_operation(self, router):
        """Test mounting an operation with the default path."""
        route = router.mount("GetUserById")

        assert isinstance(route, Route)
        assert route.path == "/GetUserById"
        assert route.transport is router.transport
        assert router.routes == [route]

    def test_mount_with_options(self, router):
        """Test mount options."""
        route = router.mount("CreateUser", {"path": "/user", "method": "POST"})

        assert route.path == "/user"
        assert route.http_method == "post"

    def test_mount_chaining(self, router):
        """Test that the mounted route can be reconfigured."""
        route = router.mount("GetUserById").at("/user/:id").as_("get")

        assert router.routes[0].path == "/user/:id"
        assert route is router.routes[0]

    def test_mount_unknown_operation(self, router):
        """Test that unknown operations fail at mount time."""
        with pytest.raises(OperationNotFoundError):
            router.mount("DeleteUser")

        assert router.routes == []

    def test_mount_unknown_option(self, router):
        """Test that unknown option names fail at mount time."""
        with pytest.raises(UnknownOptionError):
            router.mount("GetUserById", {"cacheTimeInMs": 100})

    def test_mount_invalid_option_value(self, router):
        """Test that invalid option values fail at mount time as configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            router.mount("GetUserById", {"cache_time_in_ms": -1})

        assert "cache_time_in_ms" in exc_info.value.message
        assert router.routes == []

    def test_mount_explicit_targets(self, router):
        """Test the tagged mount targets."""
        module = EchoModule()

        route = router.mount(Operation("GetUserById"))
        mounted = router.mount(Module(module))

        assert isinstance(route, Route)
        assert mounted is module
        assert router.modules == [module]

    def test_mount_invalid_target(self, router):
        """Test that other objects cannot be mounted."""
        with pytest.raises(ConfigurationError):
            router.mount(42)

    def test_mount_module(self, router):
        """Test that modules receive the router and their options."""
        module = router.mount(EchoModule(), {"path": "/ping", "method": "POST"})

        assert module.mounted_on is router
        assert module.path == "/ping"
        assert module.http_method == "post"


class TestConfigurationMerging:
    """Test router defaults merged with mount options."""

    def test_router_defaults_apply(self, schema, transport):
        """Test that routes inherit cache and header defaults."""
        cache = InMemoryCache()
        router = Router(
            ENDPOINT,
            schema,
            {
                "cache_engine": cache,
                "default_cache_time_in_ms": 1000,
                "pass_through_headers": ["Authorization"],
                "cache_key_headers": ["x-tenant"],
            },
            transport=transport,
        )

        route = router.mount("GetUserById", {"pass_through_headers": ["X-Request-Id"]})

        assert route.cache_engine is cache
        assert route.cache_time_in_ms == 1000
        assert route.pass_through_headers == ["authorization", "x-request-id"]
        assert route.cache_key_headers == ["x-tenant"]

    def test_mount_options_override_scalars(self, schema, transport):
        """Test that mount options replace scalar defaults."""
        router = Router(ENDPOINT, schema, {"default_cache_time_in_ms": 1000}, transport=transport)

        route = router.mount("GetUserById", {"cache_time_in_ms": 0})

        assert route.cache_time_in_ms == 0

    def test_default_log_level(self, router):
        """Test that routes log at the router's default level."""
        route = router.mount("GetUserById")

        assert route.logger.level == logging.ERROR

    def test_parent_logger(self, schema, transport):
        """Test that a configured logger parents the route loggers."""
        router = Router(ENDPOINT, schema, {"logger": logging.getLogger("my.app")}, transport=transport)

        route = router.mount("GetUserById")

        assert route.logger.name == "my.app.GetUserById"

    def test_optimize_query_request(self, schema, transport):
        """Test that the optimize flag reaches the routes."""
        router = Router(ENDPOINT, schema, {"optimize_query_request": True}, transport=transport)

        route = router.mount("GetUserById")

        assert "CreateUser" not in route.document


class TestDispatchTable:
    """Test dispatch table export."""

    def test_modules_first(self, router):
        """Test that modules precede routes."""
        router.mount("GetUserById", {"path": "/user/:id"})
        router.mount(EchoModule())

        table = router.dispatch_table()

        assert [(entry.path, entry.http_method) for entry in table] == [("/echo", "get"), ("/user/:id", "get")]

    @pytest.mark.asyncio
    async def test_entries_dispatch(self, router, transport):
        """Test that table entries are callable dispatchers."""
        router.mount("GetUserById", {"path": "/user/:id"})
        router.mount(EchoModule())

        module_entry, route_entry = router.dispatch_table()

        response = await route_entry.dispatch({"id": "7"}, {}, None, {})
        assert response.status_code == 200
        assert transport.call_count == 1

        response = await module_entry.dispatch({}, {"q": "1"}, None, {})
        assert response.body == {"echo": {"q": "1"}}


class TestRouterLifecycle:
    """Test resource release."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, schema):
        """Test that leaving the context closes the transport."""
        transport = AsyncMock()

        async with Router(ENDPOINT, schema, transport=transport):
            pass

        transport.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_without_close_method(self, router):
        """Test closing with a transport that has nothing to release."""
        await router.close()
