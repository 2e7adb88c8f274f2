"""
GraphQL backed REST routes.

A :class:`Route` owns the configuration of one GraphQL operation exposed as
an HTTP endpoint. Configuration is changed through chainable calls; the
route is exported as a dispatch function by :meth:`Route.as_dispatcher`,
which captures an immutable :class:`RouteSnapshot` at that moment.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from graphql import DocumentNode, print_ast

from .cache import CacheEngine, cache_get, cache_set, fingerprint
from .exceptions import ConfigurationError, UnknownOptionError, UpstreamResponseError, UpstreamTimeoutError
from .models import (
    GraphQLRequest,
    LogLevel,
    OperationVariable,
    RequestTransform,
    ResponseTransform,
    RouteOptions,
    RouteResponse,
)
from .mountable import Dispatcher, MountableItem
from .operation import Schema, build_optimized_document, find_operation, get_operation_variables, parse_document
from .transforms import apply_request_transforms, apply_response_transforms
from .transport import GraphQLTransport
from .variables import (
    AssemblyResult,
    assemble,
    body_variables,
    clean_path,
    coerce_all,
    path_variables,
    query_variables,
    required_variables,
)

MISSING_VARIABLES_ERROR = "Missing Variables"
MISSING_VARIABLES_STATUS = 400


def _is_timeout(error: Exception) -> bool:
    return isinstance(error, UpstreamTimeoutError) or "timeout" in str(error).lower()


@dataclass(frozen=True)
class RouteSnapshot:
    """
    Immutable view of a route's configuration.

    Dispatching always goes through a snapshot so that configuration changes
    made on the route after export never reach in-flight or exported
    dispatchers.
    """

    operation_name: Optional[str]
    path: str
    http_method: str
    document: str
    operation_variables: Mapping[str, OperationVariable]
    default_variables: Mapping[str, Any]
    static_variables: Mapping[str, Any]
    cache_time_in_ms: int
    cache_engine: Optional[CacheEngine]
    pass_through_headers: Tuple[str, ...]
    cache_key_headers: Tuple[str, ...]
    transform_request: Tuple[RequestTransform, ...]
    transform_response: Tuple[ResponseTransform, ...]
    transport: GraphQLTransport
    logger: logging.Logger

    @property
    def caching_enabled(self) -> bool:
        return self.cache_time_in_ms > 0 and self.cache_engine is not None

    def filter_headers(self, headers: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep only allow-listed pass-through headers; names must be lower-case."""
        return {name: headers[name] for name in self.pass_through_headers if name in headers}

    def collect_variables(
        self,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Dict[str, Any]:
        """
        Merge raw inputs into provided variables.

        Path and query values are coerced to their declared types. GET
        routes ignore the body and other methods ignore the query string.
        Later sources win: query, then path, then body.
        """
        provided: Dict[str, Any] = {}

        if self.http_method == "get":
            provided.update(coerce_all(query_params or {}, self.operation_variables))

        provided.update(coerce_all(path_params or {}, self.operation_variables))

        if self.http_method != "get" and isinstance(body, Mapping):
            provided.update(body)

        return provided

    def assemble(self, provided: Mapping[str, Any]) -> AssemblyResult:
        result = assemble(provided, self.operation_variables, self.default_variables, self.static_variables)

        if result.discarded:
            self.logger.warning(
                "%s received the following restricted variables with the request that will be ignored: %s",
                self.path,
                ", ".join(result.discarded),
            )

        return result

    async def dispatch(
        self,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, Any]] = None,
    ) -> RouteResponse:
        """
        Handle one inbound request.

        Never raises: validation failures, cache failures and transport
        failures are all turned into a :class:`RouteResponse`.
        """
        result = self.assemble(self.collect_variables(path_params, query_params, body))

        if not result.is_valid:
            return RouteResponse(
                status_code=MISSING_VARIABLES_STATUS,
                body={"error": MISSING_VARIABLES_ERROR, "missingVariables": result.missing},
            )

        inbound_headers = {str(name).lower(): value for name, value in (headers or {}).items()}
        forwarded_headers = self.filter_headers(inbound_headers)

        cache_key = None
        if self.caching_enabled:
            cache_key = fingerprint(self.path, result.variables, inbound_headers, self.cache_key_headers)
            cached = await self._read_cache(cache_key)
            if cached is not None:
                return cached

        response = await self.request(result.variables, forwarded_headers)

        if cache_key is not None and response.status_code < 300 and not _has_errors(response.body):
            await self._write_cache(cache_key, response.body)

        return response

    async def request(self, variables: Dict[str, Any], headers: Optional[Dict[str, Any]] = None) -> RouteResponse:
        """Send the operation upstream and classify the outcome."""
        self.logger.info(
            "Incoming request on %s at %s, request variables: %s",
            self.operation_name,
            self.path,
            json.dumps(variables, default=str),
            extra={"http_method": self.http_method.upper(), "route": self.path},
        )

        request = GraphQLRequest(
            document=self.document,
            variables=variables,
            operation_name=self.operation_name,
            headers=dict(headers or {}),
        )

        try:
            payload = apply_request_transforms(self.transform_request, request.to_payload(), request.headers)
            response = await self.transport.send(request, payload)
            data = apply_response_transforms(self.transform_response, response.data, response.headers)
        except UpstreamResponseError as e:
            self.logger.error("Upstream responded with status %s on %s: %s", e.status_code, self.path, e.message)
            return RouteResponse(status_code=e.status_code, body=e.response_data)
        except Exception as e:
            self.logger.error("Request on %s failed: %s", self.path, e, exc_info=True)
            return RouteResponse(status_code=504 if _is_timeout(e) else 500, body={"error": str(e)})

        if isinstance(data, Mapping):
            for error in data.get("errors") or ():
                self.logger.error("Error in GraphQL response: %s", json.dumps(error, default=str))

        return RouteResponse(status_code=response.status, body=data)

    async def _read_cache(self, key: str) -> Optional[RouteResponse]:
        try:
            cached = await cache_get(self.cache_engine, key)
        except Exception as e:
            self.logger.error("Cache read failed on %s: %s", self.path, e)
            return None

        if cached is None:
            return None

        try:
            body = json.loads(cached)
        except (TypeError, ValueError) as e:
            self.logger.error("Discarding unreadable cache entry on %s: %s", self.path, e)
            return None

        self.logger.debug("Cache hit on %s", self.path)
        return RouteResponse(status_code=200, body=body)

    async def _write_cache(self, key: str, body: Any) -> None:
        try:
            await cache_set(self.cache_engine, key, json.dumps(body), self.cache_time_in_ms)
        except Exception as e:
            self.logger.error("Cache write failed on %s: %s", self.path, e)


def _has_errors(body: Any) -> bool:
    return isinstance(body, Mapping) and bool(body.get("errors"))


class Route(MountableItem):
    """
    A GraphQL operation exposed as a REST endpoint.

    The operation's variables are derived from the document when the route
    is built; an unknown operation fails immediately. Every other setting
    can be changed with chainable calls or option names.

    Examples:
        ```python
        route = (
            Route(schema, "GetUserById", transport=transport)
            .at("/user/:id")
            .as_("get")
            .with_options({"cache_time_in_ms": 5000})
        )
        response = await route.dispatch(path_params={"id": "7"})
        ```
    """

    def __init__(
        self,
        schema: Schema,
        operation_name: Optional[str] = None,
        transport: Optional[GraphQLTransport] = None,
        logger: Optional[logging.Logger] = None,
        optimize_query_request: bool = False,
        **options: Any,
    ):
        """
        Initialize a route.

        Args:
            schema: GraphQL document text or parsed document
            operation_name: Operation to expose; the sole operation if omitted
            transport: Upstream transport used by dispatch
            logger: Parent logger for the route logger
            optimize_query_request: Send only this operation and its fragments
            **options: Route options, see :class:`~graphql_rest_router.models.RouteOptions`

        Raises:
            MissingSchemaError: If no document is given
            OperationNotFoundError: If the operation does not exist
            UnknownOptionError: If an option name is not recognised
        """
        self.schema: DocumentNode = parse_document(schema)
        operation = find_operation(self.schema, operation_name)

        self.operation_name = operation.name.value if operation.name else operation_name
        self.operation_variables = MappingProxyType(get_operation_variables(operation))
        self.transport = transport

        if optimize_query_request:
            self.document = print_ast(build_optimized_document(self.schema, operation_name))
        else:
            self.document = print_ast(self.schema)

        parent = logger or logging.getLogger(__name__)
        self.logger = parent.getChild(self.operation_name or "anonymous")

        self.path = clean_path(self.operation_name or "")
        self.http_method = "get"
        self.default_variables: Dict[str, Any] = {}
        self.static_variables: Dict[str, Any] = {}
        self.cache_time_in_ms = 0
        self.cache_engine: Optional[CacheEngine] = None
        self.pass_through_headers: List[str] = []
        self.cache_key_headers: List[str] = []
        self.transform_request_fns: List[RequestTransform] = []
        self.transform_response_fns: List[ResponseTransform] = []

        self.with_options(options)

    def __repr__(self) -> str:
        return f"Route({self.operation_name!r}, {self.http_method.upper()} {self.path})"

    def _option_setters(self) -> Dict[str, Callable[[Any], Any]]:
        return {
            "path": self.at,
            "method": self.as_,
            "default_variables": self.set_default_variables,
            "static_variables": self.set_static_variables,
            "cache_time_in_ms": self.set_cache_time,
            "cache_engine": self.set_cache_engine,
            "pass_through_headers": self._allow_pass_through_headers,
            "cache_key_headers": self._include_headers_in_cache_key,
            "log_level": self.set_log_level,
            "transform_request": self._add_request_transforms,
            "transform_response": self._add_response_transforms,
        }

    def with_option(self, name: str, value: Any) -> "Route":
        """
        Apply a single named option. ``None`` values are ignored.

        Raises:
            UnknownOptionError: If ``name`` is not a route option
        """
        setters = self._option_setters()

        if name not in setters:
            raise UnknownOptionError(
                f'Unknown route option "{name}"', option=name, known_options=list(setters)
            )

        if value is not None:
            setters[name](value)

        return self

    def with_options(self, options: Union[RouteOptions, Mapping[str, Any], None] = None) -> "Route":
        """Apply several options; applying the same options twice is a no-op."""
        if isinstance(options, RouteOptions):
            options = {name: getattr(options, name) for name in options.model_fields_set}

        for name, value in (options or {}).items():
            self.with_option(name, value)

        return self

    def at(self, path: str) -> "Route":
        self.path = clean_path(path)
        return self

    def as_(self, http_method: str) -> "Route":
        self.http_method = http_method.lower()
        return self

    def set_default_variables(self, variables: Mapping[str, Any]) -> "Route":
        self.default_variables = dict(variables)
        return self

    def set_static_variables(self, variables: Mapping[str, Any]) -> "Route":
        self.static_variables = dict(variables)
        return self

    def set_cache_time(self, cache_time_in_ms: int) -> "Route":
        if cache_time_in_ms < 0:
            raise ConfigurationError("cache_time_in_ms must not be negative")
        self.cache_time_in_ms = cache_time_in_ms
        return self

    def set_cache_engine(self, cache_engine: CacheEngine) -> "Route":
        self.cache_engine = cache_engine
        return self

    def disable_cache(self) -> "Route":
        self.cache_time_in_ms = 0
        return self

    def allow_pass_through_header(self, header: str) -> "Route":
        header = header.lower()
        if header not in self.pass_through_headers:
            self.pass_through_headers.append(header)
        return self

    def include_header_in_cache_key(self, header: str) -> "Route":
        header = header.lower()
        if header not in self.cache_key_headers:
            self.cache_key_headers.append(header)
        return self

    def _allow_pass_through_headers(self, headers: List[str]) -> None:
        for header in headers:
            self.allow_pass_through_header(header)

    def _include_headers_in_cache_key(self, headers: List[str]) -> None:
        for header in headers:
            self.include_header_in_cache_key(header)

    def transform_request(self, fn: RequestTransform) -> "Route":
        if fn not in self.transform_request_fns:
            self.transform_request_fns.append(fn)
        return self

    def transform_response(self, fn: ResponseTransform) -> "Route":
        if fn not in self.transform_response_fns:
            self.transform_response_fns.append(fn)
        return self

    def _add_request_transforms(self, fns: List[RequestTransform]) -> None:
        for fn in fns:
            self.transform_request(fn)

    def _add_response_transforms(self, fns: List[ResponseTransform]) -> None:
        for fn in fns:
            self.transform_response(fn)

    def set_log_level(self, log_level: Union[LogLevel, str]) -> "Route":
        self.logger.setLevel(LogLevel(log_level).to_logging_level())
        return self

    @property
    def path_variables(self) -> List[OperationVariable]:
        return path_variables(self.path, self.operation_variables)

    @property
    def query_variables(self) -> List[OperationVariable]:
        return query_variables(self.path, self.http_method, self.operation_variables)

    @property
    def body_variables(self) -> List[OperationVariable]:
        return body_variables(self.path, self.http_method, self.operation_variables)

    @property
    def required_variables(self) -> List[str]:
        return required_variables(self.operation_variables)

    def snapshot(self) -> RouteSnapshot:
        """
        Freeze the current configuration.

        Raises:
            ConfigurationError: If the route has no transport
        """
        if self.transport is None:
            raise ConfigurationError(f"{self!r} needs a transport before it can dispatch")

        return RouteSnapshot(
            operation_name=self.operation_name,
            path=self.path,
            http_method=self.http_method,
            document=self.document,
            operation_variables=self.operation_variables,
            default_variables=MappingProxyType(dict(self.default_variables)),
            static_variables=MappingProxyType(dict(self.static_variables)),
            cache_time_in_ms=self.cache_time_in_ms,
            cache_engine=self.cache_engine,
            pass_through_headers=tuple(self.pass_through_headers),
            cache_key_headers=tuple(self.cache_key_headers),
            transform_request=tuple(self.transform_request_fns),
            transform_response=tuple(self.transform_response_fns),
            transport=self.transport,
            logger=self.logger,
        )

    def as_dispatcher(self) -> Dispatcher:
        """Export the route; later configuration changes are not seen by the result."""
        return self.snapshot().dispatch

    async def dispatch(
        self,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, Any]] = None,
    ) -> RouteResponse:
        """Dispatch against the route's current configuration."""
        return await self.snapshot().dispatch(path_params, query_params, body, headers)
