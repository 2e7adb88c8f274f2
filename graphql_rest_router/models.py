"""
Data models for graphql_rest_router.

This module defines the operation variable metadata derived from GraphQL
documents, the request/response records exchanged with the upstream
transport, and the pydantic configuration models for routers and routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ._version import __version__
from .exceptions import ConfigurationError, UnknownOptionError

VERSION_HEADER = "x-graphql-rest-router-version"

RequestTransform = Callable[[Dict[str, Any], Dict[str, str]], Dict[str, Any]]
ResponseTransform = Callable[[Any, Dict[str, str]], Any]


class LogLevel(str, Enum):
    """Route logging levels."""

    SILENT = "SILENT"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"

    def to_logging_level(self) -> int:
        """Translate to a standard library logging level."""
        if self is LogLevel.SILENT:
            return logging.CRITICAL + 10
        return getattr(logging, self.value)


@dataclass(frozen=True)
class OperationVariable:
    """A variable declared by a GraphQL operation."""

    name: str
    type: str
    required: bool = False
    is_array: bool = False
    default_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "array": self.is_array,
            "defaultValue": self.default_value,
        }


OperationVariableMap = Dict[str, OperationVariable]


@dataclass
class RouteResponse:
    """HTTP status and JSON body produced by a dispatch."""

    status_code: int
    body: Any = None


@dataclass
class GraphQLRequest:
    """Request sent to the upstream GraphQL endpoint."""

    document: str
    variables: Dict[str, Any] = field(default_factory=dict)
    operation_name: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the JSON payload understood by GraphQL servers."""
        payload: Dict[str, Any] = {
            "query": self.document,
            "variables": dict(self.variables),
        }

        if self.operation_name:
            payload["operationName"] = self.operation_name

        return payload


@dataclass
class TransportResponse:
    """Response received from the upstream GraphQL endpoint."""

    status: int
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


def _lower_unique(headers: Optional[List[str]]) -> List[str]:
    return list(dict.fromkeys(header.lower() for header in headers or []))


class BasicAuthConfig(BaseModel):
    """HTTP basic credentials for the upstream GraphQL endpoint."""

    username: str = Field(description="Basic auth username")
    password: str = Field(default="", description="Basic auth password")


class RouteOptions(BaseModel):
    """
    Per-route configuration.

    Every field is optional so that an instance can describe either a full
    route configuration or a partial override applied on top of router
    defaults with :meth:`merge`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    path: Optional[str] = Field(default=None, description="Route path, ':name' marks a path variable")
    method: Optional[str] = Field(default=None, description="HTTP method")
    default_variables: Optional[Dict[str, Any]] = Field(
        default=None, description="Fallback values that lose to caller input"
    )
    static_variables: Optional[Dict[str, Any]] = Field(
        default=None, description="Values that always override caller input"
    )
    cache_time_in_ms: Optional[int] = Field(default=None, ge=0, description="Cache TTL, 0 disables caching")
    cache_engine: Optional[Any] = Field(default=None, description="Cache engine override")
    pass_through_headers: List[str] = Field(
        default_factory=list, description="Inbound headers forwarded upstream"
    )
    cache_key_headers: List[str] = Field(
        default_factory=list, description="Inbound headers included in the cache fingerprint"
    )
    log_level: Optional[LogLevel] = Field(default=None, description="Route log level")
    transform_request: List[RequestTransform] = Field(default_factory=list)
    transform_response: List[ResponseTransform] = Field(default_factory=list)

    @field_validator("pass_through_headers", "cache_key_headers")
    @classmethod
    def lower_headers(cls, v: List[str]) -> List[str]:
        """Header names are matched case-insensitively."""
        return _lower_unique(v)

    @field_validator("method")
    @classmethod
    def lower_method(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "RouteOptions":
        """
        Build options from a plain mapping.

        Raises:
            UnknownOptionError: If the mapping holds an unrecognised option name
            ConfigurationError: If an option value is invalid
        """
        options = dict(options or {})
        known = list(cls.model_fields)

        for name in options:
            if name not in cls.model_fields:
                raise UnknownOptionError(
                    f'Unknown route option "{name}"', option=name, known_options=known
                )

        try:
            return cls(**options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid route options: {e}", options=sorted(options)) from e

    def merge(self, overrides: "RouteOptions") -> "RouteOptions":
        """
        Return a new instance with ``overrides`` applied on top of this one.

        Scalar fields set on ``overrides`` replace ours. Header allow-lists
        and transform pipelines are concatenated, ours first.
        """
        merged = {name: getattr(self, name) for name in type(self).model_fields}

        for name in overrides.model_fields_set:
            value = getattr(overrides, name)
            if name in ("pass_through_headers", "cache_key_headers"):
                merged[name] = _lower_unique(merged[name] + value)
            elif name in ("transform_request", "transform_response"):
                merged[name] = merged[name] + value
            else:
                merged[name] = value

        return RouteOptions(**merged)


class RouterConfig(BaseModel):
    """Global configuration shared by every route mounted on a router."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    cache_engine: Optional[Any] = Field(default=None, description="Default cache engine")
    default_timeout_in_ms: int = Field(default=10000, gt=0, description="Upstream request timeout")
    default_cache_time_in_ms: int = Field(default=0, ge=0, description="Default cache TTL, 0 disables caching")
    default_log_level: LogLevel = Field(default=LogLevel.ERROR, description="Default route log level")
    optimize_query_request: bool = Field(
        default=False, description="Send only the operation and its fragments upstream"
    )
    headers: Dict[str, str] = Field(
        default_factory=dict, validate_default=True, description="Headers sent with every upstream request"
    )
    pass_through_headers: List[str] = Field(default_factory=list)
    cache_key_headers: List[str] = Field(default_factory=list)
    auth: Optional[BasicAuthConfig] = Field(default=None, description="Upstream basic credentials")
    proxy: Optional[str] = Field(default=None, description="Proxy URL for upstream requests")
    logger: Optional[logging.Logger] = Field(default=None, description="Parent logger for routes")

    @field_validator("headers")
    @classmethod
    def add_version_header(cls, v: Dict[str, str]) -> Dict[str, str]:
        """The version header always wins over user-supplied headers."""
        return {**v, VERSION_HEADER: __version__}

    @field_validator("pass_through_headers", "cache_key_headers")
    @classmethod
    def lower_headers(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)

    def route_defaults(self) -> RouteOptions:
        """Project router-level defaults onto route options."""
        return RouteOptions(
            cache_engine=self.cache_engine,
            cache_time_in_ms=self.default_cache_time_in_ms,
            log_level=self.default_log_level,
            pass_through_headers=self.pass_through_headers,
            cache_key_headers=self.cache_key_headers,
        )
