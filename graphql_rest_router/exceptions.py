"""
Exception hierarchy for graphql_rest_router.

Configuration errors are raised while routes are being built and mounted.
Transport errors are raised by the upstream transport and are always caught
and classified at the route dispatch boundary.
"""

from __future__ import annotations

from typing import Any, List, Optional


class GraphQLRestRouterError(Exception):
    """
    Base exception for all router errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = kwargs


class ConfigurationError(GraphQLRestRouterError):
    """
    Raised when a route or router is configured incorrectly.

    Configuration errors are fatal: they surface at construction or mount
    time and the offending route must not accept traffic.
    """

    pass


class MissingSchemaError(ConfigurationError):
    """Raised when a route or router is built without a GraphQL document."""

    pass


class OperationNotFoundError(ConfigurationError):
    """Raised when the requested operation does not exist in the document."""

    def __init__(self, message: str, operation_name: Optional[str] = None) -> None:
        super().__init__(message, operation_name=operation_name)
        self.operation_name = operation_name


class UnknownOptionError(ConfigurationError):
    """Raised when a route option name is not recognised."""

    def __init__(self, message: str, option: str, known_options: Optional[List[str]] = None) -> None:
        super().__init__(message, option=option)
        self.option = option
        self.known_options = known_options or []


class RouterNotMountedError(ConfigurationError):
    """Raised when a mountable module needs its router before being mounted."""

    pass


class TransportError(GraphQLRestRouterError):
    """
    Raised for generic upstream transport failures.

    Covers connection refusals, DNS failures and any other failure that
    prevents a response from being received. Mapped to HTTP 500.
    """

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, endpoint=endpoint, **kwargs)
        self.endpoint = endpoint


class UpstreamTimeoutError(TransportError):
    """
    Raised when the upstream request exceeds the configured timeout.

    The message always contains the word "timeout". Mapped to HTTP 504.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, endpoint=endpoint, timeout_value=timeout_value)
        self.timeout_value = timeout_value


class UpstreamResponseError(TransportError):
    """
    Raised when the GraphQL endpoint answers with a non-2xx status.

    The upstream status and payload are passed through to the caller.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        response_data: Any = None,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(message, endpoint=endpoint, status_code=status_code)
        self.status_code = status_code
        self.response_data = response_data
