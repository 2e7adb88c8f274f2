"""
Upstream GraphQL transport.

The transport posts assembled GraphQL requests to the upstream endpoint and
reports failures through the :class:`~graphql_rest_router.exceptions.TransportError`
hierarchy. It does not retry; routes classify the errors it raises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp

from .exceptions import TransportError, UpstreamResponseError, UpstreamTimeoutError
from .models import BasicAuthConfig, GraphQLRequest, TransportResponse

logger = logging.getLogger(__name__)


class GraphQLTransport(Protocol):
    """Anything able to deliver a :class:`GraphQLRequest` upstream."""

    async def send(self, request: GraphQLRequest, payload: Optional[Dict[str, Any]] = None) -> TransportResponse: ...


def _decode_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


class AiohttpTransport:
    """
    GraphQL transport built on an ``aiohttp.ClientSession``.

    The session is created lazily on first use, inside the running event
    loop, and released by :meth:`close`.

    Args:
        endpoint: GraphQL endpoint URL
        headers: Headers sent with every request
        timeout_in_ms: Total request timeout
        auth: Optional basic credentials
        proxy: Optional proxy URL
    """

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_in_ms: int = 10000,
        auth: Optional[BasicAuthConfig] = None,
        proxy: Optional[str] = None,
    ):
        self.endpoint = endpoint
        self.headers = dict(headers or {})
        self.timeout_in_ms = timeout_in_ms
        self.auth = auth
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            auth = None
            if self.auth:
                auth = aiohttp.BasicAuth(self.auth.username, self.auth.password)

            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_in_ms / 1000),
                headers=self.headers,
                auth=auth,
                raise_for_status=False,
            )
        return self._session

    async def send(self, request: GraphQLRequest, payload: Optional[Dict[str, Any]] = None) -> TransportResponse:
        """
        Post a GraphQL request.

        Args:
            request: Request to deliver
            payload: Pre-built JSON payload; built from ``request`` if omitted

        Returns:
            TransportResponse with the raw response text as ``data``

        Raises:
            UpstreamResponseError: If the endpoint answers with a non-2xx status
            UpstreamTimeoutError: If the request times out
            TransportError: For any other transport failure
        """
        session = await self._get_session()
        body = json.dumps(payload if payload is not None else request.to_payload())
        headers = {"content-type": "application/json", **request.headers}

        try:
            async with session.post(self.endpoint, data=body, headers=headers, proxy=self.proxy) as response:
                text = await response.text()
                response_headers = {key.lower(): value for key, value in response.headers.items()}
                status = response.status
        except asyncio.TimeoutError as e:
            raise UpstreamTimeoutError(
                f"timeout of {self.timeout_in_ms}ms exceeded",
                endpoint=self.endpoint,
                timeout_value=self.timeout_in_ms / 1000,
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"GraphQL network error: {e}", endpoint=self.endpoint) from e

        if not 200 <= status < 300:
            raise UpstreamResponseError(
                f"Request failed with status code {status}",
                status_code=status,
                response_data=_decode_body(text),
                endpoint=self.endpoint,
            )

        return TransportResponse(status=status, data=text, headers=response_headers)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "AiohttpTransport":
        await self._get_session()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
