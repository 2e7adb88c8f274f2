"""
aiohttp.web adapter.

Turns dispatch functions into ``aiohttp.web`` handlers and dispatch tables
into applications.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional

from aiohttp import web

from ..mountable import DispatchEntry, Dispatcher
from ..variables import PATH_VARIABLES_REGEX

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def to_aiohttp_path(path: str) -> str:
    """Translate ``:name`` placeholders to aiohttp's ``{name}`` syntax."""
    return PATH_VARIABLES_REGEX.sub(r"{\1}", path)


def as_aiohttp_handler(dispatch: Dispatcher) -> Handler:
    """Wrap a dispatch function as an aiohttp request handler."""

    async def handler(request: web.Request) -> web.StreamResponse:
        body = None
        if request.method != "GET" and request.can_read_body:
            try:
                body = await request.json()
            except ValueError:
                return web.json_response({"error": "Request body must be valid JSON"}, status=400)

        headers = {name.lower(): value for name, value in request.headers.items()}
        response = await dispatch(dict(request.match_info), dict(request.query), body, headers)

        return web.json_response(response.body, status=response.status_code)

    return handler


def build_application(
    entries: Iterable[DispatchEntry],
    app: Optional[web.Application] = None,
    on_cleanup: Optional[Callable[[web.Application], Awaitable[None]]] = None,
) -> web.Application:
    """
    Register every dispatch entry on an aiohttp application.

    Args:
        entries: Dispatch table, registered in order
        app: Existing application to extend
        on_cleanup: Callback run when the application shuts down
    """
    app = app if app is not None else web.Application()

    for entry in entries:
        path = to_aiohttp_path(entry.path)
        app.router.add_route(entry.http_method.upper(), path, as_aiohttp_handler(entry.dispatch))
        logger.info("Registered %s %s", entry.http_method.upper(), path)

    if on_cleanup is not None:
        app.on_cleanup.append(on_cleanup)

    return app
