#!/usr/bin/env python3
"""
Command-line interface for graphql_rest_router.

``graphql-rest-router serve`` runs a service described by a config file,
``graphql-rest-router routes`` prints the routes it would expose.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from aiohttp import web

from ._version import __version__
from .cache import InMemoryCache, RedisCache
from .config import build_router, load_config
from .exceptions import GraphQLRestRouterError
from .log import setup_logging
from .models import LogLevel
from .route import Route
from .router import Router

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="graphql-rest-router",
        description="Expose GraphQL operations as REST endpoints",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Serve the configured routes")
    serve.add_argument("-c", "--config", type=Path, required=True, help="Service config file (YAML or JSON)")
    serve.add_argument("--host", help="Listen address (overrides config)")
    serve.add_argument("-p", "--port", type=int, help="Listen port (overrides config)")
    serve.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=LogLevel.INFO.value,
        type=str.upper,
        help="Log level (default: INFO)",
    )
    serve.add_argument("--structured-logs", action="store_true", help="Emit JSON log records")
    serve.set_defaults(func=serve_command)

    routes = subparsers.add_parser("routes", help="Print the configured routes")
    routes.add_argument("-c", "--config", type=Path, required=True, help="Service config file (YAML or JSON)")
    routes.set_defaults(func=routes_command)

    return parser


def format_routes(router: Router) -> List[str]:
    """One line per dispatch table entry, in dispatch order."""
    lines = []

    for item in (*router.modules, *router.routes):
        target = item.operation_name if isinstance(item, Route) else type(item).__name__
        lines.append(f"{item.http_method.upper():<7} {item.path:<40} {target}")

    return lines


def build_app(router: Router) -> web.Application:
    """Build the aiohttp application and tie the cache lifecycle to it."""
    app = router.as_aiohttp_app()
    cache = router.config.cache_engine

    if isinstance(cache, InMemoryCache):

        async def start_sweeper(_: web.Application) -> None:
            cache.start()

        async def stop_sweeper(_: web.Application) -> None:
            await cache.stop()

        app.on_startup.append(start_sweeper)
        app.on_cleanup.append(stop_sweeper)

    elif isinstance(cache, RedisCache):

        async def close_redis(_: web.Application) -> None:
            await cache.close()

        app.on_cleanup.append(close_redis)

    return app


def serve_command(args: argparse.Namespace) -> int:
    setup_logging(args.log_level, structured=args.structured_logs)

    config = load_config(args.config)
    router = build_router(config)

    host = args.host or config.host
    port = args.port or config.port

    logger.info("Serving %d route(s) for %s on port %s", len(router.routes), config.endpoint, port)
    web.run_app(build_app(router), host=host, port=port, print=None)

    return 0


def routes_command(args: argparse.Namespace) -> int:
    router = build_router(load_config(args.config))

    for line in format_routes(router):
        print(line)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except GraphQLRestRouterError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
