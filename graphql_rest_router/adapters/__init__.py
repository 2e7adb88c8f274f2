"""HTTP framework adapters."""

from .aiohttp import as_aiohttp_handler, build_application, to_aiohttp_path

__all__ = ["as_aiohttp_handler", "build_application", "to_aiohttp_path"]
