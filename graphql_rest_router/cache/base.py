"""
Cache engine interface.

A cache engine stores serialized response bodies keyed by request
fingerprint. Engines may implement ``get`` and ``set`` either synchronously
or as coroutines; :func:`cache_get` and :func:`cache_set` accept both.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class CacheEngine(Protocol):
    """Key/value store with per-entry time to live."""

    def get(self, key: str) -> Union[Optional[str], Awaitable[Optional[str]]]: ...

    def set(self, key: str, value: str, ttl_ms: int) -> Union[None, Awaitable[None]]: ...


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def cache_get(engine: CacheEngine, key: str) -> Optional[str]:
    """Read ``key`` from a synchronous or asynchronous engine."""
    return await _resolve(engine.get(key))


async def cache_set(engine: CacheEngine, key: str, value: str, ttl_ms: int) -> None:
    """Write ``key`` to a synchronous or asynchronous engine."""
    await _resolve(engine.set(key, value, ttl_ms))


__all__ = ["CacheEngine", "cache_get", "cache_set"]
