"""
Redis cache engine.

Uses ``redis.asyncio`` and relies on Redis key expiry for TTL handling.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Asynchronous cache engine backed by Redis.

    Values are written with ``SETEX``. Redis expiry has a one second
    resolution, so TTLs are rounded down to whole seconds with a floor of one.

    Args:
        url: Redis connection URL, used when no client is given
        client: Existing ``redis.asyncio`` client
        key_prefix: Prefix added to every key
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        client: Optional[Any] = None,
        key_prefix: str = "",
    ):
        self.url = url
        self.key_prefix = key_prefix
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = redis.from_url(self.url)
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        value = await self.client.get(self._make_key(key))

        if isinstance(value, bytes):
            return value.decode("utf-8")

        return value

    async def set(self, key: str, value: str, ttl_ms: int = 0) -> None:
        ttl_seconds = max(1, int(ttl_ms // 1000))
        await self.client.setex(self._make_key(key), ttl_seconds, value)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
