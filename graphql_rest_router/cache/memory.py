"""
In-process cache engine.

Entries expire lazily on read and are also dropped by :meth:`InMemoryCache.sweep`,
which a background task can run periodically while an event loop is active.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

STORE_EXPIRATION_CHECK_IN_MS = 10


class InMemoryCache:
    """
    Dictionary backed cache engine with TTL expiry.

    ``get`` and ``set`` are synchronous. The periodic sweeper is optional:
    start it with :meth:`start` or by using the cache as an async context
    manager.

    Examples:
        ```python
        async with InMemoryCache(sweep_interval_ms=1000) as cache:
            router = Router(endpoint, schema, {"cache_engine": cache})
        ```
    """

    def __init__(self, sweep_interval_ms: int = STORE_EXPIRATION_CHECK_IN_MS):
        self.sweep_interval_ms = sweep_interval_ms
        self._store: Dict[str, Tuple[str, float]] = {}
        self._sweep_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired."""
        entry = self._store.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= time.time():
            del self._store[key]
            return None

        return value

    def set(self, key: str, value: str, ttl_ms: int = 0) -> None:
        """Store ``value`` for ``ttl_ms`` milliseconds from now."""
        self._store[key] = (value, time.time() + ttl_ms / 1000)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def sweep(self) -> int:
        """
        Drop every expired entry.

        Returns:
            Number of entries removed
        """
        now = time.time()
        expired = [key for key, (_, expires_at) in self._store.items() if expires_at <= now]

        for key in expired:
            del self._store[key]

        return len(expired)

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the background sweeper on the running event loop."""
        if not self.is_sweeping:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.debug("Cache sweeper started (interval %sms)", self.sweep_interval_ms)

    async def stop(self) -> None:
        """Stop the background sweeper."""
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_ms / 1000)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired cache entries", removed)

    async def __aenter__(self) -> "InMemoryCache":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
