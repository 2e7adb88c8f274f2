"""
Response caching for graphql_rest_router.

This package provides the cache engine interface, request fingerprinting
and two engines: an in-process TTL map and a Redis backed store.
"""

from .base import CacheEngine, cache_get, cache_set
from .fingerprint import fingerprint
from .memory import InMemoryCache
from .redis import RedisCache

__all__ = [
    "CacheEngine",
    "cache_get",
    "cache_set",
    "fingerprint",
    "InMemoryCache",
    "RedisCache",
]
