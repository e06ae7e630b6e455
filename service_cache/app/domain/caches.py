"""
Named TTL caches layered on the cache store.
"""

import base64
from typing import Any, Optional

from ..store.cache_store import TTL, CacheStore
from ..store.results import CacheResult

HEALTH_DATA_PREFIX = "health_data:"
HEALTH_DATA_TTL = 1800

COLLECTION_STATS_KEY = "collection_stats"
COLLECTION_STATS_TTL = 300

AI_RESPONSE_PREFIX = "ai_response:"
AI_RESPONSE_TTL = 3600

ANALYTICS_PREFIX = "analytics:"
ANALYTICS_TTL = 600


def ai_response_key(query: str) -> str:
    encoded = base64.b64encode(query.encode("utf-8")).decode("ascii")
    return f"{AI_RESPONSE_PREFIX}{encoded}"


class DomainCaches:
    """Fixed key prefixes and TTLs over ``CacheStore``; no other logic."""

    def __init__(self, store: CacheStore):
        self.store = store

    async def cache_health_data(self, location: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.store.set(f"{HEALTH_DATA_PREFIX}{location}", data, HEALTH_DATA_TTL if ttl is None else ttl)

    async def get_cached_health_data(self, location: str) -> CacheResult:
        return await self.store.get(f"{HEALTH_DATA_PREFIX}{location}")

    async def cache_collection_stats(self, stats: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.store.set(COLLECTION_STATS_KEY, stats, COLLECTION_STATS_TTL if ttl is None else ttl)

    async def get_cached_collection_stats(self) -> CacheResult:
        return await self.store.get(COLLECTION_STATS_KEY)

    async def cache_ai_response(self, query: str, response: Any, ttl: Optional[TTL] = None) -> CacheResult:
        """Memoize an answer keyed by the base64 of the query text."""
        return await self.store.set(ai_response_key(query), response, AI_RESPONSE_TTL if ttl is None else ttl)

    async def get_cached_ai_response(self, query: str) -> CacheResult:
        return await self.store.get(ai_response_key(query))

    async def cache_analytics_data(self, analytics_type: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.store.set(f"{ANALYTICS_PREFIX}{analytics_type}", data, ANALYTICS_TTL if ttl is None else ttl)

    async def get_cached_analytics_data(self, analytics_type: str) -> CacheResult:
        return await self.store.get(f"{ANALYTICS_PREFIX}{analytics_type}")
