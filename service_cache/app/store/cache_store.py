"""
Generic TTL cache over the shared store connection.
"""

from datetime import timedelta
from typing import Any, Optional, TYPE_CHECKING, Union

from shared.errors import SerializationError
from shared.logging import get_logger

from .results import CacheResult
from .serializer import JsonSerializer

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..connection.manager import RedisConnectionManager


DEFAULT_TTL = 3600

TTL = Union[int, timedelta]


def ttl_seconds(ttl: TTL) -> int:
    """Normalize a TTL to whole seconds."""
    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())
    return int(ttl)


class CacheStore:
    """get/set/delete/exists/expire over JSON values with per-key TTLs.

    Writes always carry a positive TTL. A payload that fails to decode is
    reported as a miss.
    """

    def __init__(
        self,
        connection: "RedisConnectionManager",
        *,
        serializer: Optional[JsonSerializer] = None,
        default_ttl: TTL = DEFAULT_TTL,
    ):
        self.connection = connection
        self.serializer = serializer or JsonSerializer()
        self.default_ttl = ttl_seconds(default_ttl)
        self.logger = get_logger("cache.store")

    async def set(self, key: str, value: Any, ttl: Optional[TTL] = None) -> CacheResult:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        seconds = self.default_ttl if ttl is None else ttl_seconds(ttl)
        if seconds <= 0:
            self.logger.error("Refusing cache write without a positive TTL", key=key, ttl=seconds)
            return CacheResult.error()

        try:
            payload = self.serializer.dumps(value)
        except SerializationError as e:
            self.logger.error("Cache value not serializable", key=key, error=e.message)
            return CacheResult.error()

        result = await self.connection.execute(
            "set", lambda client: client.set(key, payload, ex=seconds), write=True, key=key
        )
        if not result:
            return result

        self.logger.debug("Cache set", key=key, ttl=seconds)
        return CacheResult.ok(True)

    async def get(self, key: str) -> CacheResult:
        """Fetch and decode the value under ``key``."""
        result = await self.connection.execute("get", lambda client: client.get(key), key=key)
        if not result:
            return result

        if result.value is None:
            self.logger.debug("Cache miss", key=key)
            return CacheResult.miss()

        try:
            value = self.serializer.loads(result.value)
        except SerializationError as e:
            self.logger.warning("Discarding malformed cache entry", key=key, error=e.message)
            return CacheResult.miss()

        self.logger.debug("Cache hit", key=key)
        return CacheResult.ok(value)

    async def delete(self, key: str) -> CacheResult:
        """Remove ``key``; a missing key is a miss."""
        result = await self.connection.execute(
            "delete", lambda client: client.delete(key), write=True, key=key
        )
        if not result:
            return result

        self.logger.debug("Cache deleted", key=key, removed=result.value)
        return CacheResult.ok(True) if result.value else CacheResult.miss()

    async def exists(self, key: str) -> CacheResult:
        result = await self.connection.execute("exists", lambda client: client.exists(key), key=key)
        if not result:
            return result
        return CacheResult.ok(True) if result.value == 1 else CacheResult.miss()

    async def expire(self, key: str, ttl: TTL) -> CacheResult:
        """Reset the TTL of an existing key."""
        seconds = ttl_seconds(ttl)
        if seconds <= 0:
            self.logger.error("Refusing non-positive TTL", key=key, ttl=seconds)
            return CacheResult.error()

        result = await self.connection.execute(
            "expire", lambda client: client.expire(key, seconds), write=True, key=key
        )
        if not result:
            return result
        return CacheResult.ok(True) if result.value else CacheResult.miss()
