"""
Session store on top of the cache store.
"""

from typing import Any, Optional

from shared.logging import get_logger

from ..store.cache_store import CacheStore, TTL, ttl_seconds
from ..store.results import CacheResult

SESSION_PREFIX = "session:"
SESSION_TTL = 86400  # 24 hours


class SessionStore:
    """Sessions live under ``session:<id>`` with a long TTL.

    Reads never extend the TTL; callers renew by setting the session again.
    """

    def __init__(self, store: CacheStore, *, ttl: TTL = SESSION_TTL):
        self.store = store
        self.ttl = ttl_seconds(ttl)
        self.logger = get_logger("cache.sessions")

    def _key(self, session_id: str) -> str:
        return f"{SESSION_PREFIX}{session_id}"

    async def set_session(self, session_id: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        result = await self.store.set(self._key(session_id), data, self.ttl if ttl is None else ttl)
        if result:
            self.logger.debug("Session stored", session_id=session_id)
        return result

    async def get_session(self, session_id: str) -> CacheResult:
        return await self.store.get(self._key(session_id))

    async def delete_session(self, session_id: str) -> CacheResult:
        result = await self.store.delete(self._key(session_id))
        if result:
            self.logger.debug("Session deleted", session_id=session_id)
        return result
