"""
Activity log on the store's sorted-set primitive.
"""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from shared.errors import SerializationError
from shared.logging import get_logger

from ..store.results import CacheResult
from ..store.serializer import JsonSerializer

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..connection.manager import RedisConnectionManager


ACTIVITY_PREFIX = "user_activity:"
MAX_ENTRIES = 100
ACTIVITY_TTL = 2592000  # 30 days


@dataclass(frozen=True)
class ActivityEntry:
    """One recorded activity."""
    timestamp: float  # epoch milliseconds
    activity: Any

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)


class ActivityLog:
    """Time-ordered activity per subject, trimmed to the newest entries.

    Every append is sent in one transaction with a trim to ``max_entries``
    and a refresh of the TTL on the whole log. Transactions from two writers
    on one subject still interleave, so the bound holds after each write
    rather than at every instant.
    """

    def __init__(
        self,
        connection: "RedisConnectionManager",
        *,
        max_entries: int = MAX_ENTRIES,
        ttl: int = ACTIVITY_TTL,
        serializer: Optional[JsonSerializer] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.connection = connection
        self.max_entries = max_entries
        self.ttl = ttl
        self.serializer = serializer or JsonSerializer()
        self.clock = clock
        self.logger = get_logger("cache.activity")

    def _key(self, subject_id: str) -> str:
        return f"{ACTIVITY_PREFIX}{subject_id}"

    async def track_activity(self, subject_id: str, activity: Any) -> CacheResult:
        """Append ``activity`` to the subject's log."""
        key = self._key(subject_id)
        timestamp = self.clock() * 1000

        # Members carry a unique id so identical payloads are kept as separate entries.
        try:
            member = self.serializer.dumps({
                "id": uuid.uuid4().hex,
                "timestamp": timestamp,
                "activity": activity,
            })
        except SerializationError as e:
            self.logger.error("Activity not serializable", subject_id=subject_id, error=e.message)
            return CacheResult.error()

        async def _append(client) -> bool:
            async with client.pipeline(transaction=True) as pipeline:
                pipeline.zadd(key, {member: timestamp})
                pipeline.zremrangebyrank(key, 0, -(self.max_entries + 1))
                pipeline.expire(key, self.ttl)
                await pipeline.execute()
            return True

        result = await self.connection.execute("track_activity", _append, write=True, key=key)
        if result:
            self.logger.debug("Activity tracked", subject_id=subject_id)
        return result

    async def get_activity(self, subject_id: str, limit: int = 50) -> CacheResult:
        """Up to ``limit`` most recent entries, newest first."""
        if limit <= 0:
            return CacheResult.ok([])

        key = self._key(subject_id)
        result = await self.connection.execute(
            "get_activity", lambda client: client.zrevrange(key, 0, limit - 1), key=key
        )
        if not result:
            return result

        entries: List[ActivityEntry] = []
        for raw in result.value or []:
            try:
                record = self.serializer.loads(raw)
            except SerializationError:
                self.logger.warning("Skipping malformed activity entry", key=key)
                continue
            if not isinstance(record, dict) or "activity" not in record:
                self.logger.warning("Skipping malformed activity entry", key=key)
                continue
            entries.append(ActivityEntry(timestamp=float(record.get("timestamp", 0)), activity=record["activity"]))

        return CacheResult.ok(entries)
