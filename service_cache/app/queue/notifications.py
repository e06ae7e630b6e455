"""
FIFO queue of pending outbound notifications.
"""

from typing import Any, Optional, TYPE_CHECKING

from shared.errors import SerializationError
from shared.logging import get_logger

from ..store.results import CacheResult
from ..store.serializer import JsonSerializer

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..connection.manager import RedisConnectionManager


NOTIFICATION_QUEUE = "notification_queue"


class NotificationQueue:
    """Producers push on the left, the single consumer pops on the right.

    Delivery is at most once: a popped item is gone whether or not the
    consumer handles it.
    """

    def __init__(
        self,
        connection: "RedisConnectionManager",
        *,
        name: str = NOTIFICATION_QUEUE,
        serializer: Optional[JsonSerializer] = None,
    ):
        self.connection = connection
        self.name = name
        self.serializer = serializer or JsonSerializer()
        self.logger = get_logger("cache.queue")

    async def enqueue(self, item: Any) -> CacheResult:
        """Push ``item``; the OK value is the new queue length."""
        try:
            payload = self.serializer.dumps(item)
        except SerializationError as e:
            self.logger.error("Notification not serializable", queue=self.name, error=e.message)
            return CacheResult.error()

        return await self.connection.execute(
            "enqueue", lambda client: client.lpush(self.name, payload), write=True, queue=self.name
        )

    async def dequeue(self) -> CacheResult:
        """Pop the oldest item; an empty queue is a miss.

        Malformed items are dropped and the next one is popped.
        """
        while True:
            result = await self.connection.execute(
                "dequeue", lambda client: client.rpop(self.name), queue=self.name
            )
            if not result:
                return result
            if result.value is None:
                return CacheResult.miss()

            try:
                return CacheResult.ok(self.serializer.loads(result.value))
            except SerializationError as e:
                self.logger.error("Dropping malformed notification", queue=self.name, error=e.message)

    async def size(self) -> CacheResult:
        return await self.connection.execute("queue_size", lambda client: client.llen(self.name), queue=self.name)
