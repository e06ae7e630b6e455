"""
Channel broker for publish/subscribe.
"""

from typing import Any, Dict, Optional, Set, TYPE_CHECKING

from redis.exceptions import RedisError

from shared.errors import SerializationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..connection.state import CONNECTIVITY_ERRORS
from ..store.results import CacheResult
from ..store.serializer import JsonSerializer
from .subscription import MessageCallback, Subscription

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..connection.manager import RedisConnectionManager


class PubSubBroker:
    """Publishes JSON messages and tracks live subscriptions."""

    def __init__(
        self,
        connection: "RedisConnectionManager",
        *,
        serializer: Optional[JsonSerializer] = None,
        queue_size: int = 1000,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.connection = connection
        self.serializer = serializer or JsonSerializer()
        self.queue_size = queue_size
        self.metrics = metrics
        self.logger = get_logger("cache.pubsub.broker")

        self.subscriptions: Dict[str, Subscription] = {}
        self.channel_subscriptions: Dict[str, Set[str]] = {}  # channel -> subscription_ids

    async def publish(self, channel: str, message: Any) -> CacheResult:
        """Broadcast ``message``; the OK value is the number of receivers."""
        try:
            payload = self.serializer.dumps(message)
        except SerializationError as e:
            self.logger.error("Message not serializable", channel=channel, error=e.message)
            return CacheResult.error()

        result = await self.connection.execute(
            "publish", lambda client: client.publish(channel, payload), write=True, channel=channel
        )
        if result:
            self.logger.debug("Message published", channel=channel, receivers=result.value)
            if self.metrics:
                self.metrics.increment_counter("pubsub_messages_total", channel=channel, direction="published")
        return result

    async def subscribe(self, channel: str, callback: Optional[MessageCallback] = None) -> CacheResult:
        """Open a subscription on a dedicated connection; OK value is the handle."""
        if not self.connection.is_ready:
            self.logger.warning("Store not ready, skipping subscribe", channel=channel)
            return CacheResult.unavailable()

        subscription = Subscription(
            channel,
            self.connection.client.pubsub(),
            serializer=self.serializer,
            callback=callback,
            queue_size=self.queue_size,
            on_close=self._forget,
            metrics=self.metrics,
        )

        try:
            await subscription.start()
        except CONNECTIVITY_ERRORS as e:
            self.connection.report_failure(e)
            self.logger.warning("Subscribe failed", channel=channel, error=str(e))
            await subscription.close()
            return CacheResult.unavailable()
        except RedisError as e:
            self.logger.error("Subscribe rejected", channel=channel, error=str(e))
            await subscription.close()
            return CacheResult.error()

        self.subscriptions[subscription.subscription_id] = subscription
        self.channel_subscriptions.setdefault(channel, set()).add(subscription.subscription_id)

        self.logger.info(
            "Subscription created",
            subscription_id=subscription.subscription_id,
            channel=channel,
            subscriber_count=len(self.channel_subscriptions[channel])
        )
        return CacheResult.ok(subscription)

    def _forget(self, subscription: Subscription) -> None:
        self.subscriptions.pop(subscription.subscription_id, None)
        ids = self.channel_subscriptions.get(subscription.channel)
        if ids is not None:
            ids.discard(subscription.subscription_id)
            if not ids:
                del self.channel_subscriptions[subscription.channel]

    async def close_all(self) -> int:
        """Close every live subscription."""
        subscriptions = list(self.subscriptions.values())
        for subscription in subscriptions:
            await subscription.close()

        if subscriptions:
            self.logger.info("Closed all subscriptions", count=len(subscriptions))
        return len(subscriptions)

    def get_subscription_stats(self) -> Dict[str, Any]:
        """Subscription statistics."""
        return {
            "total_subscriptions": len(self.subscriptions),
            "total_channels": len(self.channel_subscriptions),
            "channels": {
                channel: len(ids) for channel, ids in self.channel_subscriptions.items()
            }
        }
