"""
Composed cache layer: one connection shared by every component.
"""

import time
from typing import Any, Callable, Dict, Optional

from shared.config import CacheSettings, get_settings
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .activity import ActivityLog
from .connection import RedisConnectionManager
from .domain import DomainCaches
from .pubsub import PubSubBroker
from .queue import NotificationQueue
from .ratelimit import FixedWindowRateLimiter, RateLimitResult
from .sessions import SessionStore
from .store import CacheResult, CacheStore, JsonSerializer
from .store.cache_store import TTL


class CacheService:
    """In-process call surface of the caching and coordination layer.

    Owns the connection manager; the components borrow it. No method raises
    because the store is down: every outcome comes back as a ``CacheResult``
    (or a ``RateLimitResult`` that fails open).
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        connection: Optional[RedisConnectionManager] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics
        self.logger = get_logger("cache.service")

        self.connection = connection or RedisConnectionManager.from_settings(self.settings, metrics=metrics)
        serializer = JsonSerializer()

        self.store = CacheStore(self.connection, serializer=serializer, default_ttl=self.settings.default_ttl_seconds)
        self.sessions = SessionStore(self.store, ttl=self.settings.session_ttl_seconds)
        self.rate_limiter = FixedWindowRateLimiter(self.connection, clock=clock, metrics=metrics)
        self.activity = ActivityLog(
            self.connection,
            max_entries=self.settings.activity_max_entries,
            ttl=self.settings.activity_ttl_seconds,
            serializer=serializer,
            clock=clock,
        )
        self.notifications = NotificationQueue(
            self.connection, name=self.settings.notification_queue_name, serializer=serializer
        )
        self.pubsub = PubSubBroker(
            self.connection,
            serializer=serializer,
            queue_size=self.settings.subscriber_queue_size,
            metrics=metrics,
        )
        self.domain = DomainCaches(self.store)

    # Lifecycle

    async def connect(self, timeout: Optional[float] = None) -> bool:
        return await self.connection.connect(timeout=timeout)

    async def disconnect(self) -> None:
        """Close subscriptions, then the shared connection."""
        await self.pubsub.close_all()
        await self.connection.disconnect()

    @property
    def is_ready(self) -> bool:
        return self.connection.is_ready

    # Generic cache

    async def set(self, key: str, value: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.store.set(key, value, ttl)

    async def get(self, key: str) -> CacheResult:
        return await self.store.get(key)

    async def delete(self, key: str) -> CacheResult:
        return await self.store.delete(key)

    async def exists(self, key: str) -> CacheResult:
        return await self.store.exists(key)

    async def expire(self, key: str, ttl: TTL) -> CacheResult:
        return await self.store.expire(key, ttl)

    # Sessions

    async def set_session(self, session_id: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.sessions.set_session(session_id, data, ttl)

    async def get_session(self, session_id: str) -> CacheResult:
        return await self.sessions.get_session(session_id)

    async def delete_session(self, session_id: str) -> CacheResult:
        return await self.sessions.delete_session(session_id)

    # Rate limiting

    async def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        return await self.rate_limiter.check_rate_limit(key, limit, window_seconds)

    # Activity

    async def track_user_activity(self, user_id: str, activity: Any) -> CacheResult:
        return await self.activity.track_activity(user_id, activity)

    async def get_user_activity(self, user_id: str, limit: int = 50) -> CacheResult:
        return await self.activity.get_activity(user_id, limit)

    # Notifications

    async def add_to_notification_queue(self, item: Any) -> CacheResult:
        return await self.notifications.enqueue(item)

    async def get_from_notification_queue(self) -> CacheResult:
        return await self.notifications.dequeue()

    async def get_notification_queue_size(self) -> CacheResult:
        return await self.notifications.size()

    # Pub/sub

    async def publish(self, channel: str, message: Any) -> CacheResult:
        return await self.pubsub.publish(channel, message)

    async def subscribe(self, channel: str, callback=None) -> CacheResult:
        return await self.pubsub.subscribe(channel, callback)

    # Domain caches

    async def cache_health_data(self, location: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.domain.cache_health_data(location, data, ttl)

    async def get_cached_health_data(self, location: str) -> CacheResult:
        return await self.domain.get_cached_health_data(location)

    async def cache_collection_stats(self, stats: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.domain.cache_collection_stats(stats, ttl)

    async def get_cached_collection_stats(self) -> CacheResult:
        return await self.domain.get_cached_collection_stats()

    async def cache_ai_response(self, query: str, response: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.domain.cache_ai_response(query, response, ttl)

    async def get_cached_ai_response(self, query: str) -> CacheResult:
        return await self.domain.get_cached_ai_response(query)

    async def cache_analytics_data(self, analytics_type: str, data: Any, ttl: Optional[TTL] = None) -> CacheResult:
        return await self.domain.cache_analytics_data(analytics_type, data, ttl)

    async def get_cached_analytics_data(self, analytics_type: str) -> CacheResult:
        return await self.domain.get_cached_analytics_data(analytics_type)

    # Introspection

    async def health_check(self) -> Dict[str, Any]:
        status = await self.connection.health_check()
        if self.metrics:
            self.metrics.record_health_check(status["status"])
        return status

    async def get_info(self) -> CacheResult:
        """The store's INFO output; unavailable when not ready."""
        return await self.connection.execute("info", lambda client: client.info())
