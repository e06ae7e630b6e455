"""
Cancellable subscription handle.
"""

import asyncio
import inspect
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from redis.exceptions import RedisError

from shared.errors import SerializationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..connection.state import CONNECTIVITY_ERRORS
from ..store.results import CacheResult
from ..store.serializer import JsonSerializer

MessageCallback = Callable[[Any], Union[None, Awaitable[None]]]

_CLOSED = object()


class Subscription:
    """A live subscription to one channel.

    A reader task moves decoded messages from the dedicated pub/sub
    connection into a bounded queue; when the queue is full the oldest
    message is dropped. Messages are consumed with ``get`` or ``async for``,
    or handed to ``callback`` when one is given.
    """

    def __init__(
        self,
        channel: str,
        pubsub,
        *,
        serializer: Optional[JsonSerializer] = None,
        callback: Optional[MessageCallback] = None,
        queue_size: int = 1000,
        confirm_timeout: float = 1.0,
        on_close: Optional[Callable[["Subscription"], None]] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.subscription_id = str(uuid.uuid4())
        self.channel = channel
        self.created_at = datetime.now()
        self.message_count = 0
        self.dropped_count = 0
        self.logger = get_logger("cache.pubsub.subscription")

        self._pubsub = pubsub
        self._serializer = serializer or JsonSerializer()
        self._callback = callback
        self._confirm_timeout = confirm_timeout
        self._on_close = on_close
        self._metrics = metrics
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, queue_size))
        self._reader_task: Optional[asyncio.Task] = None
        self._dispatch_task: Optional[asyncio.Task] = None
        self._listening = False
        self._closed = False

    @property
    def is_active(self) -> bool:
        return self._listening and not self._closed

    async def start(self) -> None:
        """Subscribe on the dedicated connection and start reading."""
        await self._pubsub.subscribe(self.channel)

        # Wait for the subscribe confirmation so nothing published after
        # start() returns can be missed.
        confirmation = await self._pubsub.get_message(timeout=self._confirm_timeout)
        if confirmation is None:
            self.logger.warning("Subscribe confirmation not received", channel=self.channel)

        self._listening = True
        self._reader_task = asyncio.create_task(self._read_loop())
        if self._callback is not None:
            self._dispatch_task = asyncio.create_task(self._dispatch_loop())

    async def _read_loop(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    payload = self._serializer.loads(message["data"])
                except SerializationError as e:
                    self.logger.error("Dropping malformed pub/sub message", channel=self.channel, error=e.message)
                    continue
                self._deliver(payload)
        except (RedisError, *CONNECTIVITY_ERRORS) as e:
            self.logger.warning("Subscription connection lost", channel=self.channel, error=str(e))
        finally:
            self._listening = False
            self._push(_CLOSED)
            if not self._closed:
                self._notify_closed()

    def _notify_closed(self) -> None:
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            on_close(self)

    def _deliver(self, payload: Any) -> None:
        self.message_count += 1
        if self._metrics:
            self._metrics.increment_counter("pubsub_messages_total", channel=self.channel, direction="received")
        self._push(payload)

    def _push(self, item: Any) -> None:
        if self._queue.full():
            try:
                self._queue.get_nowait()
                self.dropped_count += 1
                self.logger.warning("Subscriber queue full, dropping oldest message", channel=self.channel)
            except asyncio.QueueEmpty:
                pass
        self._queue.put_nowait(item)

    async def _dispatch_loop(self) -> None:
        while True:
            payload = await self._queue.get()
            if payload is _CLOSED:
                return
            try:
                outcome = self._callback(payload)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:  # a failing callback must not end the subscription
                self.logger.error("Subscription callback failed", channel=self.channel, error=str(e), exc_info=True)

    async def get(self, timeout: Optional[float] = None) -> CacheResult:
        """Next message: OK, MISS on timeout, UNAVAILABLE once closed and drained."""
        try:
            payload = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return CacheResult.miss()

        if payload is _CLOSED:
            self._push(_CLOSED)
            return CacheResult.unavailable()
        return CacheResult.ok(payload)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        payload = await self._queue.get()
        if payload is _CLOSED:
            self._push(_CLOSED)
            raise StopAsyncIteration
        return payload

    async def close(self) -> None:
        """Stop the subscription and release its connection. Idempotent."""
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        for task in (self._reader_task, self._dispatch_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            await self._pubsub.unsubscribe(self.channel)
        except (RedisError, *CONNECTIVITY_ERRORS) as e:
            self.logger.warning("Unsubscribe failed", channel=self.channel, error=str(e))
        try:
            await self._pubsub.aclose()
        except (RedisError, *CONNECTIVITY_ERRORS) as e:
            self.logger.warning("Error closing subscription connection", channel=self.channel, error=str(e))

        self._listening = False
        self._push(_CLOSED)
        self._notify_closed()

        self.logger.info(
            "Subscription closed",
            subscription_id=self.subscription_id,
            channel=self.channel,
            message_count=self.message_count
        )
