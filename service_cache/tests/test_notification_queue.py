"""
Unit tests for the notification queue.
"""

import pytest

from service_cache.app.queue import NOTIFICATION_QUEUE, NotificationQueue
from service_cache.app.store import ResultStatus
from shared.test_helpers import sample_data_factory


class TestNotificationQueue:
    """Test cases for NotificationQueue against the in-memory store."""

    @pytest.fixture
    def queue(self, connection):
        """Notification queue on a ready connection."""
        return NotificationQueue(connection)

    @pytest.mark.asyncio
    async def test_fifo_order(self, queue):
        """Test items come out in the order they went in."""
        for item in ["A", "B", "C"]:
            assert await queue.enqueue(item)

        popped = [(await queue.dequeue()).value for _ in range(3)]
        fourth = await queue.dequeue()

        assert popped == ["A", "B", "C"]
        assert fourth.status is ResultStatus.MISS
        assert fourth.value is None

    @pytest.mark.asyncio
    async def test_enqueue_returns_length(self, queue):
        """Test enqueue reports the new queue length."""
        notifications = sample_data_factory.create_notifications(2)

        assert (await queue.enqueue(notifications[0])).value == 1
        assert (await queue.enqueue(notifications[1])).value == 2
        assert (await queue.size()).value == 2

    @pytest.mark.asyncio
    async def test_payloads_round_trip(self, queue):
        """Test structured notifications survive the queue."""
        notification = sample_data_factory.create_notifications(1)[0]
        await queue.enqueue(notification)

        assert (await queue.dequeue()).value == notification

    @pytest.mark.asyncio
    async def test_malformed_item_dropped(self, queue, connection):
        """Test a malformed item is dropped and the next one returned."""
        await connection.client.lpush(NOTIFICATION_QUEUE, "{broken")
        await queue.enqueue({"notification_id": "n-1"})

        result = await queue.dequeue()

        assert result.value == {"notification_id": "n-1"}
        assert (await queue.size()).value == 0

    @pytest.mark.asyncio
    async def test_custom_queue_name(self, connection):
        """Test queues with different names are independent."""
        default = NotificationQueue(connection)
        urgent = NotificationQueue(connection, name="urgent_notifications")

        await urgent.enqueue("x")

        assert (await default.dequeue()).is_miss
        assert (await urgent.dequeue()).value == "x"

    @pytest.mark.asyncio
    async def test_unserializable_item(self, queue):
        """Test unserializable items are rejected."""
        result = await queue.enqueue({"callback": object()})

        assert result.status is ResultStatus.ERROR

    @pytest.mark.asyncio
    async def test_when_disconnected(self, offline_connection):
        """Test queue calls degrade while the store is down."""
        queue = NotificationQueue(offline_connection)

        assert not await queue.enqueue("A")
        assert (await queue.dequeue()).is_unavailable
        assert (await queue.size()).is_unavailable
