"""
Unit tests for the fixed-window rate limiter.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from service_cache.app.ratelimit import FixedWindowRateLimiter
from service_cache.app.store import ResultStatus
from shared.metrics import MetricsCollector
from shared.test_helpers import create_mock_pipeline


class TestFixedWindowRateLimiter:
    """Test cases for FixedWindowRateLimiter against the in-memory store."""

    @pytest.fixture
    def metrics(self):
        """Isolated metrics collector."""
        return MetricsCollector("cache-test")

    @pytest.fixture
    def rate_limiter(self, connection, clock, metrics):
        """Rate limiter on a ready connection."""
        return FixedWindowRateLimiter(connection, clock=clock, metrics=metrics)

    @pytest.mark.asyncio
    async def test_sixth_request_denied(self, rate_limiter, metrics):
        """Test five requests pass and the sixth is denied."""
        results = [await rate_limiter.check_rate_limit("login:10.0.0.1", 5, 60) for _ in range(6)]

        assert [r.allowed for r in results] == [True, True, True, True, True, False]
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0, 0]
        assert results[-1].count == 6
        assert metrics.registry.get_sample_value("rate_limit_decisions_total", {"decision": "denied"}) == 1

    @pytest.mark.asyncio
    async def test_remaining_stays_zero(self, rate_limiter):
        """Test remaining never goes negative within the window."""
        for _ in range(5):
            await rate_limiter.check_rate_limit("k", 2, 60)

        result = await rate_limiter.check_rate_limit("k", 2, 60)

        assert result.allowed is False
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_window_expiry_set_once(self, rate_limiter, connection):
        """Test later increments do not push the window reset out."""
        await rate_limiter.check_rate_limit("k", 10, 60)
        await connection.client.expire("k", 30)

        await rate_limiter.check_rate_limit("k", 10, 60)

        assert await connection.client.ttl("k") <= 30

    @pytest.mark.asyncio
    async def test_window_resets(self, rate_limiter):
        """Test a new window starts after the old one expires."""
        for _ in range(3):
            await rate_limiter.check_rate_limit("k", 3, 1)
        assert (await rate_limiter.check_rate_limit("k", 3, 1)).allowed is False

        await asyncio.sleep(1.1)
        result = await rate_limiter.check_rate_limit("k", 3, 1)

        assert result.allowed is True
        assert result.remaining == 2

    @pytest.mark.asyncio
    async def test_reset_time(self, rate_limiter, clock):
        """Test reset time is now plus the window in milliseconds."""
        result = await rate_limiter.check_rate_limit("k", 5, 60)

        assert result.reset_time == int((clock.now + 60) * 1000)
        assert result.to_dict()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, rate_limiter):
        """Test separate keys have separate counters."""
        await rate_limiter.check_rate_limit("a", 1, 60)

        assert (await rate_limiter.check_rate_limit("a", 1, 60)).allowed is False
        assert (await rate_limiter.check_rate_limit("b", 1, 60)).allowed is True

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, rate_limiter):
        """Test invalid limits and windows are rejected."""
        with pytest.raises(ValueError):
            await rate_limiter.check_rate_limit("k", -1, 60)
        with pytest.raises(ValueError):
            await rate_limiter.check_rate_limit("k", 5, 0)


class TestRateLimiterFailOpen:
    """Test cases for FixedWindowRateLimiter when the store fails."""

    @pytest.mark.asyncio
    async def test_allows_when_disconnected(self, offline_connection, clock):
        """Test requests are allowed while the store is down."""
        rate_limiter = FixedWindowRateLimiter(offline_connection, clock=clock)

        result = await rate_limiter.check_rate_limit("k", 5, 60)

        assert result.allowed is True
        assert result.remaining == 5
        assert result.status is ResultStatus.UNAVAILABLE
        assert result.failed_open is True

    @pytest.mark.asyncio
    async def test_allows_on_transport_error(self, mock_connection, mock_client, clock):
        """Test a transport error during the increment fails open."""
        mock_client.pipeline.return_value = create_mock_pipeline(RedisConnectionError("connection reset"))
        rate_limiter = FixedWindowRateLimiter(mock_connection, clock=clock)

        result = await rate_limiter.check_rate_limit("k", 5, 60)

        assert result.allowed is True
        assert result.failed_open is True

    @pytest.mark.asyncio
    async def test_first_increment_sets_expiry(self, mock_connection, mock_client, clock):
        """Test only the increment that opens a window sets its expiry."""
        rate_limiter = FixedWindowRateLimiter(mock_connection, clock=clock)

        pipeline = create_mock_pipeline([1, -1], [2, 60])
        mock_client.pipeline.return_value = pipeline

        first = await rate_limiter.check_rate_limit("k", 5, 60)
        second = await rate_limiter.check_rate_limit("k", 5, 60)

        assert (first.count, second.count) == (1, 2)
        mock_client.pipeline.assert_called_with(transaction=True)
        pipeline.incr.assert_called_with("k")
        mock_client.expire.assert_awaited_once_with("k", 60)


class TestRateLimiterLostExpiry:
    """Test cases for windows whose expiry was not applied."""

    @pytest.fixture
    def rate_limiter(self, connection, clock):
        """Rate limiter on a ready connection."""
        return FixedWindowRateLimiter(connection, clock=clock)

    @pytest.mark.asyncio
    async def test_lost_expire_is_rearmed(self, rate_limiter, connection):
        """Test a counter left without a TTL gets one on the next request."""
        failing_expire = AsyncMock(side_effect=RedisConnectionError("connection reset"))
        with patch.object(connection.client, "expire", failing_expire):
            first = await rate_limiter.check_rate_limit("k", 2, 60)

        assert first.status is ResultStatus.UNAVAILABLE
        assert await connection.client.ttl("k") == -1

        await asyncio.wait_for(connection._connect_task, timeout=1.0)
        later = [await rate_limiter.check_rate_limit("k", 2, 60) for _ in range(2)]

        assert [(r.allowed, r.count) for r in later] == [(True, 2), (False, 3)]
        assert 0 < await connection.client.ttl("k") <= 60

    @pytest.mark.asyncio
    async def test_window_resets_after_lost_expire(self, rate_limiter, connection):
        """Test a window whose first EXPIRE failed still ends."""
        failing_expire = AsyncMock(side_effect=RedisConnectionError("connection reset"))
        with patch.object(connection.client, "expire", failing_expire):
            await rate_limiter.check_rate_limit("k", 1, 1)
        await asyncio.wait_for(connection._connect_task, timeout=1.0)

        assert (await rate_limiter.check_rate_limit("k", 1, 1)).allowed is False

        await asyncio.sleep(1.1)
        result = await rate_limiter.check_rate_limit("k", 1, 1)

        assert result.allowed is True
        assert result.remaining == 0
