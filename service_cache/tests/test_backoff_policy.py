"""
Unit tests for the reconnect backoff policy and settings.
"""

import pytest

from shared.config import CacheSettings, get_settings
from shared.retry import BackoffPolicy


class TestBackoffPolicy:
    """Test cases for BackoffPolicy."""

    def test_defaults(self):
        """Test default reconnect limits."""
        policy = BackoffPolicy()

        assert policy.max_attempts == 10
        assert policy.base_delay == 0.1
        assert policy.max_delay == 3.0
        assert policy.max_total_time == 3600.0

    def test_exponential_delays_are_capped(self):
        """Test delays grow exponentially up to the cap."""
        policy = BackoffPolicy(jitter=False)

        assert policy.delay_for(1) == pytest.approx(0.1)
        assert policy.delay_for(2) == pytest.approx(0.2)
        assert policy.delay_for(3) == pytest.approx(0.4)
        assert policy.delay_for(10) == 3.0

    def test_jitter_stays_within_cap(self):
        """Test jittered delays never exceed the cap."""
        policy = BackoffPolicy()

        for attempt in range(1, 20):
            delay = policy.delay_for(attempt)
            assert 0.0 <= delay <= policy.max_delay

    def test_linear_strategy(self):
        """Test linear backoff strategy."""
        policy = BackoffPolicy(backoff_strategy="linear", jitter=False)

        assert policy.delay_for(3) == pytest.approx(0.3)

    def test_should_retry_stops_at_max_attempts(self):
        """Test retries stop once the attempt budget is spent."""
        policy = BackoffPolicy(max_attempts=3)

        assert policy.should_retry(1, elapsed=0.0) is True
        assert policy.should_retry(2, elapsed=0.0) is True
        assert policy.should_retry(3, elapsed=0.0) is False

    def test_should_retry_respects_total_time(self):
        """Test retries stop when the next wait would pass the time ceiling."""
        policy = BackoffPolicy(max_total_time=10.0)

        assert policy.should_retry(1, elapsed=9.0, next_delay=0.5) is True
        assert policy.should_retry(1, elapsed=9.8, next_delay=0.5) is False

    def test_invalid_max_attempts(self):
        """Test a policy needs at least one attempt."""
        with pytest.raises(ValueError):
            BackoffPolicy(max_attempts=0)

    def test_from_settings(self):
        """Test building the policy from settings."""
        settings = CacheSettings(connect_max_attempts=4, connect_base_delay_seconds=0.5)

        policy = BackoffPolicy.from_settings(settings)

        assert policy.max_attempts == 4
        assert policy.base_delay == 0.5
        assert policy.describe()["strategy"] == "exponential"


class TestCacheSettings:
    """Test cases for CacheSettings."""

    def test_defaults(self, monkeypatch):
        """Test settings defaults."""
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.delenv("CACHE_REDIS_URL", raising=False)

        settings = get_settings()

        assert settings.redis_url == "redis://localhost:6379/0"
        assert settings.port == 8020
        assert settings.startup_connect_timeout_seconds == 3.0
        assert settings.session_ttl_seconds == 86400

    def test_redis_url_from_plain_env(self, monkeypatch):
        """Test the unprefixed REDIS_URL variable is honoured."""
        monkeypatch.delenv("CACHE_REDIS_URL", raising=False)
        monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6380/2")

        assert get_settings().redis_url == "redis://cache.internal:6380/2"

    def test_prefixed_env(self, monkeypatch):
        """Test prefixed environment variables."""
        monkeypatch.setenv("CACHE_ACTIVITY_MAX_ENTRIES", "25")

        assert get_settings().activity_max_entries == 25

    def test_overrides(self):
        """Test keyword overrides."""
        settings = get_settings(default_ttl_seconds=60, redis_url="redis://other:6379/0")

        assert settings.default_ttl_seconds == 60
        assert settings.redis_url == "redis://other:6379/0"
