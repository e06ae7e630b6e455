"""
Shared fixtures for cache layer tests.
"""

import fakeredis
import pytest
import pytest_asyncio

from service_cache.app.connection import RedisConnectionManager
from shared.retry import BackoffPolicy
from shared.test_helpers import FakeClock, create_mock_redis_client


@pytest.fixture
def fake_server():
    """Isolated in-memory store."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def connection(fake_server):
    """Ready manager backed by the in-memory store."""
    manager = RedisConnectionManager(
        backoff=BackoffPolicy(max_attempts=1),
        client_factory=lambda: fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True),
    )
    await manager.connect()
    yield manager
    await manager.disconnect()


@pytest.fixture
def mock_client():
    """Mock async store client."""
    return create_mock_redis_client()


@pytest_asyncio.fixture
async def mock_connection(mock_client):
    """Ready manager wired to the mock client."""
    manager = RedisConnectionManager(
        backoff=BackoffPolicy(max_attempts=1),
        client_factory=lambda: mock_client,
    )
    await manager.connect()
    yield manager
    await manager.disconnect()


@pytest.fixture
def offline_connection():
    """Manager that never connected."""
    return RedisConnectionManager(client_factory=create_mock_redis_client)


@pytest.fixture
def clock():
    """Settable clock."""
    return FakeClock()
