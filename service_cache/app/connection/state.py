"""
Connection states and error classification.
"""

import asyncio
from enum import Enum

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError


class ConnectionState(str, Enum):
    """Lifecycle of the store connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"  # transport up, readiness not yet confirmed
    READY = "ready"
    ENDED = "ended"          # explicit disconnect or retry budget spent


STATE_GAUGE_VALUES = {
    ConnectionState.DISCONNECTED: 0,
    ConnectionState.CONNECTING: 1,
    ConnectionState.CONNECTED: 2,
    ConnectionState.READY: 3,
    ConnectionState.ENDED: 4,
}

# Errors that mean the store could not be reached, as opposed to the store
# rejecting a command.
CONNECTIVITY_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError)
