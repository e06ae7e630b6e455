"""
Connection lifecycle for the remote store.

One ``RedisConnectionManager`` owns the client used for ordinary
request/response commands. Other components borrow it and route every
command through ``execute`` so readiness checks, failure logging and
reconnects live in one place.
"""

from .state import ConnectionState, CONNECTIVITY_ERRORS
from .manager import RedisConnectionManager

__all__ = ["ConnectionState", "CONNECTIVITY_ERRORS", "RedisConnectionManager"]
