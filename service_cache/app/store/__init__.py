"""
Generic key/value cache over the shared connection.

Values are JSON-encoded and always written with a TTL. Results are
tagged (see ``results.CacheResult``) so callers can tell a miss from an
outage.
"""

from .results import CacheResult, ResultStatus
from .serializer import JsonSerializer
from .cache_store import CacheStore

__all__ = ["CacheResult", "ResultStatus", "JsonSerializer", "CacheStore"]
