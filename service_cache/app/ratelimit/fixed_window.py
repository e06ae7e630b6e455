"""
Fixed-window rate limiter.
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..store.results import ResultStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..connection.manager import RedisConnectionManager


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""
    allowed: bool
    remaining: int
    limit: int
    reset_time: int  # epoch milliseconds, computed locally
    status: ResultStatus = ResultStatus.OK
    count: Optional[int] = None

    @property
    def failed_open(self) -> bool:
        return self.status is not ResultStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class FixedWindowRateLimiter:
    """Counts requests per key in windows pinned to the first request.

    The key's TTL is set only while the counter has none, so later requests
    never push the reset further out.
    """

    def __init__(
        self,
        connection: "RedisConnectionManager",
        *,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.connection = connection
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("cache.ratelimit")

    async def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one request against ``key`` and decide whether it is allowed."""
        if limit < 0:
            raise ValueError("limit must not be negative")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        reset_time = int((self.clock() + window_seconds) * 1000)

        async def _increment(client) -> int:
            async with client.pipeline(transaction=True) as pipeline:
                pipeline.incr(key)
                pipeline.ttl(key)
                count, ttl = await pipeline.execute()

            # A counter without an expiry is either a fresh window or one whose
            # EXPIRE was lost; arm it so the window always ends.
            if ttl == -1:
                await client.expire(key, window_seconds)
            return count

        result = await self.connection.execute("rate_limit", _increment, key=key)
        if not result:
            self.logger.warning("Rate limiter failing open", key=key, status=result.status.value)
            self._record("fail_open")
            return RateLimitResult(
                allowed=True,
                remaining=limit,
                limit=limit,
                reset_time=reset_time,
                status=result.status
            )

        count = int(result.value)
        allowed = count <= limit
        if not allowed:
            self.logger.warning("Rate limit exceeded", key=key, count=count, limit=limit)
        self._record("allowed" if allowed else "denied")

        return RateLimitResult(
            allowed=allowed,
            remaining=max(0, limit - count),
            limit=limit,
            reset_time=reset_time,
            count=count
        )

    def _record(self, decision: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("rate_limit_decisions_total", decision=decision)
