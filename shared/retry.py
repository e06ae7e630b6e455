"""
Backoff policy for reconnect loops.
"""

import random
from typing import Any, Dict


class BackoffPolicy:
    """Limits and delays for a retry loop.

    A loop stops after ``max_attempts`` failed attempts, or once the next
    wait would take the cumulative retry time past ``max_total_time``,
    whichever comes first. Individual waits are capped at ``max_delay``.
    """

    def __init__(self,
                 max_attempts: int = 10,
                 base_delay: float = 0.1,
                 max_delay: float = 3.0,
                 max_total_time: float = 3600.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_total_time = max_total_time
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        """Build the reconnect policy from ``CacheSettings``."""
        return cls(
            max_attempts=settings.connect_max_attempts,
            base_delay=settings.connect_base_delay_seconds,
            max_delay=settings.connect_max_delay_seconds,
            max_total_time=settings.connect_max_total_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if self.backoff_strategy == "exponential":
            delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        elif self.backoff_strategy == "linear":
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_amount = delay * 0.1  # 10% jitter
            delay += random.uniform(-jitter_amount, jitter_amount)

        return max(0.0, min(delay, self.max_delay))

    def should_retry(self, attempt: int, elapsed: float, next_delay: float = 0.0) -> bool:
        """Whether another attempt is allowed after ``attempt`` failures."""
        if attempt >= self.max_attempts:
            return False
        return elapsed + next_delay <= self.max_total_time

    def describe(self) -> Dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "max_total_time": self.max_total_time,
            "strategy": self.backoff_strategy,
            "jitter": self.jitter,
        }
