"""
Rate limiting package.

Fixed-window request counters on the store's atomic increment. Limits
fail open when the store is unavailable.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitResult

__all__ = ["FixedWindowRateLimiter", "RateLimitResult"]
