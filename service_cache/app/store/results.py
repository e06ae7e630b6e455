"""
Tagged operation results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ResultStatus(str, Enum):
    """Outcome of a cache-layer operation."""
    OK = "ok"
    MISS = "miss"                # store reachable, nothing usable under the key
    UNAVAILABLE = "unavailable"  # store not ready or unreachable
    ERROR = "error"              # bad input or a non-connectivity store error


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Value plus the status it was obtained with.

    Truthy only for ``OK``. ``value`` is ``None`` for every other status.
    """
    status: ResultStatus
    value: Optional[T] = None

    @classmethod
    def ok(cls, value: Any = True) -> "CacheResult":
        return cls(ResultStatus.OK, value)

    @classmethod
    def miss(cls) -> "CacheResult":
        return cls(ResultStatus.MISS)

    @classmethod
    def unavailable(cls) -> "CacheResult":
        return cls(ResultStatus.UNAVAILABLE)

    @classmethod
    def error(cls) -> "CacheResult":
        return cls(ResultStatus.ERROR)

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def is_miss(self) -> bool:
        return self.status is ResultStatus.MISS

    @property
    def is_unavailable(self) -> bool:
        return self.status is ResultStatus.UNAVAILABLE

    def unwrap_or(self, default: T) -> T:
        """Return the value when OK, otherwise ``default``."""
        return self.value if self.is_ok else default

    def __bool__(self) -> bool:
        return self.is_ok
