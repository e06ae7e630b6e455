"""
Shared error handling for the Sankofa caching layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CacheLayerException(Exception):
    """Base exception for the caching layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class StoreUnavailableError(CacheLayerException):
    """The remote store is unreachable or not ready."""

    def __init__(self, message: str = "Store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("STORE_UNAVAILABLE", message, details)


class SerializationError(CacheLayerException):
    """A value could not be encoded to or decoded from its stored form."""

    def __init__(self, message: str = "Serialization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERIALIZATION_ERROR", message, details)


class ConnectionExhaustedError(CacheLayerException):
    """The reconnect budget was spent without reaching the store."""

    def __init__(self, attempts: int, elapsed_seconds: float, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "CONNECTION_EXHAUSTED",
            f"Store unreachable after {attempts} attempts in {elapsed_seconds:.1f}s",
            {"attempts": attempts, "elapsed_seconds": round(elapsed_seconds, 3), **(details or {})}
        )
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
