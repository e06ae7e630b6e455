"""
JSON serializer for cached values.
"""

import json
from typing import Any

from shared.errors import SerializationError


class JsonSerializer:
    """Encodes values to JSON text and back."""

    def dumps(self, value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"), default=_encode_default)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                "Value is not JSON serializable",
                {"type": type(value).__name__, "error": str(e)}
            ) from e

    def loads(self, raw: Any) -> Any:
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise SerializationError("Stored payload is not valid JSON", {"error": str(e)}) from e


def _encode_default(value: Any) -> Any:
    """Encode datetimes and sets the way callers usually mean them."""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
