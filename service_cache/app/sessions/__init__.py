"""
Session blobs keyed by session id.
"""

from .store import SessionStore, SESSION_PREFIX, SESSION_TTL

__all__ = ["SessionStore", "SESSION_PREFIX", "SESSION_TTL"]
