"""Pre-configured caches for recurring backend lookups."""

from .caches import DomainCaches

__all__ = ["DomainCaches"]
