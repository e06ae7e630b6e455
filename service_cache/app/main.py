"""
Cache layer host for the Sankofa backend.
"""

from typing import Dict, Optional

from shared.base_service import BaseService
from shared.config import CacheSettings
from shared.errors import StoreUnavailableError

from .service import CacheService


class CacheLayerService(BaseService):
    """Hosts the cache layer: connects on startup and disconnects on shutdown."""

    def __init__(self, settings: Optional[CacheSettings] = None, cache: Optional[CacheService] = None):
        super().__init__(settings)

        self.cache = cache or CacheService(self.config, metrics=self.metrics)

        self._setup_cache_routes()

    def _setup_cache_routes(self):
        """Set up cache-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Sankofa - Cache Service",
                "version": "1.0.0",
                "capabilities": [
                    "cache", "sessions", "rate_limiting", "activity",
                    "notifications", "pubsub"
                ]
            }

        @self.app.get("/info")
        async def store_info():
            """Store server information."""
            result = await self.cache.get_info()
            if not result:
                raise StoreUnavailableError(details={"status": result.status.value})
            return result.value

        @self.app.get("/subscriptions")
        async def subscription_stats():
            """Live subscription statistics."""
            return self.cache.pubsub.get_subscription_stats()

    async def on_startup(self) -> None:
        """Connect with a bounded wait; keep serving if the store is slow."""
        ready = await self.cache.connect(timeout=self.config.startup_connect_timeout_seconds)
        if ready:
            self.logger.info("Cache layer ready")
        else:
            self.logger.warning(
                "Cache layer starting without store, reconnecting in background",
                timeout=self.config.startup_connect_timeout_seconds
            )

    async def on_shutdown(self) -> None:
        try:
            await self.cache.disconnect()
        except Exception as e:  # shutdown must complete
            self.logger.error("Error disconnecting cache layer", error=str(e))

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check cache dependencies."""
        health = await self.cache.health_check()
        return {"redis": health["status"]}


def create_app(settings: Optional[CacheSettings] = None):
    """Create cache service application."""
    service = CacheLayerService(settings)
    return service.app


if __name__ == "__main__":
    service = CacheLayerService()
    service.run()
