"""
Base service class for the Sankofa caching layer.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Dict, Optional
import time
import os

from shared.config import CacheSettings, get_settings
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import CacheLayerException, StoreUnavailableError


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, settings: Optional[CacheSettings] = None):
        self.config = settings or get_settings()
        self.service_name = self.config.service_name
        self.port = self.config.port
        self.logger = get_logger(self.service_name)
        self.metrics = get_metrics_collector(self.service_name)
        self._start_time = time.time()

        # Configure logging
        configure_logging(self.service_name, self.config.log_level)

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.on_startup()
            try:
                yield
            finally:
                await self.on_shutdown()

        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Sankofa - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        # CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Request timing middleware
        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get("X-Request-ID"))

            try:
                # Process request
                response = await call_next(request)

                # Calculate duration
                duration = time.time() - start_time

                # Record metrics
                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )

                # Log request
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                # Check dependencies
                dependencies = await self._check_dependencies()
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

            status = "ok" if all(value == "healthy" for value in dependencies.values()) else "degraded"
            self.metrics.record_health_check(status)

            return {
                "service": self.service_name,
                "status": status,
                "uptime_seconds": self._get_uptime(),
                "dependencies": dependencies,
                "version": "1.0.0",
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

        # Error handlers
        @self.app.exception_handler(StoreUnavailableError)
        async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
            """Handle StoreUnavailableError."""
            self.logger.warning("Store unavailable", code=exc.code, message=exc.message)
            return JSONResponse(
                status_code=503,
                content=exc.to_response(request.headers.get("X-Request-ID")).model_dump()
            )

        @self.app.exception_handler(CacheLayerException)
        async def cache_layer_exception_handler(request: Request, exc: CacheLayerException):
            """Handle CacheLayerException."""
            self.logger.error(
                "Cache layer error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=400,
                content=exc.to_response(request.headers.get("X-Request-ID")).model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    async def on_startup(self) -> None:
        """Startup hook. Override in subclasses."""

    async def on_shutdown(self) -> None:
        """Shutdown hook. Override in subclasses."""

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
