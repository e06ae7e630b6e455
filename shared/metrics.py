"""
Shared metrics configuration for the Sankofa caching layer.
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry unless one is passed in, so several
    collectors can coexist in one process (tests build many).
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._setup_cache_metrics()

    def _setup_cache_metrics(self):
        """Set up cache-layer metrics."""
        self._metrics["cache_operations_total"] = Counter(
            "cache_operations_total",
            "Total cache operations by outcome",
            ["operation", "result"],
            registry=self.registry
        )

        self._metrics["cache_operation_duration_seconds"] = Histogram(
            "cache_operation_duration_seconds",
            "Cache operation duration in seconds",
            ["operation"],
            registry=self.registry
        )

        self._metrics["cache_connection_state"] = Gauge(
            "cache_connection_state",
            "Connection state (0=disconnected 1=connecting 2=connected 3=ready 4=ended)",
            registry=self.registry
        )

        self._metrics["cache_reconnect_attempts_total"] = Counter(
            "cache_reconnect_attempts_total",
            "Total reconnect attempts",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["rate_limit_decisions_total"] = Counter(
            "rate_limit_decisions_total",
            "Total rate limit decisions",
            ["decision"],
            registry=self.registry
        )

        self._metrics["pubsub_messages_total"] = Counter(
            "pubsub_messages_total",
            "Total pub/sub messages",
            ["channel", "direction"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_operation(self, operation: str, result: str, duration: Optional[float] = None):
        """Record a cache operation outcome."""
        self._metrics["cache_operations_total"].labels(operation=operation, result=result).inc()
        if duration is not None:
            self._metrics["cache_operation_duration_seconds"].labels(operation=operation).observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def render(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
