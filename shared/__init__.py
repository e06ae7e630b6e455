"""
Shared utilities for the Sankofa caching layer.

This package aggregates common building blocks consumed by the service
packages:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Backoff policy for reconnect loops
- base_service: FastAPI host with health and metrics routes

Do not import from service_* packages into shared/.
"""
