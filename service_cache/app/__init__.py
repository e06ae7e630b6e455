"""
Caching and coordination layer for the Sankofa backend.

Gives route handlers and background jobs best-effort access to ephemeral
state held in Redis. Every component fails open: a store outage is
reported through tagged results and logs, never through exceptions.

Structure:
- app.connection: Connection lifecycle, readiness and reconnect loop.
- app.store: Tagged results, JSON serializer and the generic cache store.
- app.ratelimit: Fixed-window request counters.
- app.sessions: Session blobs with a long TTL.
- app.activity: Bounded per-user activity logs.
- app.queue: FIFO notification queue.
- app.pubsub: Channel fan-out with cancellable subscriptions.
- app.domain: Pre-configured caches for domain snapshots.
- app.service: CacheService, the composed call surface.
- app.main: FastAPI host exposing health and metrics.
"""
