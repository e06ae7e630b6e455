"""
Connection manager for the remote key-value store.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import BusyLoadingError, RedisError, ResponseError

from shared.errors import ConnectionExhaustedError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import BackoffPolicy

from ..store.results import CacheResult
from .state import CONNECTIVITY_ERRORS, STATE_GAUGE_VALUES, ConnectionState

T = TypeVar("T")

ClientFactory = Callable[[], redis.Redis]
Command = Callable[[redis.Redis], Awaitable[T]]


class RedisConnectionManager:
    """Owns the store client, its readiness flag and the reconnect loop.

    ``connect`` starts a connect cycle in a background task: attempts are
    spaced by the ``BackoffPolicy`` until the store answers PING and is not
    loading its dataset, or until the policy gives up. After giving up the
    manager stays ``ENDED`` until ``connect`` is called again. A transport
    error reported by any operation while ``READY`` drops the state to
    ``DISCONNECTED`` and starts a new cycle.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        password: Optional[str] = None,
        backoff: Optional[BackoffPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.redis_url = redis_url
        self.password = password
        self.backoff = backoff or BackoffPolicy()
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout
        self.metrics = metrics
        self.logger = get_logger("cache.connection")

        self._client_factory = client_factory
        self._client: Optional[redis.Redis] = None
        self._state = ConnectionState.DISCONNECTED
        self._connect_task: Optional[asyncio.Task] = None
        self._closing = False
        self._exhausted = False
        self.last_error: Optional[Exception] = None

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "RedisConnectionManager":
        """Build a manager from ``CacheSettings``."""
        return cls(
            settings.redis_url,
            password=settings.redis_password,
            backoff=BackoffPolicy.from_settings(settings),
            socket_timeout=settings.socket_timeout_seconds,
            socket_connect_timeout=settings.socket_connect_timeout_seconds,
            **kwargs,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def is_exhausted(self) -> bool:
        return self._exhausted

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    def _create_client(self) -> redis.Redis:
        if self._client_factory is not None:
            return self._client_factory()

        # Reconnects are driven by the manager, not by the client.
        return redis.from_url(
            self.redis_url,
            password=self.password,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            retry_on_timeout=False,
            health_check_interval=30,
        )

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        previous = self._state
        self._state = state
        self.logger.info("Connection state changed", previous=previous.value, state=state.value)
        if self.metrics:
            self.metrics.set_gauge("cache_connection_state", STATE_GAUGE_VALUES[state])

    async def connect(self, timeout: Optional[float] = None) -> bool:
        """Start connecting and wait up to ``timeout`` seconds for readiness.

        With ``timeout=None`` this waits for the whole connect cycle. When the
        wait times out the cycle keeps running in the background. Returns
        whether the store is ready; never raises on connectivity failure.
        """
        if self.is_ready:
            return True

        self._closing = False
        self._exhausted = False
        if self._client is None:
            self._client = self._create_client()

        task = self._ensure_connect_task()
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            self.logger.warning(
                "Store not ready within timeout, connecting in background",
                timeout=timeout,
                state=self._state.value
            )
        return self.is_ready

    def _ensure_connect_task(self) -> asyncio.Task:
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.get_running_loop().create_task(self._run_connect_cycle())
        return self._connect_task

    async def _run_connect_cycle(self) -> None:
        """Retry until ready, closed, or out of budget."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempt = 0

        while not self._closing:
            attempt += 1
            self._set_state(ConnectionState.CONNECTING)

            try:
                await self._attempt()
            except (RedisError, *CONNECTIVITY_ERRORS) as e:
                self.last_error = e
                self._set_state(ConnectionState.DISCONNECTED)
                self._record_attempt("failure")

                elapsed = loop.time() - started
                delay = self.backoff.delay_for(attempt)
                if not self.backoff.should_retry(attempt, elapsed, delay):
                    self._exhausted = True
                    self.last_error = ConnectionExhaustedError(attempt, elapsed, {"error": str(e)})
                    self._set_state(ConnectionState.ENDED)
                    self.logger.error(
                        "Store retry budget exhausted",
                        attempts=attempt,
                        elapsed_seconds=round(elapsed, 3),
                        error=str(e)
                    )
                    return

                self.logger.warning(
                    "Store connection attempt failed, retrying",
                    attempt=attempt,
                    max_attempts=self.backoff.max_attempts,
                    delay=round(delay, 3),
                    error=str(e)
                )
                await asyncio.sleep(delay)
                continue

            self._record_attempt("success")
            self.last_error = None
            self._set_state(ConnectionState.READY)
            self.logger.info("Store ready", attempt=attempt)
            return

    async def _attempt(self) -> None:
        await self._client.ping()
        self._set_state(ConnectionState.CONNECTED)

        try:
            info = await self._client.info("persistence")
        except ResponseError:
            # Stores without INFO (proxies, some managed tiers) are ready once they answer PING.
            return
        if int(info.get("loading", 0) or 0):
            raise BusyLoadingError("Store is loading its dataset")

    def _record_attempt(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_reconnect_attempts_total", outcome=outcome)

    def report_failure(self, error: Exception) -> None:
        """Mark the connection lost after an operation hit a transport error."""
        self.last_error = error
        if self._closing or self._state is not ConnectionState.READY:
            return

        self._set_state(ConnectionState.DISCONNECTED)
        self.logger.warning("Store connection lost, starting reconnect cycle", error=str(error))
        self._ensure_connect_task()

    async def disconnect(self) -> None:
        """Stop reconnecting and close the client."""
        self._closing = True

        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._client is not None:
            client = self._client
            self._client = None
            try:
                await client.aclose()
            except (RedisError, *CONNECTIVITY_ERRORS) as e:
                self.logger.warning("Error closing store client", error=str(e))
            self.logger.info("Store client disconnected")

        self._set_state(ConnectionState.ENDED)

    async def execute(
        self,
        operation: str,
        command: Command,
        *,
        write: bool = False,
        **context: Any,
    ) -> CacheResult:
        """Run ``command`` against the client and tag the outcome.

        Never raises for store problems: not ready or unreachable gives
        ``UNAVAILABLE`` and a command the store rejects gives ``ERROR``.
        Read skips are logged as warnings and write skips as errors.
        """
        log_failure = self.logger.error if write else self.logger.warning

        if not self.is_ready:
            log_failure("Store not ready, skipping operation", operation=operation, state=self._state.value, **context)
            self._record(operation, "unavailable")
            return CacheResult.unavailable()

        start = time.perf_counter()
        try:
            value = await command(self._client)
        except CONNECTIVITY_ERRORS as e:
            self.report_failure(e)
            log_failure("Store operation failed", operation=operation, error=str(e), **context)
            self._record(operation, "unavailable", start)
            return CacheResult.unavailable()
        except RedisError as e:
            self.logger.error("Store rejected operation", operation=operation, error=str(e), **context)
            self._record(operation, "error", start)
            return CacheResult.error()

        self._record(operation, "ok", start)
        return CacheResult.ok(value)

    def _record(self, operation: str, result: str, start: Optional[float] = None) -> None:
        if self.metrics:
            duration = time.perf_counter() - start if start is not None else None
            self.metrics.record_operation(operation, result, duration)

    async def health_check(self) -> Dict[str, Any]:
        """Report readiness, pinging the store when the manager believes it is up."""
        if not self.is_ready:
            status: Dict[str, Any] = {
                "status": "disconnected",
                "connected": False,
                "state": self._state.value,
            }
            if self._exhausted:
                status["exhausted"] = True
                status["error"] = str(self.last_error)
            return status

        try:
            pong = await self._client.ping()
        except CONNECTIVITY_ERRORS as e:
            self.report_failure(e)
            self.logger.error("Store health check failed", error=str(e))
            return {"status": "error", "connected": False, "state": self._state.value, "error": str(e)}
        except RedisError as e:
            self.logger.error("Store health check rejected", error=str(e))
            return {"status": "error", "connected": True, "state": self._state.value, "error": str(e)}

        healthy = pong is True or pong in ("PONG", b"PONG")
        return {
            "status": "healthy" if healthy else "unhealthy",
            "connected": True,
            "state": self._state.value,
        }
