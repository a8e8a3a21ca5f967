"""ResilienceExecutor — retry, backoff and circuit breaking around async operations.

Every tool invocation and downstream service call goes through :meth:`run`:

1. Fail fast with :class:`TemporarilyUnavailableError` while the key's circuit
   is open.
2. Attempt the operation up to ``max_attempts`` times.  Validation failures
   are recorded once and re-raised at once; systemic failures are re-raised
   untouched.
3. Back off exponentially between attempts.  The wait ends early only on
   :meth:`shutdown`, which abandons the remaining attempts.
4. A success after a retry clears the key's error count.  Exhausting the
   attempts records one failure and re-raises the last error as-is.
5. If a fallback is configured, it gets exactly one try after the final
   failure.
6. Every call that gets past the circuit is timed into the
   :class:`PerformanceMonitor`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from opentelemetry.trace import StatusCode

from toolwire.errors import ErrorKind, TemporarilyUnavailableError, error_kind
from toolwire.resilience.models import ResilienceConfig, RetryOptions
from toolwire.resilience.performance import PerformanceMonitor
from toolwire.resilience.tracker import ErrorTracker
from toolwire.utils.telemetry import (
    ATTR_RESILIENCE_ATTEMPT,
    ATTR_RESILIENCE_KEY,
    ATTR_RESILIENCE_MAX_ATTEMPTS,
    get_tracer,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

# Component name → key prefix, as reported by component_health().
COMPONENTS: dict[str, str] = {
    "tools": "tool",
    "search": "search",
    "documentation": "docs",
    "embeddings": "embeddings",
}


class ResilienceExecutor:
    """Wraps async operations with retry, backoff and per-key circuit breaking.

    Usage::

        executor = ResilienceExecutor(ResilienceConfig(max_attempts=3))
        result = await executor.run_tool("echo", lambda: registry.execute("echo", args))
    """

    def __init__(
        self,
        config: ResilienceConfig | None = None,
        *,
        tracker: ErrorTracker | None = None,
        monitor: PerformanceMonitor | None = None,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config = config or ResilienceConfig()
        self._tracker = tracker or ErrorTracker(
            threshold=self._config.error_threshold,
            reset_interval=self._config.reset_interval,
            clock=clock,
        )
        self._monitor = monitor or PerformanceMonitor(
            slow_threshold=self._config.slow_threshold,
            very_slow_threshold=self._config.very_slow_threshold,
        )
        self._timer = timer
        self._shutdown = asyncio.Event()

    @property
    def config(self) -> ResilienceConfig:
        return self._config

    @property
    def tracker(self) -> ErrorTracker:
        return self._tracker

    @property
    def monitor(self) -> PerformanceMonitor:
        return self._monitor

    def shutdown(self) -> None:
        """Interrupt pending backoff waits; their remaining attempts are dropped."""
        self._shutdown.set()

    async def run(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        options: RetryOptions | None = None,
    ) -> T:
        """Run *operation* under the resilience policy for *key*.

        The whole call, retries and fallback included, is timed under *key*.
        Calls rejected by an open circuit are not timed.
        """
        opts = options or RetryOptions()
        max_attempts = opts.max_attempts or self._config.max_attempts

        if self._tracker.is_open(key):
            logger.warning("Circuit open for %s, failing fast", key)
            raise TemporarilyUnavailableError(key, self._tracker.retry_after(key))

        started = self._timer()
        failed = True
        try:
            result = await self._attempt(key, operation, opts, max_attempts)
            failed = False
            return result
        finally:
            self._monitor.record(key, self._timer() - started, failed=failed)

    async def _attempt(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        opts: RetryOptions,
        max_attempts: int,
    ) -> T:
        with _tracer.start_as_current_span("resilience.run") as span:
            span.set_attribute(ATTR_RESILIENCE_KEY, key)
            span.set_attribute(ATTR_RESILIENCE_MAX_ATTEMPTS, max_attempts)

            last_exc: Exception | None = None
            for attempt in range(1, max_attempts + 1):
                span.set_attribute(ATTR_RESILIENCE_ATTEMPT, attempt)
                try:
                    result = await operation()
                except Exception as exc:
                    kind = error_kind(exc)
                    if kind is ErrorKind.SYSTEMIC:
                        raise
                    if kind is ErrorKind.VALIDATION:
                        self._tracker.record_failure(key)
                        logger.warning("%s rejected, not retrying: %s", key, exc)
                        raise

                    last_exc = exc
                    logger.warning(
                        "%s failed (attempt %d/%d): %s", key, attempt, max_attempts, exc
                    )
                    span.add_event("resilience.retry", {"attempt": attempt, "error": str(exc)})
                    if attempt < max_attempts and not await self._backoff(attempt):
                        logger.warning("Retry wait for %s interrupted by shutdown", key)
                        break
                    continue

                if attempt > 1:
                    self._tracker.reset(key)
                    logger.info("%s recovered after %d attempts", key, attempt)
                return result

            if last_exc is None:
                msg = f"No attempt was made for {key}"
                raise RuntimeError(msg)
            self._tracker.record_failure(key)
            span.set_status(StatusCode.ERROR, str(last_exc))

            if opts.fallback is not None:
                try:
                    fallback_result: T = await opts.fallback()
                except Exception as fallback_exc:
                    logger.error("Fallback also failed for %s: %s", key, fallback_exc)
                else:
                    logger.info("%s using fallback strategy", key)
                    span.add_event("resilience.fallback")
                    return fallback_result

            raise last_exc

    async def run_tool(self, tool_name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Tool invocations: full retry policy under ``tool:<name>``."""
        return await self.run(f"tool:{tool_name}", operation)

    async def run_search(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
        *,
        fallback: Callable[[], Awaitable[T]] | None = None,
    ) -> T:
        """Search calls: one attempt, then the fallback strategy if any."""
        return await self.run(
            f"search:{operation_name}",
            operation,
            RetryOptions(max_attempts=1, fallback=fallback),
        )

    async def run_documentation(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """Documentation calls: one attempt, guarded by the circuit."""
        return await self.run(f"docs:{operation_name}", operation, RetryOptions(max_attempts=1))

    # -- read-only views -----------------------------------------------------

    def error_statistics(self) -> dict[str, dict[str, Any]]:
        return self._tracker.snapshot()

    def performance_report(self) -> dict[str, Any]:
        return self._monitor.report()

    def is_component_healthy(self, component: str) -> bool:
        prefix = COMPONENTS.get(component, component) + ":"
        stats = self._tracker.snapshot()
        return not any(
            info["isDisabled"] for key, info in stats.items() if key.startswith(prefix)
        )

    def component_health(self) -> dict[str, dict[str, Any]]:
        """Health of the fixed component set, aggregated over each key prefix."""
        stats = self._tracker.snapshot()
        health: dict[str, dict[str, Any]] = {}
        for component, prefix in COMPONENTS.items():
            entries = [info for key, info in stats.items() if key.startswith(prefix + ":")]
            healthy = not any(info["isDisabled"] for info in entries)
            health[component] = {
                "healthy": healthy,
                "errorCount": sum(info["errorCount"] for info in entries),
                "status": "UP" if healthy else "DOWN",
            }
        return health

    def reset(self, key: str) -> None:
        self._tracker.reset(key)

    def reset_all(self) -> None:
        self._tracker.reset_all()

    async def _backoff(self, attempt: int) -> bool:
        """Sleep before the next attempt.  Returns ``False`` if shut down meanwhile."""
        delay = self._config.backoff_delay(attempt)
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
        except TimeoutError:
            return True
        return False
