"""PerformanceMonitor — per-operation execution counts and timings.

Operations are keyed the same way as the error tracker (``tool:<name>``,
``search:<operation>`` ...).  Durations are recorded in seconds and reported
in milliseconds.  One lock guards every entry, so concurrent sessions and tool
worker threads can record at the same time.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Average-duration ceilings (seconds) for each performance class, fastest first.
_CLASSES: tuple[tuple[float, str], ...] = (
    (0.05, "EXCELLENT"),
    (0.2, "GOOD"),
    (1.0, "ACCEPTABLE"),
    (5.0, "SLOW"),
)


def classify(average: float) -> str:
    """Name the performance class of an average duration in seconds."""
    for ceiling, label in _CLASSES:
        if average < ceiling:
            return label
    return "VERY_SLOW"


@dataclass
class _Timing:
    count: int = 0
    failures: int = 0
    total: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    slow: int = 0
    very_slow: int = 0

    @property
    def average(self) -> float:
        return self.total / self.count if self.count else 0.0


class PerformanceMonitor:
    """Collects execution counts and min/avg/max durations per operation.

    Calls longer than *slow_threshold* are counted as slow and logged at debug
    level; calls longer than *very_slow_threshold* are counted as very slow
    and logged as warnings.

    Usage::

        monitor = PerformanceMonitor()
        monitor.record("tool:echo", 0.012)
        monitor.report()["summary"]["totalOperations"]   # 1
    """

    def __init__(self, *, slow_threshold: float = 1.0, very_slow_threshold: float = 5.0) -> None:
        self._slow_threshold = slow_threshold
        self._very_slow_threshold = very_slow_threshold
        self._timings: dict[str, _Timing] = {}
        self._lock = threading.Lock()

    def record(self, operation: str, duration: float, *, failed: bool = False) -> None:
        """Add one execution of *operation* that took *duration* seconds."""
        with self._lock:
            timing = self._timings.get(operation)
            if timing is None:
                timing = self._timings[operation] = _Timing(minimum=duration, maximum=duration)
            timing.count += 1
            timing.total += duration
            timing.minimum = min(timing.minimum, duration)
            timing.maximum = max(timing.maximum, duration)
            if failed:
                timing.failures += 1
            if duration > self._very_slow_threshold:
                timing.very_slow += 1
            elif duration > self._slow_threshold:
                timing.slow += 1

        if duration > self._very_slow_threshold:
            logger.warning(
                "Very slow execution detected for '%s': %.0fms", operation, duration * 1000
            )
        elif duration > self._slow_threshold:
            logger.debug("Slow execution detected for '%s': %.0fms", operation, duration * 1000)

    def operation_stats(self, operation: str) -> dict[str, Any] | None:
        """Statistics for one operation, or ``None`` if it never ran."""
        with self._lock:
            timing = self._timings.get(operation)
            return _stats(timing) if timing is not None else None

    def report(self) -> dict[str, Any]:
        """Summary, per-operation statistics and the operations averaging as slow."""
        with self._lock:
            operations = {key: _stats(timing) for key, timing in self._timings.items()}
            total_count = sum(t.count for t in self._timings.values())
            total_time = sum(t.total for t in self._timings.values())
            slow = [key for key, t in self._timings.items() if t.average > self._slow_threshold]

        return {
            "summary": {
                "totalOperations": total_count,
                "totalExecutionTimeMs": _ms(total_time),
                "averageExecutionTimeMs": _ms(total_time / total_count) if total_count else 0.0,
                "monitoredOperations": len(operations),
            },
            "operations": operations,
            "slowOperations": sorted(slow),
        }

    def top_operations(self, limit: int = 5) -> list[dict[str, Any]]:
        """The *limit* fastest operations by average duration."""
        return self._ranked(limit, slowest=False)

    def worst_operations(self, limit: int = 5) -> list[dict[str, Any]]:
        """The *limit* slowest operations by average duration."""
        return self._ranked(limit, slowest=True)

    def reset(self, operation: str | None = None) -> None:
        """Forget *operation*, or every operation when none is given."""
        with self._lock:
            if operation is None:
                self._timings.clear()
            else:
                self._timings.pop(operation, None)
        logger.info("Performance statistics reset for: %s", operation or "all operations")

    def _ranked(self, limit: int, *, slowest: bool) -> list[dict[str, Any]]:
        with self._lock:
            ranked = sorted(
                self._timings.items(), key=lambda item: item[1].average, reverse=slowest
            )
            return [
                {
                    "operation": key,
                    "averageTimeMs": _ms(timing.average),
                    "executionCount": timing.count,
                    "performance": classify(timing.average),
                }
                for key, timing in ranked[:limit]
            ]


def _ms(seconds: float) -> float:
    return round(seconds * 1000, 3)


def _stats(timing: _Timing) -> dict[str, Any]:
    return {
        "executionCount": timing.count,
        "failureCount": timing.failures,
        "totalTimeMs": _ms(timing.total),
        "averageTimeMs": _ms(timing.average),
        "minTimeMs": _ms(timing.minimum),
        "maxTimeMs": _ms(timing.maximum),
        "slowExecutions": timing.slow,
        "verySlowExecutions": timing.very_slow,
        "performance": classify(timing.average),
    }
