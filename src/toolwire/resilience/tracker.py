"""ErrorTracker — per-component failure counters backing the circuit breaker.

Entries are keyed by component id (``tool:<name>``, ``search:<operation>``,
``docs:<operation>`` ...).  All reads and writes go through one lock so
concurrent failures from different sessions, or from tool worker threads,
never lose an update.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    count: int = 0
    last_error: float = 0.0


class ErrorTracker:
    """Counts failures per key and decides whether a key's circuit is open.

    A circuit is open while the key has at least *threshold* recorded failures
    and fewer than *reset_interval* seconds have passed since the last one.
    Once the interval elapses the entry is dropped on the next evaluation.
    """

    def __init__(
        self,
        *,
        threshold: int = 100,
        reset_interval: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._threshold = threshold
        self._reset_interval = reset_interval
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def reset_interval(self) -> float:
        return self._reset_interval

    def record_failure(self, key: str) -> int:
        """Increment the failure count for *key* and return the new count."""
        with self._lock:
            entry = self._entries.setdefault(key, _Entry())
            entry.count += 1
            entry.last_error = self._clock()
            return entry.count

    def reset(self, key: str) -> None:
        with self._lock:
            removed = self._entries.pop(key, None)
        if removed is not None:
            logger.info("Reset error count for: %s", key)

    def reset_all(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Reset all error counts")

    def error_count(self, key: str) -> int:
        with self._lock:
            entry = self._entries.get(key)
            return entry.count if entry else 0

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [key for key in self._entries if key.startswith(prefix)]

    def is_open(self, key: str) -> bool:
        """Return whether *key* should fail fast, expiring a stale entry."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.count < self._threshold:
                return False
            if now - entry.last_error < self._reset_interval:
                return True
            del self._entries[key]
        logger.info("Error window elapsed, circuit closed for: %s", key)
        return False

    def retry_after(self, key: str) -> float | None:
        """Seconds until an open circuit for *key* closes, or ``None`` if closed."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.count < self._threshold:
                return None
            return max(0.0, self._reset_interval - (now - entry.last_error))

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Per-key statistics.  Read-only: stale entries are reported, not dropped."""
        now = self._clock()
        with self._lock:
            return {
                key: {
                    "errorCount": entry.count,
                    "lastErrorTime": entry.last_error,
                    "timeSinceLastError": now - entry.last_error,
                    "isDisabled": entry.count >= self._threshold
                    and now - entry.last_error < self._reset_interval,
                }
                for key, entry in self._entries.items()
            }
