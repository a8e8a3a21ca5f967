"""Tests for ErrorTracker."""

from __future__ import annotations

import threading

from toolwire.resilience.tracker import ErrorTracker


class _Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestErrorTracker:
    def test_record_failure_counts(self) -> None:
        tracker = ErrorTracker()
        assert tracker.record_failure("tool:a") == 1
        assert tracker.record_failure("tool:a") == 2
        assert tracker.error_count("tool:a") == 2
        assert tracker.error_count("tool:b") == 0

    def test_opens_at_threshold(self) -> None:
        tracker = ErrorTracker(threshold=3)
        for _ in range(2):
            tracker.record_failure("k")
        assert not tracker.is_open("k")
        tracker.record_failure("k")
        assert tracker.is_open("k")

    def test_closes_after_reset_interval(self) -> None:
        clock = _Clock()
        tracker = ErrorTracker(threshold=1, reset_interval=300.0, clock=clock)
        tracker.record_failure("k")

        clock.now += 299.0
        assert tracker.is_open("k")

        clock.now += 1.0
        assert not tracker.is_open("k")
        assert tracker.error_count("k") == 0
        assert tracker.keys() == []

    def test_retry_after(self) -> None:
        clock = _Clock()
        tracker = ErrorTracker(threshold=1, reset_interval=300.0, clock=clock)
        assert tracker.retry_after("k") is None
        tracker.record_failure("k")
        clock.now += 100.0
        assert tracker.retry_after("k") == 200.0

    def test_reset(self) -> None:
        tracker = ErrorTracker()
        tracker.record_failure("a")
        tracker.record_failure("b")
        tracker.reset("a")
        assert tracker.keys() == ["b"]
        tracker.reset_all()
        assert tracker.keys() == []

    def test_keys_by_prefix(self) -> None:
        tracker = ErrorTracker()
        tracker.record_failure("tool:a")
        tracker.record_failure("search:q")
        assert tracker.keys("tool:") == ["tool:a"]

    def test_snapshot(self) -> None:
        clock = _Clock()
        tracker = ErrorTracker(threshold=2, clock=clock)
        tracker.record_failure("k")
        tracker.record_failure("k")
        clock.now += 5.0
        assert tracker.snapshot() == {
            "k": {
                "errorCount": 2,
                "lastErrorTime": 1_000.0,
                "timeSinceLastError": 5.0,
                "isDisabled": True,
            }
        }

    def test_snapshot_does_not_expire_entries(self) -> None:
        clock = _Clock()
        tracker = ErrorTracker(threshold=1, reset_interval=10.0, clock=clock)
        tracker.record_failure("k")
        clock.now += 20.0
        assert tracker.snapshot()["k"]["isDisabled"] is False
        assert tracker.keys() == ["k"]

    def test_concurrent_failures_are_not_lost(self) -> None:
        tracker = ErrorTracker()

        def hammer() -> None:
            for _ in range(500):
                tracker.record_failure("k")

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert tracker.error_count("k") == 4_000
