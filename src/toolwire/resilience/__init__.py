"""Resilience layer — retries, backoff, circuit breaking and call timings."""

from toolwire.resilience.executor import COMPONENTS, ResilienceExecutor
from toolwire.resilience.models import ResilienceConfig, RetryOptions
from toolwire.resilience.performance import PerformanceMonitor
from toolwire.resilience.tracker import ErrorTracker

__all__ = [
    "COMPONENTS",
    "ErrorTracker",
    "PerformanceMonitor",
    "ResilienceConfig",
    "ResilienceExecutor",
    "RetryOptions",
]
