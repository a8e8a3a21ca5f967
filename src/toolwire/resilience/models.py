"""Data models for the resilience layer."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


class ResilienceConfig(BaseModel):
    """Retry, backoff and circuit-breaker tunables."""

    max_attempts: int = Field(default=3, ge=1, description="Attempts per call, first one included.")
    base_delay: float = Field(default=1.0, ge=0, description="Backoff before the first retry, in seconds.")
    max_delay: float = Field(default=10.0, ge=0, description="Upper bound for any backoff, in seconds.")
    error_threshold: int = Field(
        default=100,
        ge=1,
        description="Recorded failures that open a component's circuit.",
    )
    reset_interval: float = Field(
        default=300.0,
        gt=0,
        description="Seconds since the last failure after which an open circuit resets.",
    )
    slow_threshold: float = Field(
        default=1.0,
        gt=0,
        description="Calls taking longer than this many seconds count as slow.",
    )
    very_slow_threshold: float = Field(
        default=5.0,
        gt=0,
        description="Calls taking longer than this many seconds count as very slow.",
    )

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed *attempt* (1-based): exponential, capped at ``max_delay``."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)


@dataclass(frozen=True)
class RetryOptions:
    """Per-call overrides for :meth:`ResilienceExecutor.run`."""

    max_attempts: int | None = None
    """Overrides :attr:`ResilienceConfig.max_attempts` when set."""

    fallback: Callable[[], Awaitable[Any]] | None = None
    """Tried once after the final failure.  Its own failure is logged, not counted."""
