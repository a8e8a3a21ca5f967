"""Error kinds and the root error type shared by every layer.

Retry and circuit-breaker decisions are made on :class:`ErrorKind`, read from
the ``kind`` attribute of the raised exception.  Exceptions that carry no kind
are treated as :attr:`ErrorKind.TRANSIENT`.
"""

from __future__ import annotations

from enum import Enum

from toolwire.protocol.errors import ErrorCode


class ErrorKind(str, Enum):
    """Structured classification of a failure."""

    VALIDATION = "validation"
    EXECUTION = "execution"
    TRANSIENT = "transient"
    SYSTEMIC = "systemic"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.EXECUTION, ErrorKind.TRANSIENT)


class ToolwireError(Exception):
    """Base error carrying a kind and a client-facing error code."""

    kind: ErrorKind = ErrorKind.TRANSIENT
    code: int = ErrorCode.INTERNAL_ERROR

    @property
    def error_type(self) -> str:
        """Short type label surfaced to clients (``ToolNotFound`` etc.)."""
        name = type(self).__name__
        return name[: -len("Error")] if name.endswith("Error") else name


class TemporarilyUnavailableError(ToolwireError):
    """A component's error budget is exhausted and its circuit is open."""

    kind = ErrorKind.SYSTEMIC
    code = ErrorCode.TEMPORARILY_UNAVAILABLE

    def __init__(self, key: str, retry_after: float | None = None) -> None:
        self.key = key
        self.retry_after = retry_after
        msg = f"{key} temporarily disabled due to repeated errors. Please try again later."
        super().__init__(msg)


def error_kind(exc: BaseException) -> ErrorKind:
    """Return the :class:`ErrorKind` of *exc* (``TRANSIENT`` when untagged)."""
    kind = getattr(exc, "kind", None)
    return kind if isinstance(kind, ErrorKind) else ErrorKind.TRANSIENT
