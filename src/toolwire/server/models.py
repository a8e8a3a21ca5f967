"""Data models for the server layer."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from toolwire import __version__

PROTOCOL_VERSION = "2024-11-05"


class SessionState(str, Enum):
    """Lifecycle of a client session.  ``CLOSED`` is terminal."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ServerInfo(BaseModel):
    """Identity and capabilities announced to clients."""

    name: str = "toolwire"
    version: str = __version__
    protocol_version: str = PROTOCOL_VERSION
    capabilities: dict[str, Any] = Field(
        default_factory=lambda: {"tools": {"listChanged": True}, "logging": {}},
    )
