"""Shared fixtures: an in-memory session transport and an echo tool."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from toolwire.server.transport import TransportClosedError
from toolwire.tools.base import FunctionTool


class MemoryTransport:
    """Queue-backed transport.  ``feed`` inbound payloads, read ``sent``."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self._inbound: asyncio.Queue[str | None] = asyncio.Queue()
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    def feed(self, payload: str | dict[str, Any]) -> None:
        self._inbound.put_nowait(payload if isinstance(payload, str) else json.dumps(payload))

    def hang_up(self) -> None:
        self._inbound.put_nowait(None)

    def messages(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    async def send(self, data: str) -> None:
        if not self._open:
            msg = "closed"
            raise TransportClosedError(msg)
        self.sent.append(data)

    async def receive(self) -> str:
        item = await self._inbound.get()
        if item is None:
            self._open = False
            msg = "peer hung up"
            raise TransportClosedError(msg)
        return item

    async def close(self) -> None:
        self._open = False


@pytest.fixture
def memory_transport() -> MemoryTransport:
    return MemoryTransport()


@pytest.fixture
def echo_tool() -> FunctionTool:
    return FunctionTool(
        "echo",
        lambda params: params["value"],
        description="Echo the value back.",
        category="execution",
        parameter_schema={
            "type": "object",
            "properties": {"value": {"type": "string"}},
            "required": ["value"],
        },
    )


@pytest.fixture
def make_transport() -> type[MemoryTransport]:
    return MemoryTransport
