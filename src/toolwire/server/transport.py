"""Server-side transports — websocket and stdio.

Each transport satisfies the :class:`SessionTransport` protocol: ``send`` one
text frame, ``receive`` the next inbound payload, ``close``.  Both raise
:class:`TransportClosedError` once the peer is gone.
"""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

if TYPE_CHECKING:
    from websockets.asyncio.server import ServerConnection


class TransportClosedError(Exception):
    """The peer closed the connection; no further frames can be exchanged."""


@runtime_checkable
class SessionTransport(Protocol):
    """Abstract bidirectional text channel owned by one session."""

    @property
    def is_open(self) -> bool: ...
    async def send(self, data: str) -> None: ...
    async def receive(self) -> str | bytes: ...
    async def close(self) -> None: ...


class WebSocketSessionTransport:
    """Adapts a ``websockets`` server connection."""

    def __init__(self, connection: ServerConnection) -> None:
        self._ws = connection

    @property
    def is_open(self) -> bool:
        return self._ws.state is State.OPEN

    @property
    def remote_address(self) -> object:
        return self._ws.remote_address

    async def send(self, data: str) -> None:
        try:
            await self._ws.send(data)
        except ConnectionClosed as exc:
            raise TransportClosedError(str(exc)) from exc

    async def receive(self) -> str | bytes:
        try:
            return await self._ws.recv()
        except ConnectionClosed as exc:
            raise TransportClosedError(str(exc)) from exc

    async def close(self) -> None:
        await self._ws.close()


class StdioSessionTransport:
    """Newline-delimited JSON over a stream reader and a text writer.

    Use :meth:`connect` to attach to the process's stdin/stdout.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: TextIO) -> None:
        self._reader = reader
        self._writer = writer
        self._closed = False

    @classmethod
    async def connect(cls) -> StdioSessionTransport:
        """Attach to ``sys.stdin`` / ``sys.stdout``."""
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        return cls(reader, sys.stdout)

    @property
    def is_open(self) -> bool:
        return not self._closed

    async def send(self, data: str) -> None:
        if self._closed:
            msg = "Transport closed"
            raise TransportClosedError(msg)
        try:
            self._writer.write(data + "\n")
            self._writer.flush()
        except OSError as exc:
            self._closed = True
            raise TransportClosedError(str(exc)) from exc

    async def receive(self) -> str | bytes:
        while not self._closed:
            line = await self._reader.readline()
            if not line:
                self._closed = True
                break
            if line.strip():
                return line.strip()
        msg = "Transport closed"
        raise TransportClosedError(msg)

    async def close(self) -> None:
        self._closed = True
