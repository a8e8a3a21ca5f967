"""Sessions and the SessionManager that owns them.

Each connection is driven by one task running :meth:`SessionManager.serve`:
inbound payloads are handled strictly in arrival order, and every write to a
session goes through that session's own lock, so concurrent senders (a reply
and a broadcast, say) never interleave frames.  Sessions never share a lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import TYPE_CHECKING, Any

from toolwire.protocol.codec import serialize_message
from toolwire.server.models import SessionState
from toolwire.server.transport import TransportClosedError

if TYPE_CHECKING:
    from toolwire.protocol.models import Message, Notification
    from toolwire.server.dispatcher import Dispatcher
    from toolwire.server.transport import SessionTransport

logger = logging.getLogger(__name__)


class Session:
    """A live client connection."""

    def __init__(
        self,
        transport: SessionTransport,
        *,
        session_id: str | None = None,
        elevated: bool | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.transport = transport
        self.elevated = elevated
        self.initialized = False
        self.client_info: dict[str, Any] = {}
        self.connected_at = time.time()
        self._state = SessionState.CONNECTING
        self._send_lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN and self.transport.is_open

    def mark_open(self) -> None:
        if self._state is not SessionState.CONNECTING:
            msg = f"Session {self.id} cannot open from state {self._state.value}"
            raise RuntimeError(msg)
        self._state = SessionState.OPEN

    def mark_closed(self) -> None:
        self._state = SessionState.CLOSED

    async def send(self, message: Message) -> bool:
        """Write *message*; returns ``False`` if the session was already gone.

        Writes to a closed session are dropped, not raised.
        """
        text = serialize_message(message)
        async with self._send_lock:
            if not self.is_open:
                logger.warning("Cannot send message to closed session: %s", self.id)
                return False
            try:
                await self.transport.send(text)
            except TransportClosedError:
                logger.warning("Session %s closed while sending, message dropped", self.id)
                self._state = SessionState.CLOSED
                return False
        logger.debug("Sending message: %s", text)
        return True

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, state={self._state.value!r})"


class SessionManager:
    """Owns the live sessions and drives each one through its lifecycle.

    Usage::

        manager = SessionManager(dispatcher)
        await manager.serve(WebSocketSessionTransport(connection))
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher
        self._sessions: dict[str, Session] = {}
        self._started_at = time.time()

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, transport: SessionTransport, *, elevated: bool | None = None) -> Session:
        """Register a new session and greet it with the welcome notification."""
        session = self._register(transport, elevated)
        await session.send(self._dispatcher.welcome_notification())
        return session

    async def close(self, session: Session) -> None:
        """Remove *session* and close its transport.  Safe to call twice."""
        session.mark_closed()
        if self._sessions.pop(session.id, None) is None:
            return
        try:
            await session.transport.close()
        except Exception as exc:
            logger.debug("Error closing transport for %s: %s", session.id, exc)
        logger.info("MCP client disconnected: %s", session.id)

    async def serve(self, transport: SessionTransport, *, elevated: bool | None = None) -> None:
        """Run one session until its peer disconnects.

        A payload that cannot be handled is logged and skipped; only the
        transport going away ends the session.
        """
        session = self._register(transport, elevated)
        try:
            await session.send(self._dispatcher.welcome_notification())
            while session.state is SessionState.OPEN:
                try:
                    payload = await transport.receive()
                except TransportClosedError:
                    break
                except Exception as exc:
                    logger.error("Transport error in session %s: %s", session.id, exc)
                    break

                try:
                    response = await self._dispatcher.handle_payload(payload, session)
                    if response is not None:
                        await session.send(response)
                except Exception:
                    logger.exception("Error processing message in session %s", session.id)
        finally:
            await self.close(session)

    async def broadcast(self, notification: Notification) -> int:
        """Send *notification* to every open session; returns how many got it."""
        targets = self.sessions()
        if not targets:
            return 0
        delivered = await asyncio.gather(*(s.send(notification) for s in targets))
        return sum(1 for ok in delivered if ok)

    async def close_all(self) -> None:
        for session in self.sessions():
            await self.close(session)

    def statistics(self) -> dict[str, Any]:
        return {
            "activeSessions": len(self._sessions),
            "totalTools": len(self._dispatcher.registry),
            "messagesProcessed": self._dispatcher.messages_processed,
            "uptime": time.time() - self._started_at,
        }

    def _register(self, transport: SessionTransport, elevated: bool | None) -> Session:
        session = Session(transport, elevated=elevated)
        session.mark_open()
        self._sessions[session.id] = session
        logger.info("MCP client connected: %s", session.id)
        return session
