"""Server layer — sessions, dispatch and transports."""

from toolwire.server.app import ToolwireServer
from toolwire.server.dispatcher import Dispatcher
from toolwire.server.models import PROTOCOL_VERSION, ServerInfo, SessionState
from toolwire.server.session import Session, SessionManager
from toolwire.server.transport import (
    SessionTransport,
    StdioSessionTransport,
    TransportClosedError,
    WebSocketSessionTransport,
)

__all__ = [
    "PROTOCOL_VERSION",
    "Dispatcher",
    "ServerInfo",
    "Session",
    "SessionManager",
    "SessionState",
    "SessionTransport",
    "StdioSessionTransport",
    "ToolwireServer",
    "TransportClosedError",
    "WebSocketSessionTransport",
]
