"""Protocol layer — JSON-RPC message model and wire codec."""

from toolwire.protocol.codec import parse_message, serialize_message
from toolwire.protocol.errors import ErrorCode, ParseError, ProtocolError
from toolwire.protocol.models import (
    JSONRPC_VERSION,
    ErrorObject,
    Message,
    Notification,
    Request,
    Response,
)

__all__ = [
    "JSONRPC_VERSION",
    "ErrorCode",
    "ErrorObject",
    "Message",
    "Notification",
    "ParseError",
    "ProtocolError",
    "Request",
    "Response",
    "parse_message",
    "serialize_message",
]
