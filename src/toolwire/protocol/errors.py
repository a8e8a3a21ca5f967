"""Shared error types and codes for the protocol layer."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """JSON-RPC 2.0 error codes plus the server-specific range."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    TOOL_NOT_FOUND = -32001
    TOOL_EXECUTION_ERROR = -32002
    PRIVILEGE_REQUIRED = -32006
    TEMPORARILY_UNAVAILABLE = -32007


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class ParseError(ProtocolError):
    """An inbound payload is not a well-formed protocol message."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Parse error" + (f": {detail}" if detail else ""))
