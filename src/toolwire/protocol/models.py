"""Protocol message models — JSON-RPC 2.0 requests, responses and notifications.

Every model is frozen.  ``to_wire()`` is the structural inverse of
:func:`toolwire.protocol.codec.parse_message`: fields that were never set are
left out of the payload instead of being emitted as ``null``.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from toolwire.protocol.errors import ErrorCode

JSONRPC_VERSION = "2.0"

RequestId = Union[StrictInt, StrictStr]


# ---------------------------------------------------------------------------
# Error object
# ---------------------------------------------------------------------------


class ErrorObject(BaseModel):
    """A JSON-RPC 2.0 error object."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Any = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            wire["data"] = self.data
        return wire

    @classmethod
    def parse_error(cls, message: str | None = None) -> ErrorObject:
        return cls(code=ErrorCode.PARSE_ERROR, message=message or "Parse error")

    @classmethod
    def invalid_request(cls, message: str | None = None) -> ErrorObject:
        return cls(code=ErrorCode.INVALID_REQUEST, message=message or "Invalid request")

    @classmethod
    def method_not_found(cls, method: str) -> ErrorObject:
        return cls(code=ErrorCode.METHOD_NOT_FOUND, message=f"Method not found: {method}")

    @classmethod
    def invalid_params(cls, message: str | None = None) -> ErrorObject:
        return cls(code=ErrorCode.INVALID_PARAMS, message=message or "Invalid params")

    @classmethod
    def internal_error(cls, message: str | None = None, data: Any = None) -> ErrorObject:
        return cls(code=ErrorCode.INTERNAL_ERROR, message=message or "Internal error", data=data)

    @classmethod
    def tool_not_found(cls, tool_name: str) -> ErrorObject:
        return cls(code=ErrorCode.TOOL_NOT_FOUND, message=f"Tool not found: {tool_name}")

    @classmethod
    def tool_execution_error(cls, message: str, data: Any = None) -> ErrorObject:
        return cls(code=ErrorCode.TOOL_EXECUTION_ERROR, message=message, data=data)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Request(BaseModel):
    """A call that expects exactly one :class:`Response` with the same ``id``."""

    model_config = ConfigDict(frozen=True)

    id: RequestId
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id, "method": self.method}
        if "params" in self.model_fields_set:
            wire["params"] = self.params
        return wire


class Response(BaseModel):
    """The answer to a :class:`Request` — carries a result or an error, never both."""

    model_config = ConfigDict(frozen=True)

    id: RequestId | None
    result: Any = None
    error: ErrorObject | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> Response:
        has_result = "result" in self.model_fields_set
        has_error = self.error is not None
        if has_result == has_error:
            msg = "response must carry exactly one of 'result' or 'error'"
            raise ValueError(msg)
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, request_id: RequestId | None, result: Any) -> Response:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: RequestId | None, error: ErrorObject) -> Response:
        return cls(id=request_id, error=error)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            wire["error"] = self.error.to_wire()
        else:
            wire["result"] = self.result
        return wire


class Notification(BaseModel):
    """A one-way message.  Never answered, even when handling it fails."""

    model_config = ConfigDict(frozen=True)

    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": self.method}
        if "params" in self.model_fields_set:
            wire["params"] = self.params
        return wire


Message = Union[Request, Response, Notification]
