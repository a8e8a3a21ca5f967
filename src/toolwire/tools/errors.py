"""Error types raised by tools and the tool registry."""

from __future__ import annotations

from typing import Any

from toolwire.errors import ErrorKind, ToolwireError
from toolwire.protocol.errors import ErrorCode


class InvalidArgumentError(ValueError):
    """The registry was handed something it cannot register."""


class ToolError(ToolwireError):
    """Base error for a failed tool invocation."""

    kind = ErrorKind.EXECUTION
    code = ErrorCode.TOOL_EXECUTION_ERROR

    def __init__(self, tool_name: str, message: str, *, data: Any = None) -> None:
        self.tool_name = tool_name
        self.data = data
        super().__init__(message)


class ToolNotFoundError(ToolError):
    """No tool is registered under the requested name."""

    kind = ErrorKind.VALIDATION
    code = ErrorCode.TOOL_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool not found: {tool_name}")


class InvalidParametersError(ToolError):
    """The arguments do not satisfy the tool's parameter constraints."""

    kind = ErrorKind.VALIDATION
    code = ErrorCode.INVALID_PARAMS

    def __init__(self, tool_name: str, detail: str, *, data: Any = None) -> None:
        self.detail = detail
        super().__init__(tool_name, f"Invalid parameters for {tool_name}: {detail}", data=data)


class PrivilegeRequiredError(ToolError):
    """The tool needs elevated privileges the caller does not hold."""

    kind = ErrorKind.VALIDATION
    code = ErrorCode.PRIVILEGE_REQUIRED

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool requires elevated privileges: {tool_name}")


class ToolExecutionError(ToolError):
    """The tool's ``execute`` failed.  The underlying error is ``__cause__``."""

    def __init__(self, tool_name: str, detail: str = "", *, data: Any = None) -> None:
        self.detail = detail
        super().__init__(
            tool_name,
            f"Tool execution failed: {tool_name}" + (f": {detail}" if detail else ""),
            data=data,
        )
