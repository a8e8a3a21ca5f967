"""Tool capability contract, enablement policy and registry."""

from toolwire.tools.base import BaseTool, FunctionTool, Tool, check_parameters
from toolwire.tools.discovery import discover_entry_point_tools
from toolwire.tools.errors import (
    InvalidArgumentError,
    InvalidParametersError,
    PrivilegeRequiredError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from toolwire.tools.models import ToolCategory, ToolPolicyConfig
from toolwire.tools.policy import EnablementPolicy
from toolwire.tools.registry import ToolRegistry

__all__ = [
    "BaseTool",
    "EnablementPolicy",
    "FunctionTool",
    "InvalidArgumentError",
    "InvalidParametersError",
    "PrivilegeRequiredError",
    "Tool",
    "ToolCategory",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolPolicyConfig",
    "ToolRegistry",
    "check_parameters",
    "discover_entry_point_tools",
]
