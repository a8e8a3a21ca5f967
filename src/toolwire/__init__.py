"""toolwire — expose schema-described tools to AI assistants over MCP."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from toolwire.config import ToolwireConfig as ToolwireConfig
    from toolwire.server.app import ToolwireServer as ToolwireServer
    from toolwire.tools.base import BaseTool as BaseTool
    from toolwire.tools.base import FunctionTool as FunctionTool
    from toolwire.tools.registry import ToolRegistry as ToolRegistry

_LAZY_EXPORTS = {
    "ToolwireConfig": "toolwire.config",
    "ToolwireServer": "toolwire.server.app",
    "BaseTool": "toolwire.tools.base",
    "FunctionTool": "toolwire.tools.base",
    "ToolRegistry": "toolwire.tools.registry",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'toolwire' has no attribute {name!r}")
