"""EnablementPolicy — decides which tools are exposed and who is elevated.

Pure logic, no I/O.  A tool is exposed only when:

1. tools are globally enabled,
2. its category switch (database / execution / web / logging) is on,
3. its own ``enabled`` flag is true.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from toolwire.tools.models import ToolPolicyConfig

if TYPE_CHECKING:
    from toolwire.tools.base import Tool


class EnablementPolicy:
    """Evaluate tools against a :class:`ToolPolicyConfig`."""

    def __init__(self, config: ToolPolicyConfig | None = None) -> None:
        self._config = config or ToolPolicyConfig()

    @property
    def config(self) -> ToolPolicyConfig:
        return self._config

    def is_enabled(self, tool: Tool) -> bool:
        if not self._config.enabled:
            return False
        if not self._config.category_allowed(tool.category):
            return False
        return bool(tool.enabled)

    def has_elevated_privileges(self) -> bool:
        """Callers are elevated only when the sandbox is off."""
        return not self._config.sandbox_enabled
