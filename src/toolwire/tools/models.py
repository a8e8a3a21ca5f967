"""Data models for tool enablement policy."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ToolCategory(str, Enum):
    """Categories with an individual policy switch.

    Tools in any other category are governed by the global switch only.
    """

    DATABASE = "database"
    EXECUTION = "execution"
    WEB = "web"
    LOGGING = "logging"


class ToolPolicyConfig(BaseModel):
    """Which tools may be exposed, and whether callers are elevated."""

    enabled: bool = Field(default=True, description="Master switch for all tools.")
    database_access: bool = Field(default=True, description="Allow 'database' tools.")
    code_execution: bool = Field(default=False, description="Allow 'execution' tools.")
    endpoint_scanning: bool = Field(default=True, description="Allow 'web' tools.")
    log_access: bool = Field(default=True, description="Allow 'logging' tools.")
    sandbox_enabled: bool = Field(
        default=True,
        description="When sandboxed, callers do not hold elevated privileges.",
    )

    def category_allowed(self, category: str) -> bool:
        switches = {
            ToolCategory.DATABASE.value: self.database_access,
            ToolCategory.EXECUTION.value: self.code_execution,
            ToolCategory.WEB.value: self.endpoint_scanning,
            ToolCategory.LOGGING.value: self.log_access,
        }
        return switches.get(category, True)
