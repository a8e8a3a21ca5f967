"""ToolRegistry — holds the invocable tools and executes them by name.

The name-to-tool map is an immutable snapshot.  Readers (listing, execution)
never lock; registration builds a new mapping under a lock and swaps it in.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections import Counter
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from opentelemetry.trace import StatusCode

from toolwire.tools.base import Tool
from toolwire.tools.errors import (
    InvalidArgumentError,
    InvalidParametersError,
    PrivilegeRequiredError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from toolwire.tools.models import ToolPolicyConfig
from toolwire.tools.policy import EnablementPolicy
from toolwire.utils.telemetry import ATTR_TOOL_CATEGORY, ATTR_TOOL_NAME, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolRegistry:
    """Name-keyed registry of :class:`Tool` instances.

    Usage::

        registry = ToolRegistry(EnablementPolicy(ToolPolicyConfig(code_execution=True)))
        registry.discover_and_register([echo_tool, query_tool])

        registry.tool_definitions()                      # what tools/list returns
        result = await registry.execute("echo", {"value": "hi"})
    """

    def __init__(self, policy: EnablementPolicy | None = None) -> None:
        self._policy = policy or EnablementPolicy()
        self._tools: Mapping[str, Tool] = MappingProxyType({})
        self._lock = threading.Lock()

    @property
    def policy(self) -> EnablementPolicy:
        return self._policy

    # -- registration ------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """Register *tool*, replacing any tool already registered under its name."""
        name = _checked_name(tool)
        with self._lock:
            if name in self._tools:
                logger.warning(
                    "Tool with name '%s' already exists. Replacing with new implementation.",
                    name,
                )
            updated = dict(self._tools)
            updated[name] = tool
            self._tools = MappingProxyType(updated)

    def discover_and_register(
        self,
        candidates: Iterable[Tool],
        policy: EnablementPolicy | ToolPolicyConfig | None = None,
    ) -> list[str]:
        """Rebuild the registry from *candidates* that pass the enablement policy.

        Tools rejected by the policy are skipped and never listed.  The previous
        contents are replaced, so re-running discovery after a policy change
        removes tools that are no longer allowed.  Returns the registered names.
        """
        if isinstance(policy, ToolPolicyConfig):
            policy = EnablementPolicy(policy)
        if policy is not None:
            self._policy = policy

        accepted: dict[str, Tool] = {}
        for tool in candidates:
            name = _checked_name(tool)
            if not self._policy.is_enabled(tool):
                logger.debug("Tool disabled by configuration: %s", name)
                continue
            if name in accepted:
                logger.warning(
                    "Tool with name '%s' already exists. Replacing with new implementation.",
                    name,
                )
            accepted[name] = tool
            logger.debug("Registered tool: %s [%s]", name, tool.category)

        with self._lock:
            self._tools = MappingProxyType(accepted)

        logger.info("Initialized tool registry with %d tools", len(accepted))
        return list(accepted)

    # -- lookups -----------------------------------------------------------
    # Everything except ``get`` and ``statistics`` hides tools the policy rejects.

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def exposed(self, name: str) -> Tool | None:
        """Return the tool registered as *name* if the policy lets clients see it."""
        tool = self._tools.get(name)
        if tool is None or not self._policy.is_enabled(tool):
            return None
        return tool

    def names(self) -> list[str]:
        return [tool.name for tool in self._visible()]

    def list_tools(self) -> list[Tool]:
        return self._visible()

    def list_by_category(self, category: str) -> list[Tool]:
        return [tool for tool in self._visible() if tool.category == category]

    def tool_definitions(self) -> list[dict[str, Any]]:
        """Return the ``tools/list`` payload entries."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.parameter_schema,
            }
            for tool in self._visible()
        ]

    def statistics(self) -> dict[str, Any]:
        tools = list(self._tools.values())
        enabled = sum(1 for tool in tools if self._policy.is_enabled(tool))
        return {
            "totalTools": len(tools),
            "toolsByCategory": dict(Counter(tool.category for tool in tools)),
            "enabledTools": enabled,
            "disabledTools": len(tools) - enabled,
        }

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.exposed(name) is not None

    def __len__(self) -> int:
        return len(self._visible())

    def _visible(self) -> list[Tool]:
        return [tool for tool in self._tools.values() if self._policy.is_enabled(tool)]

    # -- execution ---------------------------------------------------------

    async def execute(
        self,
        name: str,
        params: dict[str, Any],
        *,
        elevated: bool | None = None,
    ) -> Any:
        """Validate, authorize, then execute the named tool.

        *elevated* overrides the policy's privilege decision for this call.

        Raises:
            ToolNotFoundError: No tool is registered under *name*, or the
                policy hides it.
            InvalidParametersError: ``validate_parameters`` rejected *params*.
            PrivilegeRequiredError: The tool needs elevation the caller lacks.
            ToolExecutionError: ``execute`` failed; the original error is chained.
        """
        tool = self.exposed(name)
        if tool is None:
            raise ToolNotFoundError(name)

        try:
            tool.validate_parameters(params)
        except ToolError:
            raise
        except Exception as exc:
            raise InvalidParametersError(name, str(exc)) from exc

        is_elevated = self._policy.has_elevated_privileges() if elevated is None else elevated
        if tool.requires_elevated_privileges and not is_elevated:
            raise PrivilegeRequiredError(name)

        with _tracer.start_as_current_span("tool.execute") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_TOOL_CATEGORY, tool.category)
            logger.debug("Executing tool: %s with params: %s", name, params)
            try:
                result = await _invoke(tool, params)
            except ToolError as exc:
                span.set_status(StatusCode.ERROR, str(exc))
                raise
            except Exception as exc:
                span.set_status(StatusCode.ERROR, str(exc))
                logger.error("Tool execution failed: %s - %s", name, exc)
                raise ToolExecutionError(name, str(exc)) from exc
            logger.debug("Tool execution completed: %s", name)
            return result


async def _invoke(tool: Tool, params: dict[str, Any]) -> Any:
    """Run ``tool.execute``; synchronous implementations go to a worker thread."""
    if inspect.iscoroutinefunction(tool.execute):
        return await tool.execute(params)
    result = await asyncio.to_thread(tool.execute, params)
    if inspect.isawaitable(result):
        result = await result
    return result


def _checked_name(tool: Tool | None) -> str:
    if tool is None:
        msg = "Tool cannot be None"
        raise InvalidArgumentError(msg)
    name = getattr(tool, "name", None)
    if not isinstance(name, str) or not name.strip():
        msg = "Tool name cannot be empty"
        raise InvalidArgumentError(msg)
    return name
