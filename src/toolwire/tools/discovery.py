"""Collect tool instances published by installed packages.

Packages advertise tools under the ``toolwire.tools`` entry-point group::

    [project.entry-points."toolwire.tools"]
    read-logs = "acme_tools.logs:ReadLogsTool"

An entry point may name a tool class (instantiated with no arguments), a tool
instance, or a zero-argument factory returning either.
"""

from __future__ import annotations

import inspect
import logging
from importlib.metadata import entry_points
from typing import Any

from toolwire.tools.base import Tool

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "toolwire.tools"


def discover_entry_point_tools(group: str = ENTRY_POINT_GROUP) -> list[Tool]:
    """Load every tool advertised under *group*.

    Entry points that fail to load, or that do not produce a :class:`Tool`,
    are logged and skipped.
    """
    tools: list[Tool] = []
    for ep in entry_points(group=group):
        try:
            target: Any = ep.load()
            instance = target() if inspect.isclass(target) or _is_factory(target) else target
        except Exception:
            logger.exception("Failed to load tool entry point %s", ep.name)
            continue

        if not isinstance(instance, Tool):
            logger.warning("Entry point %s did not produce a tool: %r", ep.name, instance)
            continue
        tools.append(instance)

    logger.debug("Discovered %d tool(s) from entry points", len(tools))
    return tools


def _is_factory(target: Any) -> bool:
    return callable(target) and not isinstance(target, Tool)
