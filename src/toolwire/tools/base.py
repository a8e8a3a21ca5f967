"""Tool capability contract.

- ``Tool`` — runtime-checkable protocol every tool must satisfy.
- ``BaseTool`` — base class with the usual defaults and schema-driven
  parameter validation.
- ``FunctionTool`` — wraps a plain (sync or async) callable as a tool.

``validate_parameters`` must be fast and side-effect free: the registry calls it
on every invocation, before the privilege check.  ``execute`` is the only
operation allowed to have side effects or take non-trivial time.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from toolwire.tools.errors import InvalidParametersError

_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@runtime_checkable
class Tool(Protocol):
    """A named, schema-described invocable capability."""

    name: str
    description: str
    category: str
    parameter_schema: dict[str, Any]
    enabled: bool
    requires_elevated_privileges: bool

    def validate_parameters(self, params: dict[str, Any]) -> None:
        """Raise :class:`InvalidParametersError` when *params* are unacceptable."""
        ...

    def execute(self, params: dict[str, Any]) -> Any:
        """Run the tool.  May be a coroutine function."""
        ...

    def usage_examples(self) -> dict[str, Any]:
        """Example invocations, for documentation only."""
        ...


class BaseTool(abc.ABC):
    """Convenience base for concrete tools.

    Subclasses set the class attributes and implement :meth:`execute`, either
    as a regular method (run in a worker thread) or as ``async def``.
    """

    name: str = ""
    description: str = ""
    category: str = "general"
    parameter_schema: dict[str, Any] = _EMPTY_SCHEMA
    enabled: bool = True
    requires_elevated_privileges: bool = False

    def usage_examples(self) -> dict[str, Any]:
        return {}

    def validate_parameters(self, params: dict[str, Any]) -> None:
        check_parameters(self.name, params, self.parameter_schema)

    @abc.abstractmethod
    def execute(self, params: dict[str, Any]) -> Any: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, category={self.category!r})"


class FunctionTool(BaseTool):
    """Expose a callable taking the params mapping as a tool.

    Usage::

        echo = FunctionTool(
            "echo",
            lambda params: params["value"],
            category="execution",
            parameter_schema={
                "type": "object",
                "properties": {"value": {"type": "string"}},
                "required": ["value"],
            },
        )
    """

    def __init__(
        self,
        name: str,
        func: Callable[[dict[str, Any]], Any],
        *,
        description: str | None = None,
        category: str = "general",
        parameter_schema: dict[str, Any] | None = None,
        enabled: bool = True,
        requires_elevated_privileges: bool = False,
        examples: dict[str, Any] | None = None,
    ) -> None:
        self.name = name
        self.func = func
        self.description = description if description is not None else (func.__doc__ or "").strip()
        self.category = category
        self.parameter_schema = parameter_schema or dict(_EMPTY_SCHEMA)
        self.enabled = enabled
        self.requires_elevated_privileges = requires_elevated_privileges
        self._examples = examples or {}

    def usage_examples(self) -> dict[str, Any]:
        return dict(self._examples)

    def execute(self, params: dict[str, Any]) -> Any:
        return self.func(params)


# ---------------------------------------------------------------------------
# Schema checks
# ---------------------------------------------------------------------------

_JSON_TYPES: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, Mapping),
    "array": lambda v: isinstance(v, list),
    "null": lambda v: v is None,
}


def check_parameters(tool_name: str, params: Any, schema: Mapping[str, Any]) -> None:
    """Check *params* against the top level of a JSON Schema object.

    Covers ``required``, primitive ``type`` (single or list), ``enum`` and
    ``additionalProperties: false``.  Nested schemas are not descended into.

    Raises:
        InvalidParametersError: On the first violated constraint.
    """
    if not isinstance(params, Mapping):
        raise InvalidParametersError(tool_name, "parameters must be an object")

    missing = [key for key in schema.get("required", []) if key not in params]
    if missing:
        raise InvalidParametersError(
            tool_name,
            f"missing required parameter(s): {', '.join(missing)}",
            data={"missing": missing},
        )

    properties: Mapping[str, Any] = schema.get("properties", {})

    if schema.get("additionalProperties") is False:
        unknown = sorted(key for key in params if key not in properties)
        if unknown:
            raise InvalidParametersError(
                tool_name,
                f"unknown parameter(s): {', '.join(unknown)}",
                data={"unknown": unknown},
            )

    for key, value in params.items():
        prop = properties.get(key)
        if not isinstance(prop, Mapping):
            continue
        expected = prop.get("type")
        if expected is not None and not _matches_type(value, expected):
            raise InvalidParametersError(
                tool_name,
                f"parameter '{key}' must be of type {expected}",
                data={"parameter": key, "expected": expected},
            )
        allowed = prop.get("enum")
        if allowed is not None and value not in allowed:
            raise InvalidParametersError(
                tool_name,
                f"parameter '{key}' must be one of {allowed}",
                data={"parameter": key, "allowed": allowed},
            )


def _matches_type(value: Any, expected: str | list[str]) -> bool:
    names = [expected] if isinstance(expected, str) else list(expected)
    # Unknown type names are not enforced.
    checks = [_JSON_TYPES[name] for name in names if name in _JSON_TYPES]
    if not checks:
        return True
    return any(check(value) for check in checks)
