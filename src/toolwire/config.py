"""Server configuration — pydantic models and the YAML loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from toolwire.resilience.models import ResilienceConfig
from toolwire.server.models import PROTOCOL_VERSION
from toolwire.tools.models import ToolPolicyConfig


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or fails validation."""


class ServerSettings(BaseModel):
    """Where and how the server listens."""

    enabled: bool = True
    name: str = "toolwire"
    host: str = "localhost"
    port: int = Field(default=8080, ge=0, le=65535)
    path: str = "/mcp"
    transport: Literal["websocket", "stdio"] = "websocket"
    protocol_version: str = PROTOCOL_VERSION


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: str | None = None


class TelemetrySettings(BaseModel):
    enabled: bool = False
    console: bool = Field(
        default=False,
        description="Print spans to stdout (websocket transport only).",
    )
    otlp_endpoint: str | None = None


class ToolwireConfig(BaseModel):
    """Top-level configuration parsed from YAML."""

    server: ServerSettings = Field(default_factory=ServerSettings)
    tools: ToolPolicyConfig = Field(default_factory=ToolPolicyConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)


class ConfigLoader:
    """Load and validate a YAML configuration file into a :class:`ToolwireConfig`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> ToolwireConfig:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        with :func:`os.path.expandvars` before parsing.  An empty file yields
        the defaults.

        Raises:
            ConfigError: On read errors, YAML errors or validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration YAML must be a mapping")

        try:
            return ToolwireConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(path: str | Path | None = None) -> ToolwireConfig:
    """Load *path*, or return the defaults when no path is given."""
    if path is None:
        return ToolwireConfig()
    return ConfigLoader(Path(path)).load()
