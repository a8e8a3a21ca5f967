"""Tests for ``toolwire config`` CLI command."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from toolwire import __version__
from toolwire.cli import main

if TYPE_CHECKING:
    from pathlib import Path


class TestConfigCommand:
    def test_defaults(self) -> None:
        result = CliRunner().invoke(main, ["config"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["server"]["path"] == "/mcp"
        assert data["tools"]["code_execution"] is False

    def test_file(self, tmp_path: Path) -> None:
        cfg = tmp_path / "toolwire.yaml"
        cfg.write_text("server:\n  port: 9000\n")

        result = CliRunner().invoke(main, ["config", "--config", str(cfg)])

        assert result.exit_code == 0
        assert json.loads(result.output)["server"]["port"] == 9000

    def test_invalid(self, tmp_path: Path) -> None:
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("server:\n  transport: smoke-signals\n")

        result = CliRunner().invoke(main, ["config", "--config", str(cfg)])

        assert result.exit_code == 1
        assert "Validation error" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(main, ["config", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestVersion:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
