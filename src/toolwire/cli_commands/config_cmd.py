"""``toolwire config`` — validate and show the effective configuration."""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from toolwire.cli_commands._output import console


@click.command("config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="YAML configuration file.",
)
def config_cmd(config_path: str | None) -> None:
    """Validate the configuration and print the effective values."""
    from toolwire.config import ConfigError, load_config

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]Validation error:[/red] {escape(str(exc))}")
        sys.exit(1)

    console.print_json(config.model_dump_json())
