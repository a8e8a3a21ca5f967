"""``toolwire tools`` — list the tools the server would expose."""

from __future__ import annotations

import json
import sys

import click
from rich.markup import escape

from toolwire.cli_commands._output import console, print_statistics, print_tools_table


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="YAML configuration file.",
)
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
def tools(config_path: str | None, as_json: bool) -> None:
    """List installed tools that pass the configured policy."""
    from toolwire.config import ConfigError, load_config
    from toolwire.tools.discovery import discover_entry_point_tools
    from toolwire.tools.policy import EnablementPolicy
    from toolwire.tools.registry import ToolRegistry

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)

    registry = ToolRegistry(EnablementPolicy(config.tools))
    registry.discover_and_register(discover_entry_point_tools())

    rows = [
        {
            "name": tool.name,
            "category": tool.category,
            "description": tool.description,
            "requiresElevatedPrivileges": tool.requires_elevated_privileges,
            "inputSchema": tool.parameter_schema,
        }
        for tool in registry.list_tools()
    ]

    if as_json:
        click.echo(json.dumps({"tools": rows, "statistics": registry.statistics()}, indent=2))
        return

    if not rows:
        console.print("[yellow]No tools exposed.[/yellow]")
    else:
        print_tools_table(rows)
    print_statistics(registry.statistics())
