"""Shared CLI output formatters."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()


def print_tools_table(tools: list[dict[str, Any]]) -> None:
    """Pretty-print tool descriptions as a table."""
    table = Table(title="Exposed Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Elevated")
    table.add_column("Description")

    for tool in tools:
        table.add_row(
            tool.get("name", "?"),
            tool.get("category", ""),
            "yes" if tool.get("requiresElevatedPrivileges") else "-",
            _truncate(tool.get("description", "")),
        )

    console.print(table)


def print_statistics(stats: dict[str, Any]) -> None:
    console.print("\n[bold]Registry[/bold]")
    console.print(f"  Total tools: {stats['totalTools']}")
    console.print(f"  Enabled: {stats['enabledTools']}  Disabled: {stats['disabledTools']}")
    for category, count in sorted(stats["toolsByCategory"].items()):
        console.print(f"  {category}: {count}")


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
