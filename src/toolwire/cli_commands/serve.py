"""``toolwire serve`` — run the MCP server."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from toolwire.cli_commands._output import console

if TYPE_CHECKING:
    from toolwire.server.app import ToolwireServer


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="YAML configuration file.",
)
@click.option("--host", default=None, help="Override server.host.")
@click.option("--port", type=int, default=None, help="Override server.port.")
@click.option(
    "--transport",
    type=click.Choice(["websocket", "stdio"]),
    default=None,
    help="Override server.transport.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def serve(
    config_path: str | None,
    host: str | None,
    port: int | None,
    transport: str | None,
    verbose: bool,
) -> None:
    """Serve the installed tools until interrupted."""
    from toolwire.config import ConfigError, load_config
    from toolwire.server.app import ToolwireServer
    from toolwire.tools.discovery import discover_entry_point_tools
    from toolwire.utils.logging import configure_logging
    from toolwire.utils.telemetry import configure_telemetry

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(1)

    overrides = {
        key: value
        for key, value in (("host", host), ("port", port), ("transport", transport))
        if value is not None
    }
    if overrides:
        config = config.model_copy(
            update={"server": config.server.model_copy(update=overrides)}
        )

    if not config.server.enabled:
        console.print("[yellow]Server is disabled in configuration.[/yellow]")
        return

    configure_logging(config.logging, verbose=verbose)
    if config.telemetry.enabled:
        to_console = config.telemetry.console
        if to_console and config.server.transport == "stdio":
            click.echo("Console span export is ignored on the stdio transport.", err=True)
            to_console = False
        try:
            configure_telemetry(
                service_name=config.server.name,
                export_to_console=to_console,
                otlp_endpoint=config.telemetry.otlp_endpoint,
            )
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {escape(str(exc))}")
            sys.exit(1)

    server = ToolwireServer(config, discover_entry_point_tools())

    try:
        asyncio.run(_run(server))
    except KeyboardInterrupt:
        pass


async def _run(server: ToolwireServer) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(server.stop()))
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    if server.config.server.transport == "stdio":
        await server.serve_stdio()
    else:
        await server.serve_websocket()
