"""ToolwireServer — assembles the layers and runs them on a transport."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable
from urllib.parse import urlsplit
from typing import TYPE_CHECKING, Any

from websockets.asyncio.server import serve
from websockets.frames import CloseCode

from toolwire.protocol.models import Notification
from toolwire.resilience.executor import ResilienceExecutor
from toolwire.server.dispatcher import Dispatcher
from toolwire.server.models import ServerInfo
from toolwire.server.session import SessionManager
from toolwire.server.transport import StdioSessionTransport, WebSocketSessionTransport
from toolwire.tools.policy import EnablementPolicy
from toolwire.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from websockets.asyncio.server import ServerConnection

    from toolwire.config import ToolwireConfig
    from toolwire.tools.base import Tool
    from toolwire.tools.models import ToolPolicyConfig

logger = logging.getLogger(__name__)


class ToolwireServer:
    """Owns the registry, resilience executor, dispatcher and sessions.

    Usage::

        server = ToolwireServer(config, discover_entry_point_tools())
        await server.serve_websocket()
    """

    def __init__(self, config: ToolwireConfig, tools: Iterable[Tool] = ()) -> None:
        self._config = config
        self._registry = ToolRegistry(EnablementPolicy(config.tools))
        self._registry.discover_and_register(tools)
        self._resilience = ResilienceExecutor(config.resilience)
        self._dispatcher = Dispatcher(
            self._registry,
            self._resilience,
            server_info=ServerInfo(
                name=config.server.name,
                protocol_version=config.server.protocol_version,
            ),
        )
        self._sessions = SessionManager(self._dispatcher)
        self._stopped = asyncio.Event()

    @property
    def config(self) -> ToolwireConfig:
        return self._config

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def resilience(self) -> ResilienceExecutor:
        return self._resilience

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    # -- transports ----------------------------------------------------------

    async def serve_websocket(
        self,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
    ) -> None:
        """Accept websocket clients until :meth:`stop` is called."""
        settings = self._config.server
        host = host or settings.host
        port = settings.port if port is None else port
        path = path or settings.path

        async def handler(connection: ServerConnection) -> None:
            if connection.request is None or urlsplit(connection.request.path).path != path:
                await connection.close(CloseCode.POLICY_VIOLATION, "Unknown endpoint")
                return
            await self._sessions.serve(WebSocketSessionTransport(connection))

        async with serve(handler, host, port):
            logger.info("MCP server ready on ws://%s:%d%s", host, port, path)
            logger.info("Available tools: %s", ", ".join(self._registry.names()) or "(none)")
            await self._stopped.wait()

    async def serve_stdio(self) -> None:
        """Run a single session over stdin/stdout."""
        transport = await StdioSessionTransport.connect()
        logger.info("MCP server ready on stdio")
        serving = asyncio.create_task(self._sessions.serve(transport))
        stopping = asyncio.create_task(self._stopped.wait())
        await asyncio.wait({serving, stopping}, return_when=asyncio.FIRST_COMPLETED)
        stopping.cancel()
        if not serving.done():
            await transport.close()
            serving.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await serving

    async def stop(self) -> None:
        """Abandon pending retries, close every session and release the serve loop."""
        logger.info("Shutting down MCP server")
        self._resilience.shutdown()
        await self._sessions.close_all()
        self._stopped.set()

    # -- management ----------------------------------------------------------

    async def reload_tools(
        self,
        candidates: Iterable[Tool],
        policy: ToolPolicyConfig | None = None,
    ) -> list[str]:
        """Rebuild the registry and tell connected clients the tool list changed."""
        names = self._registry.discover_and_register(candidates, policy)
        delivered = await self._sessions.broadcast(
            Notification(method="notifications/tools/list_changed")
        )
        logger.info("Tool list reloaded (%d tools), notified %d session(s)", len(names), delivered)
        return names

    def statistics(self) -> dict[str, Any]:
        stats = self._sessions.statistics()
        stats["registry"] = self._registry.statistics()
        stats["performance"] = self._resilience.performance_report()
        return stats

    def health(self) -> dict[str, Any]:
        components = self._resilience.component_health()
        healthy = all(info["healthy"] for info in components.values())
        report = self._resilience.performance_report()
        return {
            "status": "UP" if healthy else "DEGRADED",
            "components": components,
            "sessions": self._sessions.statistics(),
            "performance": {
                **report["summary"],
                "slowOperations": report["slowOperations"],
                "worstOperations": self._resilience.monitor.worst_operations(),
            },
        }
