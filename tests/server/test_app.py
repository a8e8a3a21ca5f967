"""Tests for ToolwireServer assembly and transports."""

from __future__ import annotations

import asyncio
import json
import socket
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from toolwire.config import ServerSettings, ToolwireConfig
from toolwire.resilience.models import ResilienceConfig
from toolwire.server.app import ToolwireServer
from toolwire.tools.base import FunctionTool
from toolwire.tools.models import ToolPolicyConfig


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _config(**server: Any) -> ToolwireConfig:
    return ToolwireConfig(
        server=ServerSettings(host="127.0.0.1", **server),
        tools=ToolPolicyConfig(code_execution=True),
        resilience=ResilienceConfig(base_delay=0, max_delay=0),
    )


async def _connect(url: str) -> Any:
    for _ in range(100):
        try:
            return await connect(url)
        except OSError:
            await asyncio.sleep(0.02)
    pytest.fail(f"server never came up at {url}")


class TestAssembly:
    def test_registry_respects_policy(self, echo_tool: FunctionTool) -> None:
        config = ToolwireConfig(tools=ToolPolicyConfig(code_execution=False))
        server = ToolwireServer(config, [echo_tool])
        assert server.registry.names() == []

    def test_server_info_from_config(self) -> None:
        server = ToolwireServer(_config(name="acme", protocol_version="2025-01-01"))
        info = server.dispatcher.server_info
        assert info.name == "acme"
        assert info.protocol_version == "2025-01-01"

    def test_health(self, echo_tool: FunctionTool) -> None:
        server = ToolwireServer(_config(), [echo_tool])
        health = server.health()
        assert health["status"] == "UP"
        assert set(health["components"]) == {"tools", "search", "documentation", "embeddings"}

        for _ in range(100):
            server.resilience.tracker.record_failure("tool:echo")
        assert server.health()["status"] == "DEGRADED"

    def test_statistics(self, echo_tool: FunctionTool) -> None:
        stats = ToolwireServer(_config(), [echo_tool]).statistics()
        assert stats["activeSessions"] == 0
        assert stats["registry"]["totalTools"] == 1
        assert stats["performance"]["summary"]["totalOperations"] == 0

    async def test_tool_calls_show_up_in_performance(self, echo_tool: FunctionTool) -> None:
        server = ToolwireServer(_config(), [echo_tool])
        payload = json.dumps(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "tools/call",
                "params": {"name": "echo", "arguments": {"value": "hi"}},
            }
        )
        await server.dispatcher.handle_payload(payload)

        stats = server.statistics()["performance"]
        assert stats["operations"]["tool:echo"]["executionCount"] == 1
        performance = server.health()["performance"]
        assert performance["totalOperations"] == 1
        assert performance["slowOperations"] == []
        assert [op["operation"] for op in performance["worstOperations"]] == ["tool:echo"]


    async def test_reload_tools_broadcasts(self, echo_tool: FunctionTool, memory_transport: Any) -> None:
        server = ToolwireServer(_config(), [echo_tool])
        await server.sessions.open(memory_transport)

        names = await server.reload_tools([echo_tool], ToolPolicyConfig(code_execution=False))

        assert names == []
        assert "echo" not in server.registry
        assert memory_transport.messages()[-1]["method"] == "notifications/tools/list_changed"


class TestWebSocket:
    async def test_end_to_end(self, echo_tool: FunctionTool) -> None:
        port = _free_port()
        server = ToolwireServer(_config(port=port), [echo_tool])
        task = asyncio.create_task(server.serve_websocket())
        try:
            ws = await _connect(f"ws://127.0.0.1:{port}/mcp")
            welcome = json.loads(await ws.recv())
            assert welcome["method"] == "notifications/welcome"

            await ws.send(
                json.dumps(
                    {
                        "jsonrpc": "2.0",
                        "id": 7,
                        "method": "tools/call",
                        "params": {"name": "echo", "arguments": {"value": "hi"}},
                    }
                )
            )
            reply = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
            assert reply == {
                "jsonrpc": "2.0",
                "id": 7,
                "result": {"content": [{"type": "text", "text": "hi"}], "isError": False},
            }
            assert len(server.sessions) == 1
            await ws.close()
        finally:
            await server.stop()
            await asyncio.wait_for(task, timeout=5)

    async def test_unknown_path_rejected(self) -> None:
        port = _free_port()
        server = ToolwireServer(_config(port=port))
        task = asyncio.create_task(server.serve_websocket())
        try:
            ws = await _connect(f"ws://127.0.0.1:{port}/other")
            with pytest.raises(ConnectionClosed) as exc_info:
                await asyncio.wait_for(ws.recv(), timeout=5)
            assert exc_info.value.rcvd is not None
            assert exc_info.value.rcvd.code == 1008
            assert len(server.sessions) == 0
        finally:
            await server.stop()
            await asyncio.wait_for(task, timeout=5)

    async def test_query_string_on_endpoint_accepted(self) -> None:
        port = _free_port()
        server = ToolwireServer(_config(port=port))
        task = asyncio.create_task(server.serve_websocket())
        try:
            ws = await _connect(f"ws://127.0.0.1:{port}/mcp?client=assistant")
            welcome = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
            assert welcome["method"] == "notifications/welcome"
            await ws.close()
        finally:
            await server.stop()
            await asyncio.wait_for(task, timeout=5)



class TestStdio:
    async def test_serves_single_session(self, echo_tool: FunctionTool, memory_transport: Any) -> None:
        server = ToolwireServer(_config(transport="stdio"), [echo_tool])
        memory_transport.feed({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        memory_transport.hang_up()

        with patch(
            "toolwire.server.app.StdioSessionTransport.connect",
            AsyncMock(return_value=memory_transport),
        ):
            await asyncio.wait_for(server.serve_stdio(), timeout=5)

        assert memory_transport.messages()[-1] == {"jsonrpc": "2.0", "id": 1, "result": {"pong": True}}

    async def test_stop_ends_stdio(self, memory_transport: Any) -> None:
        server = ToolwireServer(_config(transport="stdio"))
        with patch(
            "toolwire.server.app.StdioSessionTransport.connect",
            AsyncMock(return_value=memory_transport),
        ):
            task = asyncio.create_task(server.serve_stdio())
            await asyncio.sleep(0.01)
            await server.stop()
            await asyncio.wait_for(task, timeout=5)
        assert len(server.sessions) == 0
