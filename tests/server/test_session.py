"""Tests for Session and SessionManager."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolwire.protocol.models import Notification, Response
from toolwire.server.dispatcher import Dispatcher
from toolwire.server.models import SessionState
from toolwire.server.session import Session, SessionManager
from toolwire.server.transport import StdioSessionTransport
from toolwire.tools.base import FunctionTool
from toolwire.tools.models import ToolPolicyConfig
from toolwire.tools.policy import EnablementPolicy
from toolwire.tools.registry import ToolRegistry


def _manager(*tools: FunctionTool) -> SessionManager:
    registry = ToolRegistry(EnablementPolicy(ToolPolicyConfig(code_execution=True)))
    registry.discover_and_register(tools)
    return SessionManager(Dispatcher(registry))


class TestSession:
    async def test_state_machine(self, memory_transport: Any) -> None:
        session = Session(memory_transport)
        assert session.state is SessionState.CONNECTING
        assert not session.is_open
        session.mark_open()
        assert session.is_open
        session.mark_closed()
        assert session.state is SessionState.CLOSED
        with pytest.raises(RuntimeError):
            session.mark_open()

    async def test_send_serializes(self, memory_transport: Any) -> None:
        session = Session(memory_transport)
        session.mark_open()
        assert await session.send(Response.success(1, {"pong": True}))
        assert memory_transport.messages() == [
            {"jsonrpc": "2.0", "id": 1, "result": {"pong": True}}
        ]

    async def test_send_to_closed_session_is_dropped(self, memory_transport: Any) -> None:
        session = Session(memory_transport)
        session.mark_open()
        session.mark_closed()
        assert not await session.send(Notification(method="x"))
        assert memory_transport.sent == []

    async def test_send_after_transport_closed(self, memory_transport: Any) -> None:
        session = Session(memory_transport)
        session.mark_open()
        memory_transport._open = False
        assert not await session.send(Notification(method="x"))

    async def test_concurrent_sends_do_not_interleave(self, memory_transport: Any) -> None:
        session = Session(memory_transport)
        session.mark_open()
        results = await asyncio.gather(
            *(session.send(Notification(method=f"n/{i}")) for i in range(20))
        )
        assert all(results)
        assert sorted(m["method"] for m in memory_transport.messages()) == sorted(
            f"n/{i}" for i in range(20)
        )


class TestSessionManager:
    async def test_open_sends_welcome(self, memory_transport: Any, echo_tool: FunctionTool) -> None:
        manager = _manager(echo_tool)
        session = await manager.open(memory_transport)

        assert manager.get(session.id) is session
        assert len(manager) == 1
        (welcome,) = memory_transport.messages()
        assert welcome["method"] == "notifications/welcome"
        assert welcome["params"]["availableTools"] == 1
        assert "id" not in welcome

    async def test_close_is_idempotent(self, memory_transport: Any) -> None:
        manager = _manager()
        session = await manager.open(memory_transport)
        await manager.close(session)
        await manager.close(session)
        assert len(manager) == 0
        assert session.state is SessionState.CLOSED
        assert not memory_transport.is_open

    async def test_serve_answers_in_order(self, memory_transport: Any, echo_tool: FunctionTool) -> None:
        manager = _manager(echo_tool)
        memory_transport.feed({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
        memory_transport.feed({"jsonrpc": "2.0", "method": "notifications/initialized"})
        memory_transport.feed(
            {
                "jsonrpc": "2.0",
                "id": "b",
                "method": "tools/call",
                "params": {"name": "echo", "arguments": {"value": "hi"}},
            }
        )
        memory_transport.feed("not json")
        memory_transport.feed({"jsonrpc": "2.0", "id": 3, "method": "ping"})
        memory_transport.hang_up()

        await asyncio.wait_for(manager.serve(memory_transport), timeout=5)

        messages = memory_transport.messages()
        assert messages[0]["method"] == "notifications/welcome"
        assert [m.get("id") for m in messages[1:]] == [1, "b", None, 3]
        assert messages[2]["result"]["content"][0]["text"] == "hi"
        assert messages[3]["error"]["code"] == -32700
        assert messages[4]["result"] == {"pong": True}
        assert len(manager) == 0

    async def test_serve_survives_transport_errors(self, memory_transport: Any) -> None:
        manager = _manager()

        async def broken_receive() -> str:
            raise OSError("socket reset")

        memory_transport.receive = broken_receive
        await asyncio.wait_for(manager.serve(memory_transport), timeout=5)
        assert len(manager) == 0

    async def test_serve_survives_deeply_nested_payload(self, memory_transport: Any) -> None:
        manager = _manager()
        memory_transport.feed("[" * 200_000 + "]" * 200_000)
        memory_transport.feed({"jsonrpc": "2.0", "id": 7, "method": "ping"})
        memory_transport.hang_up()

        await asyncio.wait_for(manager.serve(memory_transport), timeout=5)

        welcome, parse_error, pong = memory_transport.messages()
        assert welcome["method"] == "notifications/welcome"
        assert parse_error["id"] is None
        assert parse_error["error"]["code"] == -32700
        assert pong == {"jsonrpc": "2.0", "id": 7, "result": {"pong": True}}

    async def test_serve_survives_failing_handler(self, memory_transport: Any) -> None:
        manager = _manager()
        manager.dispatcher.handle_payload = AsyncMock(  # type: ignore[method-assign]
            side_effect=[RuntimeError("boom"), Response.success(2, {"pong": True})]
        )
        memory_transport.feed("first")
        memory_transport.feed("second")
        memory_transport.hang_up()

        await asyncio.wait_for(manager.serve(memory_transport), timeout=5)

        assert memory_transport.messages()[1:] == [
            {"jsonrpc": "2.0", "id": 2, "result": {"pong": True}}
        ]

    async def test_broken_pipe_on_stdio_ends_session(self) -> None:
        manager = _manager()
        writer = MagicMock()
        writer.write.side_effect = BrokenPipeError(32, "Broken pipe")
        transport = StdioSessionTransport(asyncio.StreamReader(), writer)

        await asyncio.wait_for(manager.serve(transport), timeout=5)

        assert len(manager) == 0
        assert not transport.is_open

    async def test_broken_pipe_mid_session_drops_reply(self) -> None:
        manager = _manager()
        reader = asyncio.StreamReader()
        reader.feed_data(b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n')
        writer = MagicMock()
        writer.write.side_effect = [None, BrokenPipeError(32, "Broken pipe")]
        transport = StdioSessionTransport(reader, writer)

        await asyncio.wait_for(manager.serve(transport), timeout=5)

        assert writer.write.call_count == 2
        assert len(manager) == 0


    async def test_broadcast(self, make_transport: Any) -> None:
        manager = _manager()
        first, second, gone = make_transport(), make_transport(), make_transport()
        for transport in (first, second, gone):
            await manager.open(transport)
        gone._open = False

        delivered = await manager.broadcast(Notification(method="notifications/tools/list_changed"))

        assert delivered == 2
        assert first.messages()[-1] == {
            "jsonrpc": "2.0",
            "method": "notifications/tools/list_changed",
        }
        assert second.messages()[-1]["method"] == "notifications/tools/list_changed"

    async def test_broadcast_without_sessions(self) -> None:
        assert await _manager().broadcast(Notification(method="x")) == 0

    async def test_close_all(self, make_transport: Any) -> None:
        manager = _manager()
        for _ in range(3):
            await manager.open(make_transport())
        await manager.close_all()
        assert len(manager) == 0

    async def test_statistics(self, memory_transport: Any, echo_tool: FunctionTool) -> None:
        manager = _manager(echo_tool)
        session = await manager.open(memory_transport)
        await manager.dispatcher.handle_payload(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "ping"}), session
        )
        stats = manager.statistics()
        assert stats["activeSessions"] == 1
        assert stats["totalTools"] == 1
        assert stats["messagesProcessed"] == 1
        assert stats["uptime"] >= 0
