"""Dispatcher — parses inbound payloads and routes them to handlers.

Requests get exactly one :class:`Response` carrying the request's ``id``.
Notifications never get one, even when their handler fails.  Tool failures
that are part of the tool contract come back as *successful* responses with
``isError: true``; only unexpected failures use the JSON-RPC error channel.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import StatusCode

from toolwire.errors import TemporarilyUnavailableError, ToolwireError
from toolwire.protocol.codec import parse_message
from toolwire.protocol.errors import ParseError
from toolwire.protocol.models import ErrorObject, Message, Notification, Request, Response
from toolwire.resilience.executor import ResilienceExecutor
from toolwire.server.models import ServerInfo
from toolwire.tools.errors import ToolError, ToolNotFoundError
from toolwire.utils.telemetry import (
    ATTR_RPC_ID,
    ATTR_RPC_METHOD,
    ATTR_SESSION_ID,
    ATTR_TOOL_IS_ERROR,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from toolwire.server.session import Session
    from toolwire.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

RequestHandler = Callable[[Request, "Session | None"], Awaitable[Response]]
NotificationHandler = Callable[[Notification, "Session | None"], Awaitable[None]]


class Dispatcher:
    """Routes protocol messages to the built-in methods and the tool registry."""

    def __init__(
        self,
        registry: ToolRegistry,
        resilience: ResilienceExecutor | None = None,
        *,
        server_info: ServerInfo | None = None,
    ) -> None:
        self._registry = registry
        self._resilience = resilience or ResilienceExecutor()
        self._server_info = server_info or ServerInfo()
        self._messages_processed = 0
        self._request_handlers: dict[str, RequestHandler] = {
            "initialize": self._handle_initialize,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            "ping": self._handle_ping,
        }
        self._notification_handlers: dict[str, NotificationHandler] = {
            "notifications/initialized": self._on_initialized,
        }

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def resilience(self) -> ResilienceExecutor:
        return self._resilience

    @property
    def server_info(self) -> ServerInfo:
        return self._server_info

    @property
    def messages_processed(self) -> int:
        return self._messages_processed

    def register_request_handler(self, method: str, handler: RequestHandler) -> None:
        self._request_handlers[method] = handler

    def register_notification_handler(self, method: str, handler: NotificationHandler) -> None:
        self._notification_handlers[method] = handler

    def welcome_notification(self) -> Notification:
        """Notification sent to every newly opened session."""
        info = self._server_info
        return Notification(
            method="notifications/welcome",
            params={
                "serverName": info.name,
                "version": info.version,
                "protocolVersion": info.protocol_version,
                "capabilities": info.capabilities,
                "availableTools": len(self._registry),
                "timestamp": int(time.time() * 1000),
            },
        )

    # -- entry points ------------------------------------------------------

    async def handle_payload(
        self,
        payload: str | bytes,
        session: Session | None = None,
    ) -> Response | None:
        """Handle one raw inbound payload; return the response to send, if any.

        Malformed payloads yield a parse-error response with ``id=None``.
        """
        self._messages_processed += 1
        logger.debug("Received message: %s", payload)
        try:
            message = parse_message(payload)
        except ParseError as exc:
            logger.warning("Error processing message: %s", exc)
            return Response.failure(
                None, ErrorObject.parse_error(f"Failed to parse message: {exc.detail}")
            )
        except Exception as exc:
            logger.exception("Unexpected error parsing message")
            return Response.failure(
                None, ErrorObject.parse_error(f"Failed to parse message: {type(exc).__name__}")
            )
        return await self.handle_message(message, session)

    async def handle_message(
        self,
        message: Message,
        session: Session | None = None,
    ) -> Response | None:
        if isinstance(message, Request):
            return await self._handle_request(message, session)
        if isinstance(message, Notification):
            await self._handle_notification(message, session)
            return None
        logger.warning("Received unexpected response message: id=%s", message.id)
        return None

    async def _handle_request(self, request: Request, session: Session | None) -> Response:
        with _tracer.start_as_current_span("rpc.request") as span:
            span.set_attribute(ATTR_RPC_METHOD, request.method)
            span.set_attribute(ATTR_RPC_ID, str(request.id))
            if session is not None:
                span.set_attribute(ATTR_SESSION_ID, session.id)

            handler = self._request_handlers.get(request.method)
            if handler is None:
                return Response.failure(request.id, ErrorObject.method_not_found(request.method))

            try:
                return await handler(request, session)
            except Exception as exc:
                logger.exception("Error handling request %s", request.method)
                span.set_status(StatusCode.ERROR, str(exc))
                return Response.failure(
                    request.id,
                    ErrorObject.internal_error(f"Request processing failed: {exc}"),
                )

    async def _handle_notification(
        self,
        notification: Notification,
        session: Session | None,
    ) -> None:
        logger.debug("Received notification: %s", notification.method)
        handler = self._notification_handlers.get(notification.method)
        if handler is None:
            logger.debug("Unknown notification method: %s", notification.method)
            return
        try:
            await handler(notification, session)
        except Exception:
            logger.exception("Notification handler failed: %s", notification.method)

    # -- built-in methods --------------------------------------------------

    async def _handle_initialize(self, request: Request, session: Session | None) -> Response:
        if session is not None:
            client_info = request.params.get("clientInfo")
            if isinstance(client_info, dict):
                session.client_info = client_info
        info = self._server_info
        return Response.success(
            request.id,
            {
                "protocolVersion": info.protocol_version,
                "serverInfo": {"name": info.name, "version": info.version},
                "capabilities": info.capabilities,
            },
        )

    async def _handle_tools_list(self, request: Request, session: Session | None) -> Response:
        return Response.success(request.id, {"tools": self._registry.tool_definitions()})

    async def _handle_ping(self, request: Request, session: Session | None) -> Response:
        return Response.success(request.id, {"pong": True})

    async def _handle_tools_call(self, request: Request, session: Session | None) -> Response:
        name = request.params.get("name")
        if not isinstance(name, str) or not name:
            return Response.failure(request.id, ErrorObject.invalid_params("Tool name is required"))

        arguments = request.params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return Response.failure(
                request.id, ErrorObject.invalid_params("Tool arguments must be an object")
            )

        elevated = session.elevated if session is not None else None

        with _tracer.start_as_current_span("rpc.tools_call") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            try:
                if name not in self._registry:
                    raise ToolNotFoundError(name)
                result = await self._resilience.run_tool(
                    name,
                    lambda: self._registry.execute(name, arguments, elevated=elevated),
                )
            except ToolwireError as exc:
                logger.error("Tool execution error: %s", exc)
                span.set_attribute(ATTR_TOOL_IS_ERROR, True)
                return Response.success(request.id, _error_result(name, exc))
            except Exception as exc:
                logger.exception("Unexpected error during tool execution: %s", name)
                return Response.failure(
                    request.id,
                    ErrorObject.tool_execution_error(f"Unexpected error: {exc}"),
                )

            span.set_attribute(ATTR_TOOL_IS_ERROR, False)
            return Response.success(
                request.id,
                {"content": [{"type": "text", "text": _render(result)}], "isError": False},
            )

    # -- notifications -----------------------------------------------------

    async def _on_initialized(self, notification: Notification, session: Session | None) -> None:
        if session is not None:
            session.initialized = True
        logger.info("Client initialized successfully")


def _render(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def _error_result(tool_name: str, exc: ToolwireError) -> dict[str, Any]:
    """Business-level failure payload for ``tools/call``."""
    data: dict[str, Any] = {"type": exc.error_type, "tool": tool_name}
    if isinstance(exc, ToolError) and exc.data is not None:
        data["detail"] = exc.data
    if isinstance(exc, TemporarilyUnavailableError) and exc.retry_after is not None:
        data["retryAfter"] = exc.retry_after
    return {
        "content": [{"type": "text", "text": f"Error: {exc}"}],
        "isError": True,
        "error": {"code": int(exc.code), "message": str(exc), "data": data},
    }
