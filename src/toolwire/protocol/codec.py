"""Wire codec — turns raw payloads into typed messages and back."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from toolwire.protocol.errors import ParseError
from toolwire.protocol.models import JSONRPC_VERSION, Message, Notification, Request, Response


def parse_message(payload: str | bytes | bytearray | Mapping[str, Any]) -> Message:
    """Parse *payload* into a :class:`Request`, :class:`Response` or :class:`Notification`.

    The kind is decided by which fields are present:

    - ``method`` and ``id`` → request
    - ``method`` without ``id`` → notification
    - ``id`` with exactly one of ``result`` / ``error`` → response

    Raises:
        ParseError: If the payload is not JSON, not an object, or matches none
            of the three shapes.
    """
    data = _load(payload)

    version = data.get("jsonrpc", JSONRPC_VERSION)
    if version != JSONRPC_VERSION:
        raise ParseError(f"unsupported jsonrpc version: {version!r}")

    has_method = "method" in data
    has_id = "id" in data

    try:
        if has_method and has_id:
            return Request.model_validate(data)
        if has_method:
            return Notification.model_validate(data)
        if has_id and (("result" in data) != ("error" in data)):
            return Response.model_validate(data)
    except ValidationError as exc:
        raise ParseError(_summarize(exc)) from exc

    raise ParseError("message is not a request, response or notification")


def serialize_message(message: Message) -> str:
    """Serialize *message* to a compact JSON string."""
    return json.dumps(message.to_wire(), separators=(",", ":"), default=str)


def _load(payload: str | bytes | bytearray | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(payload, (str, bytes, bytearray)):
        try:
            data: Any = json.loads(payload)
        except ValueError as exc:
            raise ParseError(f"invalid JSON: {exc}") from exc
        except RecursionError as exc:
            raise ParseError("invalid JSON: nesting too deep") from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise ParseError("message must be a JSON object")
    return dict(data)


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "message"
    return f"{location}: {first['msg']}"
