"""Helpers for inspecting frames written to mock WebSockets."""

import json
from typing import Any

from starlette.websockets import WebSocketState


def sent_messages(websocket: Any) -> list[dict[str, Any]]:
    """All frames written to a mock WebSocket, in order."""
    return [call.args[0] for call in websocket.send_json.call_args_list]


def sent_of_type(websocket: Any, message_type: str) -> list[dict[str, Any]]:
    return [message for message in sent_messages(websocket) if message["type"] == message_type]


def last_of_type(websocket: Any, message_type: str) -> dict[str, Any] | None:
    messages = sent_of_type(websocket, message_type)
    return messages[-1] if messages else None


def close_transport(websocket: Any) -> None:
    """Make a mock WebSocket look closed from the client side."""
    websocket.client_state = WebSocketState.DISCONNECTED


def frame(message_type: str, payload: Any = None, **extra: Any) -> str:
    body: dict[str, Any] = {"type": message_type}
    if payload is not None:
        body["payload"] = payload
    body.update(extra)
    return json.dumps(body)
