"""
WebSocket helper utilities for the turn relay.

Best-effort send and close. A failed write marks the session dead and is
reported to the caller as False; it is never raised, so a single closed
socket can not abort a broadcast to everyone else.
"""

import asyncio
from typing import Any

from fastapi import WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_registry import ConnectionRegistry, is_websocket_open

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 2.0


async def send_message(registry: ConnectionRegistry, session_id: str, message: dict[str, Any]) -> bool:
    """
    Send one message to one session if it is live.

    Returns:
        True if the frame was handed to the transport
    """
    connection = registry.get(session_id)
    if connection is None or not registry.is_live(session_id):
        logger.debug(
            ErrorMessages.TRANSPORT_FAILURE,
            session_id=session_id,
            message_type=message.get("type"),
            reason="not_live",
        )
        return False

    try:
        await connection.websocket.send_json(message)
        return True
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
        registry.mark_dead(session_id)
        logger.warning(
            ErrorMessages.TRANSPORT_FAILURE,
            session_id=session_id,
            message_type=message.get("type"),
            error=str(e),
            error_type=ErrorType.TRANSPORT_FAILURE.value,
        )
        return False


async def safe_close_websocket(websocket: Any, code: int = 1000, reason: str = "Connection closed") -> None:
    """Close a WebSocket, ignoring transports that are already gone."""
    if not is_websocket_open(websocket):
        return
    try:
        await asyncio.wait_for(websocket.close(code=code, reason=reason), timeout=CLOSE_TIMEOUT_SECONDS)
    except (TimeoutError, WebSocketDisconnect, RuntimeError, OSError) as e:
        logger.debug("WebSocket close failed", code=code, reason=reason, error=str(e))
