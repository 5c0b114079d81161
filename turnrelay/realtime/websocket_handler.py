"""
WebSocket handler for the turn relay.

Runs one connection's lifetime: register with the hub, pump text frames
into it until the transport closes, then report the disconnect. Nothing a
client sends can end the loop except closing the transport.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from ..structured_logging.logging_context import (
    bind_connection_context,
    clear_connection_context,
    get_current_context,
)
from .relay_hub import RelayHub

logger = get_logger(__name__)


def sync_role_context(session_id: str, hub: RelayHub) -> None:
    """Rebind the logging context when the connection's declared role changes."""
    context = get_current_context()
    role = hub.registry.role_of(session_id).value
    if context.get("role") != role:
        bind_connection_context(session_id=session_id, role=role, correlation_id=context.get("correlation_id"))


async def _handle_websocket_message_loop(websocket: WebSocket, session_id: str, hub: RelayHub) -> None:
    """Receive frames until the transport closes."""
    while True:
        try:
            data = await websocket.receive_text()
        except WebSocketDisconnect as e:
            logger.info("WebSocket disconnected", session_id=session_id, code=e.code)
            break
        except RuntimeError as e:
            # Starlette raises RuntimeError for receive after close and for binary-only frames
            error_message = str(e)
            if "disconnect message has been received" in error_message or "not connected" in error_message.lower():
                logger.info("WebSocket connection lost", session_id=session_id, error=error_message)
                break
            logger.warning(
                ErrorMessages.MALFORMED_INPUT,
                session_id=session_id,
                error=error_message,
                error_type=ErrorType.MALFORMED_INPUT.value,
            )
            continue
        except KeyError:
            # Binary frames carry "bytes" instead of "text"
            logger.info(
                ErrorMessages.MALFORMED_INPUT,
                session_id=session_id,
                reason="binary_frame",
                error_type=ErrorType.MALFORMED_INPUT.value,
            )
            continue

        try:
            await hub.handle_frame(session_id, data)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a handler failure must not close the connection or leak into other sessions
            log_exception_once(
                logger,
                "error",
                ErrorMessages.INTERNAL_ERROR,
                exc=e,
                session_id=session_id,
                category=ErrorType.INTERNAL_ERROR.value,
                exc_info=True,
            )
        sync_role_context(session_id, hub)


async def handle_websocket_connection(websocket: WebSocket, hub: RelayHub) -> None:
    """
    Handle a WebSocket connection from accept to close.

    Args:
        websocket: The WebSocket connection (not yet accepted)
        hub: The relay hub
    """
    await websocket.accept()
    connection = await hub.connect(websocket)
    session_id = connection.session_id
    bind_connection_context(session_id=session_id)

    try:
        await _handle_websocket_message_loop(websocket, session_id, hub)
    finally:
        try:
            await hub.disconnect(session_id)
        finally:
            clear_connection_context()
