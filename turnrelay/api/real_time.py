"""
Real-time communication routes for the turn relay.

The WebSocket endpoint is served at both `/` and `/ws`: deployed clients
connect to the bare host.
"""

from fastapi import APIRouter, WebSocket

from ..realtime.relay_hub import RelayHub
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


def _resolve_hub(websocket: WebSocket) -> RelayHub | None:
    state = getattr(websocket.app, "state", None)
    return getattr(state, "relay_hub", None)


@realtime_router.websocket("/")
@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint shared by the display and all controllers."""
    hub = _resolve_hub(websocket)
    if hub is None:
        # Must accept before closing with an application code
        await websocket.accept()
        logger.error("Relay hub unavailable, rejecting WebSocket")
        await websocket.close(code=1013, reason="Service temporarily unavailable")
        return

    await handle_websocket_connection(websocket, hub)
