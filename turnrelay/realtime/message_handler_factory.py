"""
Message Handler Factory for WebSocket message routing.

Maps each inbound message type to exactly one handler. The set of message
types is closed (MessageType); the factory refuses to build if any type
lacks a handler, so adding a message type without handling it fails at
startup rather than silently dropping traffic.
"""

from ..schemas.realtime.websocket_messages import MessageType
from ..structured_logging.enhanced_logging_config import get_logger
from .message_handlers import (
    ActionHandler,
    FeedbackHandler,
    MessageHandler,
    NextTurnHandler,
    PingHandler,
    RegisterControllerHandler,
    RegisterDisplayHandler,
    ReleasePlayerHandler,
    SetActivePlayerHandler,
)

logger = get_logger(__name__)


class MessageHandlerFactory:
    """Registry of handlers keyed by inbound message type."""

    def __init__(self) -> None:
        self._handlers: dict[MessageType, MessageHandler] = {}
        defaults = {
            MessageType.REGISTER_DISPLAY: RegisterDisplayHandler(),
            MessageType.REGISTER_CONTROLLER: RegisterControllerHandler(),
            MessageType.SET_ACTIVE_PLAYER: SetActivePlayerHandler(),
            MessageType.RELEASE_PLAYER: ReleasePlayerHandler(),
            MessageType.NEXT_TURN: NextTurnHandler(),
            MessageType.ACTION: ActionHandler(),
            MessageType.FEEDBACK: FeedbackHandler(),
            MessageType.PING: PingHandler(),
        }
        for message_type, handler in defaults.items():
            self.register_handler(message_type, handler)
        missing = {m.value for m in MessageType} - set(self.get_supported_message_types())
        if missing:
            raise RuntimeError(f"No handler registered for message types: {sorted(missing)}")

    def register_handler(self, message_type: MessageType, handler: MessageHandler) -> None:
        """Replace the handler for a message type."""
        self._handlers[MessageType(message_type)] = handler
        logger.debug("Registered handler for message type", message_type=MessageType(message_type).value)

    def get_handler(self, message_type: MessageType | str) -> MessageHandler:
        """
        Get the handler for a message type.

        Raises:
            ValueError: If `message_type` is not a known message type
        """
        return self._handlers[MessageType(message_type)]

    def get_supported_message_types(self) -> list[str]:
        return [message_type.value for message_type in self._handlers]
