"""Realtime (WebSocket) message schemas."""

from .websocket_messages import (
    ActionMessage,
    FeedbackMessage,
    InboundMessage,
    MessageType,
    NextTurnMessage,
    OutboundMessageType,
    PingMessage,
    RegisterControllerMessage,
    RegisterDisplayMessage,
    ReleasePlayerMessage,
    SetActivePlayerMessage,
    inbound_message_adapter,
)

__all__ = [
    "ActionMessage",
    "FeedbackMessage",
    "InboundMessage",
    "MessageType",
    "NextTurnMessage",
    "OutboundMessageType",
    "PingMessage",
    "RegisterControllerMessage",
    "RegisterDisplayMessage",
    "ReleasePlayerMessage",
    "SetActivePlayerMessage",
    "inbound_message_adapter",
]
