"""
Pydantic schemas for WebSocket messages.

Inbound messages form a closed set discriminated by `type`. Each variant
declares its payload shape, so a message either parses into exactly one
typed model at the boundary or is rejected as malformed; handlers never
see undefined fields.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


class MessageType(str, Enum):
    """Inbound message discriminators."""

    REGISTER_DISPLAY = "REGISTER_DISPLAY"
    REGISTER_CONTROLLER = "REGISTER_CONTROLLER"
    SET_ACTIVE_PLAYER = "SET_ACTIVE_PLAYER"
    RELEASE_PLAYER = "RELEASE_PLAYER"
    NEXT_TURN = "NEXT_TURN"
    ACTION = "ACTION"
    FEEDBACK = "FEEDBACK"
    PING = "PING"


class OutboundMessageType(str, Enum):
    """Outbound message discriminators."""

    REGISTERED = "REGISTERED"
    QUEUE_UPDATE = "QUEUE_UPDATE"
    CURRENT_PLAYER = "CURRENT_PLAYER"
    CURRENT_PLAYER_ID = "CURRENT_PLAYER_ID"
    ACTION = "ACTION"
    FEEDBACK = "FEEDBACK"
    TURN_ENDED = "TURN_ENDED"
    PONG = "PONG"


class BaseInboundMessage(BaseModel):
    """Base class for all inbound WebSocket messages."""

    # Extra keys are ignored: deployed clients attach their own bookkeeping fields.
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class RegisterControllerPayload(BaseModel):
    """Schema for controller registration data."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str | None = Field(None, description="Declared display name")


class RegisterDisplayMessage(BaseInboundMessage):
    type: Literal["REGISTER_DISPLAY"]
    payload: Any = None


class RegisterControllerMessage(BaseInboundMessage):
    type: Literal["REGISTER_CONTROLLER"]
    payload: RegisterControllerPayload | None = None

    @property
    def declared_name(self) -> str | None:
        if self.payload is None or not self.payload.name:
            return None
        return self.payload.name


class SetActivePlayerMessage(BaseInboundMessage):
    """Grant control to a session id or display name; null releases."""

    type: Literal["SET_ACTIVE_PLAYER"]
    payload: str | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def coerce_identifier(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("Target identifier must be a string")
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ReleasePlayerMessage(BaseInboundMessage):
    type: Literal["RELEASE_PLAYER"]
    payload: Any = None


class NextTurnMessage(BaseInboundMessage):
    type: Literal["NEXT_TURN"]
    payload: Any = None


class ActionMessage(BaseInboundMessage):
    """
    Controller input relayed to the display.

    Older controllers send the input under a top-level `action` key rather
    than `payload`; both are accepted.
    """

    type: Literal["ACTION"]
    payload: Any = None
    action: Any = None

    @model_validator(mode="after")
    def require_action(self) -> "ActionMessage":
        if self.payload is None and self.action is None:
            raise ValueError("ACTION requires a payload or action value")
        return self

    @property
    def value(self) -> Any:
        return self.payload if self.payload is not None else self.action


class FeedbackMessage(BaseInboundMessage):
    type: Literal["FEEDBACK"]
    payload: Any = None


class PingMessage(BaseInboundMessage):
    type: Literal["PING"]
    payload: Any = None


InboundMessage = Annotated[
    RegisterDisplayMessage
    | RegisterControllerMessage
    | SetActivePlayerMessage
    | ReleasePlayerMessage
    | NextTurnMessage
    | ActionMessage
    | FeedbackMessage
    | PingMessage,
    Field(discriminator="type"),
]

inbound_message_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)
