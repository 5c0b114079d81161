"""
WebSocket message validation for the turn relay.

Turns a raw text frame into exactly one typed inbound message, or raises
MessageValidationError. Checks run cheapest first: frame size, JSON
parsing, nesting depth, envelope shape, discriminator, then the
per-type schema.
"""

import json
from typing import Any

from pydantic import ValidationError

from ..exceptions import ErrorContext, MessageValidationError
from ..schemas.realtime.websocket_messages import InboundMessage, MessageType, inbound_message_adapter
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

_KNOWN_TYPES = frozenset(member.value for member in MessageType)


class WebSocketMessageValidator:
    """
    Validates inbound WebSocket frames.

    Implements:
    - Message size limits
    - JSON depth limits
    - Envelope and discriminator checks
    - Per-type schema validation
    """

    MAX_MESSAGE_SIZE = 10 * 1024
    MAX_JSON_DEPTH = 10

    def __init__(self, max_message_size: int | None = None, max_json_depth: int | None = None):
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH

    def validate_size(self, data: str, session_id: str | None = None) -> None:
        size = len(data.encode("utf-8"))
        if size > self.max_message_size:
            raise MessageValidationError(
                f"Message size {size} bytes exceeds maximum {self.max_message_size} bytes",
                error_type="size_limit_exceeded",
                context=ErrorContext(session_id=session_id, metadata={"size": size}),
            )

    def validate_depth(self, message: Any, session_id: str | None = None) -> None:
        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            raise MessageValidationError(
                f"JSON depth {depth} exceeds maximum {self.max_json_depth}",
                error_type="depth_limit_exceeded",
                context=ErrorContext(session_id=session_id),
            )

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        if current_depth > self.max_json_depth:
            return current_depth
        if isinstance(obj, dict):
            if not obj:
                return current_depth
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list):
            if not obj:
                return current_depth
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def parse_and_validate(self, data: str, session_id: str | None = None) -> InboundMessage:
        """
        Parse and validate a complete WebSocket frame.

        Args:
            data: Raw text frame
            session_id: Sender session, for diagnostics

        Returns:
            The typed inbound message

        Raises:
            MessageValidationError: If validation fails at any stage
        """
        self.validate_size(data, session_id)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            raise MessageValidationError(
                f"Invalid JSON: {e}", error_type="json_parse_error", context=ErrorContext(session_id=session_id)
            ) from e

        if not isinstance(message, dict):
            raise MessageValidationError(
                "Message must be a JSON object", error_type="invalid_type", context=ErrorContext(session_id=session_id)
            )

        self.validate_depth(message, session_id)

        message_type = message.get("type")
        if not isinstance(message_type, str):
            raise MessageValidationError(
                "Message must contain a string 'type' field",
                error_type="missing_required_field",
                context=ErrorContext(session_id=session_id),
            )
        message_type = message_type.strip()
        if message_type not in _KNOWN_TYPES:
            raise MessageValidationError(
                f"Unknown message type: {message_type}",
                error_type="unknown_message_type",
                context=ErrorContext(session_id=session_id, message_type=message_type),
            )

        try:
            parsed = inbound_message_adapter.validate_python({**message, "type": message_type})
        except ValidationError as e:
            raise MessageValidationError(
                f"Schema validation failed: {e.error_count()} error(s)",
                error_type="schema_validation_failed",
                context=ErrorContext(
                    session_id=session_id,
                    message_type=message_type,
                    metadata={"errors": e.errors(include_url=False, include_context=False)},
                ),
            ) from e

        logger.debug("Message validation successful", session_id=session_id, message_type=message_type)
        return parsed
