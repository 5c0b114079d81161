"""
Exception hierarchy for the turn relay.

Exceptions are raised at the message boundary (validation) and at the
transport boundary (sends to closed sockets). The relay hub and the
connection loop absorb them; none of them is allowed to escape a
connection's receive loop.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .error_types import ErrorMessages, ErrorType
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to a relay error."""

    session_id: str | None = None
    message_type: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "session_id": self.session_id,
            "message_type": self.message_type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class TurnRelayError(Exception):
    """
    Base exception for all turn relay errors.

    The error logs itself once on construction, at warning level, with its
    structured context.
    """

    category: ErrorType = ErrorType.INTERNAL_ERROR
    log_message: str = ErrorMessages.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self._already_logged = False
        self._log_error()

    def _log_error(self) -> None:
        logger.warning(
            self.log_message,
            error_type=self.category.value,
            error_class=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )
        self._already_logged = True

    @property
    def already_logged(self) -> bool:
        return self._already_logged

    def mark_logged(self) -> None:
        self._already_logged = True

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error_type": self.category.value,
            "error_class": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
        }


class MessageValidationError(TurnRelayError):
    """
    Raised when an inbound message is malformed.

    A well-formed frame whose discriminator is not a known message type is
    categorized separately so it can be told apart in the logs.
    """

    category = ErrorType.MALFORMED_INPUT
    log_message = ErrorMessages.MALFORMED_INPUT

    def __init__(self, message: str, error_type: str = "validation_error", context: ErrorContext | None = None):
        self.error_type = error_type
        if error_type == "unknown_message_type":
            self.category = ErrorType.UNKNOWN_MESSAGE_TYPE
            self.log_message = ErrorMessages.UNKNOWN_MESSAGE_TYPE
        super().__init__(message, context, {"validation_error": error_type})
