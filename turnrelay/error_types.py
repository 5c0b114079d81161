"""
Centralized error types for the turn relay.

Every failure the relay absorbs is categorized with one of these values so
that logs can be filtered by failure mode. No error is ever fatal to the
process or to the connection that caused it.
"""

from enum import Enum


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Unparseable JSON, oversized frames, missing or mistyped fields
    MALFORMED_INPUT = "malformed_input"
    # Well-formed message with a discriminator no handler is registered for
    UNKNOWN_MESSAGE_TYPE = "unknown_message_type"
    # Sender lacks the role or the active grant required by the message
    UNAUTHORIZED_ACTION = "unauthorized_action"
    # A grant or relay references a session that is gone
    STALE_TARGET = "stale_target"
    # Writing to or closing a transport that is already closed
    TRANSPORT_FAILURE = "transport_failure"
    INTERNAL_ERROR = "internal_error"


class ErrorMessages:
    """Common log messages for consistent diagnostics."""

    MALFORMED_INPUT = "Discarding malformed message"
    UNKNOWN_MESSAGE_TYPE = "Discarding message of unknown type"
    UNAUTHORIZED_ACTION = "Dropping unauthorized message"
    STALE_TARGET = "Target session is no longer registered"
    TRANSPORT_FAILURE = "Skipping recipient with closed transport"
    INTERNAL_ERROR = "Error processing message"
