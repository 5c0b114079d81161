"""
Context management utilities for structured logging.

Each WebSocket connection binds its session id into the structlog
contextvars so every log entry emitted while processing that connection's
messages carries it.
"""

import uuid
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def bind_connection_context(
    session_id: str | None = None,
    role: str | None = None,
    correlation_id: str | None = None,
    **kwargs,
) -> None:
    """
    Bind connection context to the current logging context.

    Args:
        session_id: Session identifier of the connection
        role: Declared role of the connection, if known
        correlation_id: Correlation ID (generated when omitted)
        **kwargs: Additional context variables
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    context_vars = {
        "correlation_id": correlation_id,
        "session_id": session_id,
        "role": role,
        **kwargs,
    }

    # Remove None values
    context_vars = {k: v for k, v in context_vars.items() if v is not None}

    bind_contextvars(**context_vars)


def clear_connection_context() -> None:
    """Clear the current connection context from logging."""
    clear_contextvars()


def get_current_context() -> dict[str, Any]:
    """Get the current logging context."""
    try:
        return structlog.contextvars.get_contextvars()
    except (AttributeError, KeyError):
        return {}
