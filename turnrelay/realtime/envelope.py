"""
Outbound message envelope for the turn relay.

Every frame the relay sends has the same shape:
- type: str discriminator (QUEUE_UPDATE, CURRENT_PLAYER, ACTION, ...)
- payload: message body (any JSON value)
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)

Message-specific keys (for example `player` on a relayed ACTION) sit next
to `payload` at the top level, which is where existing clients look for
them.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

_global_sequence_counter = 0
_sequence_lock = threading.Lock()


def _get_next_sequence() -> int:
    global _global_sequence_counter
    with _sequence_lock:
        _global_sequence_counter += 1
        return _global_sequence_counter


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def build_message(
    message_type: str,
    payload: Any = None,
    *,
    sequence_number: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """
    Create a normalized outbound message.

    Args:
        message_type: Type discriminator
        payload: Message body
        sequence_number: Optional explicit sequence number
        **extra: Additional top-level keys

    Returns:
        The message dictionary, ready for send_json
    """
    message: dict[str, Any] = {
        "type": message_type,
        "payload": payload,
        "timestamp": utc_now_z(),
        "sequence_number": sequence_number if sequence_number is not None else _get_next_sequence(),
    }
    message.update(extra)
    return message
