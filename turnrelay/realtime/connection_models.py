"""
Data models for connection management.

A Connection is one transport session. It is owned by the
ConnectionRegistry and destroyed when its transport closes.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Declared role of a connection."""

    UNASSIGNED = "unassigned"
    DISPLAY = "display"
    CONTROLLER = "controller"


@dataclass
class Connection:
    """
    Metadata for one WebSocket session.

    The session id is assigned at connect time and never reused. `name` is
    only meaningful for controllers.
    """

    session_id: str
    websocket: Any
    role: Role = Role.UNASSIGNED
    name: str | None = None
    is_alive: bool = True
    established_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)
