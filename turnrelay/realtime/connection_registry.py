"""
Connection registry for the turn relay.

Tracks every live transport connection together with its declared role and
identity. The registry is a leaf component: it never broadcasts and never
touches the turn queue. Callers use the values it returns (the previous
role on re-registration, the displaced display, the unregistered
connection) to drive cleanup elsewhere.
"""

import time
import uuid
from typing import Any

from starlette.websockets import WebSocketState

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection, Role

logger = get_logger(__name__)


def is_websocket_open(websocket: Any) -> bool:
    """Check whether both sides of a WebSocket still consider it connected."""
    try:
        application_state = getattr(websocket, "application_state", WebSocketState.DISCONNECTED)
        client_state = getattr(websocket, "client_state", WebSocketState.DISCONNECTED)
    except (AttributeError, ValueError, TypeError):
        return False
    return application_state == WebSocketState.CONNECTED and client_state == WebSocketState.CONNECTED


class ConnectionRegistry:
    """Session table with a single display slot."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._display_session: str | None = None

    def add(self, websocket: Any, session_id: str | None = None) -> Connection:
        """
        Track a newly accepted transport.

        Args:
            websocket: The accepted WebSocket
            session_id: Explicit session id (a fresh UUID when omitted)

        Returns:
            The new, unassigned Connection
        """
        session_id = session_id or str(uuid.uuid4())
        if session_id in self._connections:
            raise ValueError(f"Session id already in use: {session_id}")
        connection = Connection(session_id=session_id, websocket=websocket)
        self._connections[session_id] = connection
        logger.debug("Connection added", session_id=session_id, connection_count=len(self._connections))
        return connection

    def register(self, session_id: str, role: Role, name: str | None = None) -> tuple[Role, Connection | None]:
        """
        Bind a session to a role.

        Re-registering with a different role is allowed; the caller is
        responsible for undoing the effects of the previous role, which is
        returned for that purpose.

        Args:
            session_id: Session to bind
            role: Role being declared
            name: Declared display name (controllers only)

        Returns:
            (previous role, displaced display connection or None)

        Raises:
            KeyError: If the session is not tracked
        """
        connection = self._connections[session_id]
        previous_role = connection.role
        displaced: Connection | None = None

        if previous_role == Role.DISPLAY and role != Role.DISPLAY and self._display_session == session_id:
            self._display_session = None

        if role == Role.DISPLAY:
            if self._display_session is not None and self._display_session != session_id:
                displaced = self._connections.get(self._display_session)
                if displaced is not None:
                    displaced.role = Role.UNASSIGNED
            self._display_session = session_id
            connection.name = None
        else:
            connection.name = name

        connection.role = role
        logger.info(
            "Session registered",
            session_id=session_id,
            role=role.value,
            previous_role=previous_role.value,
            name=name,
            displaced_display=displaced.session_id if displaced else None,
        )
        return previous_role, displaced

    def unregister(self, session_id: str) -> Connection | None:
        """
        Forget a session whose transport closed.

        Returns:
            The removed connection (carrying its last role and name), or None
        """
        connection = self._connections.pop(session_id, None)
        if connection is None:
            return None
        connection.is_alive = False
        if self._display_session == session_id:
            self._display_session = None
        logger.debug(
            "Connection removed",
            session_id=session_id,
            role=connection.role.value,
            connection_count=len(self._connections),
        )
        return connection

    def get(self, session_id: str) -> Connection | None:
        return self._connections.get(session_id)

    def is_live(self, session_id: str | None) -> bool:
        """True when the session is registered and its transport is open."""
        if session_id is None:
            return False
        connection = self._connections.get(session_id)
        if connection is None or not connection.is_alive:
            return False
        return is_websocket_open(connection.websocket)

    def mark_seen(self, session_id: str) -> None:
        connection = self._connections.get(session_id)
        if connection is not None:
            connection.is_alive = True
            connection.last_seen = time.time()

    def mark_dead(self, session_id: str) -> None:
        """Flag a session whose transport failed; it stays tracked until its close event."""
        connection = self._connections.get(session_id)
        if connection is not None:
            connection.is_alive = False

    @property
    def display(self) -> Connection | None:
        if self._display_session is None:
            return None
        return self._connections.get(self._display_session)

    def controllers(self) -> list[Connection]:
        """All connections currently registered as controllers, in connect order."""
        return [c for c in self._connections.values() if c.role == Role.CONTROLLER]

    def role_of(self, session_id: str) -> Role:
        connection = self._connections.get(session_id)
        return connection.role if connection else Role.UNASSIGNED

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._connections
