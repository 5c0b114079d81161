"""
The relay hub: the single arbitration actor.

Every transport event (connect, frame, disconnect) and every timer expiry
is processed under one asyncio lock. Validation, mutation, snapshot and the
resulting sends happen as one unit, so two events can never interleave at
an await point and broadcasts leave in mutation order.

The hub wires the components together:

    ConnectionRegistry -> TurnArbiter <- IdentityReconciler
                               |
              StateBroadcaster + ActionRouter
"""

import asyncio
from typing import Any

from ..config import AppConfig, get_config
from ..exceptions import MessageValidationError
from ..schemas.realtime.websocket_messages import OutboundMessageType
from ..structured_logging.enhanced_logging_config import get_logger
from .action_router import ActionRouter
from .connection_models import Connection, Role
from .connection_registry import ConnectionRegistry
from .envelope import build_message
from .identity_reconciler import IdentityReconciler
from .message_handler_factory import MessageHandlerFactory
from .message_validator import WebSocketMessageValidator
from .scheduled_tasks import SessionTaskScheduler
from .state_broadcaster import StateBroadcaster
from .turn_arbiter import TurnArbiter, TurnSnapshot
from .websocket_helpers import safe_close_websocket, send_message

logger = get_logger(__name__)

EVICTED_CLOSE_CODE = 4002


class RelayHub:
    """Owns all relay state and serializes every event that touches it."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        self.registry = ConnectionRegistry()
        self.arbiter = TurnArbiter(self.config.arbitration, self.registry.is_live)
        self.reconciler = IdentityReconciler(self.arbiter)
        self.broadcaster = StateBroadcaster(self.registry, self.arbiter)
        self.router = ActionRouter(self.registry, self.arbiter, self.reconciler)
        self.validator = WebSocketMessageValidator(
            max_message_size=self.config.realtime.max_message_size,
            max_json_depth=self.config.realtime.max_json_depth,
        )
        self.handlers = MessageHandlerFactory()
        self.eviction_timers = SessionTaskScheduler("eviction-close")
        self.reclaim_timers = SessionTaskScheduler("reclaim-window")
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    async def connect(self, websocket: Any) -> Connection:
        """Track an accepted WebSocket and assign it a fresh session id."""
        async with self._lock:
            connection = self.registry.add(websocket)
        logger.info("Connection opened", session_id=connection.session_id, connection_count=len(self.registry))
        return connection

    async def disconnect(self, session_id: str) -> None:
        """Clean up after a transport closed."""
        async with self._lock:
            self.eviction_timers.cancel(session_id)
            connection = self.registry.unregister(session_id)
            if connection is None:
                return

            logger.info(
                "Connection closed",
                session_id=session_id,
                role=connection.role.value,
                name=connection.name,
                connection_count=len(self.registry),
            )
            if connection.role != Role.CONTROLLER:
                return

            participant = self.arbiter.leave(session_id)
            if participant is not None and participant.orphaned:
                self.reclaim_timers.schedule(
                    session_id, self.config.arbitration.reclaim_window_seconds, self._expire_reclaim
                )
            self.sync_reclaim_timers()
            await self.broadcast()

    async def handle_frame(self, session_id: str, data: str) -> None:
        """Validate one inbound text frame and dispatch it to its handler."""
        async with self._lock:
            if session_id not in self.registry:
                logger.debug("Frame from unknown session ignored", session_id=session_id)
                return
            self.registry.mark_seen(session_id)

            try:
                message = self.validator.parse_and_validate(data, session_id)
            except MessageValidationError as e:
                # Already logged with its context on construction
                logger.debug("Frame discarded", session_id=session_id, validation_error=e.error_type)
                return

            handler = self.handlers.get_handler(message.type)
            await handler.handle(self, session_id, message)

    async def shutdown(self) -> None:
        """Cancel outstanding timers."""
        await self.eviction_timers.cancel_all()
        await self.reclaim_timers.cancel_all()
        logger.info("Relay hub shut down", connection_count=len(self.registry))

    # ------------------------------------------------------------------
    # Helpers used by message handlers (lock held)
    # ------------------------------------------------------------------

    async def broadcast(self) -> TurnSnapshot:
        return await self.broadcaster.broadcast()

    async def send(self, session_id: str, message: dict[str, Any]) -> bool:
        return await send_message(self.registry, session_id, message)

    async def close_session(self, session_id: str, code: int = 1000, reason: str = "Connection closed") -> None:
        connection = self.registry.get(session_id)
        if connection is None:
            return
        await safe_close_websocket(connection.websocket, code=code, reason=reason)

    def normalize_name(self, session_id: str, name: str | None) -> str:
        """Trim a declared name, defaulting blank names to P-<session prefix>."""
        cleaned = (name or "").strip()
        if not cleaned:
            cleaned = f"P-{session_id[:4]}"
        return cleaned[: self.config.realtime.max_name_length]

    def sync_reclaim_timers(self) -> None:
        """Cancel reclaim timers whose orphaned slot no longer exists."""
        for session_id in self.reclaim_timers.pending_sessions() - self.arbiter.orphaned_sessions():
            self.reclaim_timers.cancel(session_id)
            logger.debug("Reclaim window closed early", session_id=session_id)

    async def evict(self, session_id: str) -> None:
        """Tell an evicted controller to exit, and close it after the grace period if it does not."""
        await self.send(session_id, build_message(OutboundMessageType.TURN_ENDED.value, {"reason": "evicted"}))
        self.eviction_timers.schedule(
            session_id, self.config.arbitration.eviction_grace_seconds, self._force_close_evicted
        )
        logger.info(
            "Controller evicted",
            session_id=session_id,
            grace_seconds=self.config.arbitration.eviction_grace_seconds,
        )

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    async def _force_close_evicted(self, session_id: str) -> None:
        async with self._lock:
            if not self.registry.is_live(session_id):
                logger.debug("Evicted controller already closed", session_id=session_id)
                return
            logger.info("Force-closing evicted controller after grace period", session_id=session_id)
            await self.close_session(session_id, code=EVICTED_CLOSE_CODE, reason="Turn ended")

    async def _expire_reclaim(self, session_id: str) -> None:
        async with self._lock:
            participant = self.arbiter.participant(session_id)
            if participant is None or not participant.orphaned:
                return
            logger.info("Reclaim window expired", session_id=session_id, name=participant.name)
            self.arbiter.leave(session_id)
            await self.broadcast()
