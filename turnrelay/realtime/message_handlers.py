"""
Message handler implementations for WebSocket message routing.

One handler per inbound message type. Handlers run inside the relay hub's
processing lock, so each one validates, mutates and broadcasts as a single
step.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..error_types import ErrorMessages, ErrorType
from ..schemas.realtime.websocket_messages import (
    ActionMessage,
    FeedbackMessage,
    OutboundMessageType,
    RegisterControllerMessage,
    SetActivePlayerMessage,
)
from ..structured_logging.enhanced_logging_config import get_logger
from .action_router import RouteResult
from .connection_models import Role
from .envelope import build_message

if TYPE_CHECKING:
    from .relay_hub import RelayHub

logger = get_logger(__name__)


class MessageHandler(ABC):
    """Abstract base class for message handlers."""

    @abstractmethod
    async def handle(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        """
        Handle a specific message type.

        Args:
            hub: The relay hub (its lock is held by the caller)
            session_id: Sender session
            message: The typed inbound message
        """


class DisplayOnlyHandler(MessageHandler):
    """Base for messages only the registered display may send."""

    async def handle(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        display = hub.registry.display
        if display is None or display.session_id != session_id:
            logger.info(
                ErrorMessages.UNAUTHORIZED_ACTION,
                session_id=session_id,
                message_type=message.type,
                reason="not_the_display",
                error_type=ErrorType.UNAUTHORIZED_ACTION.value,
            )
            return
        await self.handle_display(hub, session_id, message)

    @abstractmethod
    async def handle_display(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        """Handle a message already known to come from the display."""


class RegisterDisplayHandler(MessageHandler):
    """Bind the sender as the display, revoking any previous display."""

    async def handle(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        hub.eviction_timers.cancel(session_id)
        previous_role, displaced = hub.registry.register(session_id, Role.DISPLAY)
        if previous_role == Role.CONTROLLER:
            hub.arbiter.leave(session_id, retain=False)
            hub.sync_reclaim_timers()

        if displaced is not None:
            logger.info("Revoking previous display", session_id=displaced.session_id, replaced_by=session_id)
            await hub.close_session(displaced.session_id, code=4001, reason="Display replaced")

        await hub.send(session_id, build_message(OutboundMessageType.REGISTERED.value, {"id": session_id, "role": "display"}))
        await hub.broadcast()


class RegisterControllerHandler(MessageHandler):
    """Bind the sender as a controller, reconcile its identity and queue it."""

    async def handle(self, hub: "RelayHub", session_id: str, message: RegisterControllerMessage) -> None:
        name = hub.normalize_name(session_id, message.declared_name)
        hub.eviction_timers.cancel(session_id)
        hub.registry.register(session_id, Role.CONTROLLER, name)

        inherited_from = hub.reconciler.on_register(session_id, name)
        if inherited_from is None:
            hub.arbiter.join(session_id, name)
        hub.sync_reclaim_timers()

        logger.info(
            "Controller registered",
            session_id=session_id,
            name=name,
            inherited_from=inherited_from,
            active=hub.arbiter.is_active(session_id),
        )
        await hub.send(session_id, build_message(OutboundMessageType.REGISTERED.value, {"id": session_id, "name": name}))
        await hub.broadcast()


class SetActivePlayerHandler(DisplayOnlyHandler):
    """Grant control to the addressed participant (null releases)."""

    async def handle_display(self, hub: "RelayHub", session_id: str, message: SetActivePlayerMessage) -> None:
        if message.payload is None:
            hub.reconciler.release()
        else:
            hub.arbiter.grant(message.payload)
        hub.sync_reclaim_timers()
        await hub.broadcast()


class ReleasePlayerHandler(DisplayOnlyHandler):
    """Clear the grant and the cached active identity."""

    async def handle_display(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        hub.reconciler.release()
        hub.sync_reclaim_timers()
        await hub.broadcast()


class NextTurnHandler(DisplayOnlyHandler):
    """Advance the queue, signalling an evicted controller to exit."""

    async def handle_display(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        result = hub.arbiter.advance()
        hub.sync_reclaim_timers()
        if result is not None and result.evicted and not result.ended.orphaned:
            await hub.evict(result.ended.session_id)
        await hub.broadcast()


class ActionHandler(MessageHandler):
    """Gate and relay controller input to the display."""

    async def handle(self, hub: "RelayHub", session_id: str, message: ActionMessage) -> None:
        result = await hub.router.route_action(session_id, message.value)
        if result == RouteResult.SELF_HEALED:
            hub.sync_reclaim_timers()
            await hub.broadcast()


class FeedbackHandler(MessageHandler):
    """Relay display feedback to the active controller."""

    async def handle(self, hub: "RelayHub", session_id: str, message: FeedbackMessage) -> None:
        await hub.router.route_feedback(session_id, message.payload)


class PingHandler(MessageHandler):
    """Answer a keep-alive ping."""

    async def handle(self, hub: "RelayHub", session_id: str, message: Any) -> None:
        await hub.send(session_id, build_message(OutboundMessageType.PONG.value))
