"""
Action gating and relay.

Two message classes cross between the display and the controllers:

- ACTION (controller -> display): relayed only if the sender holds the
  active grant at the instant the message is processed. A refused action
  from a session declaring the active name triggers the reconciler's
  self-heal, but the refused action itself is not replayed.
- FEEDBACK (display -> active controller): relayed only from the
  registered display, and only to the session the grant currently names.

Nothing is buffered: a message is forwarded within the processing step
that validated it, or dropped.
"""

from enum import Enum
from typing import Any

from ..error_types import ErrorMessages, ErrorType
from ..schemas.realtime.websocket_messages import OutboundMessageType
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Role
from .connection_registry import ConnectionRegistry
from .envelope import build_message
from .identity_reconciler import IdentityReconciler
from .turn_arbiter import TurnArbiter
from .websocket_helpers import send_message

logger = get_logger(__name__)


class RouteResult(str, Enum):
    """Outcome of routing one gated message."""

    RELAYED = "relayed"
    DROPPED = "dropped"
    SELF_HEALED = "self_healed"  # dropped, but the grant moved to the sender
    NO_RECIPIENT = "no_recipient"


class ActionRouter:
    """Gates ACTION and FEEDBACK messages against the current grant."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        arbiter: TurnArbiter,
        reconciler: IdentityReconciler | None = None,
    ) -> None:
        self._registry = registry
        self._arbiter = arbiter
        self._reconciler = reconciler
        self.stats = {result.value: 0 for result in RouteResult}

    def _count(self, result: RouteResult) -> RouteResult:
        self.stats[result.value] += 1
        return result

    async def route_action(self, session_id: str, action: Any) -> RouteResult:
        """Relay a controller's action to the display if the controller is active."""
        if self._registry.role_of(session_id) != Role.CONTROLLER:
            logger.info(
                ErrorMessages.UNAUTHORIZED_ACTION,
                session_id=session_id,
                message_type="ACTION",
                reason="not_a_controller",
                error_type=ErrorType.UNAUTHORIZED_ACTION.value,
            )
            return self._count(RouteResult.DROPPED)

        connection = self._registry.get(session_id)
        if not self._arbiter.is_active(session_id):
            healed = self._reconciler is not None and self._reconciler.on_blocked_action(session_id, connection.name)
            logger.info(
                ErrorMessages.UNAUTHORIZED_ACTION,
                session_id=session_id,
                name=connection.name,
                message_type="ACTION",
                reason="not_active",
                self_healed=healed,
                error_type=ErrorType.UNAUTHORIZED_ACTION.value,
            )
            return self._count(RouteResult.SELF_HEALED if healed else RouteResult.DROPPED)

        display = self._registry.display
        if display is None:
            logger.debug("No display registered, dropping action", session_id=session_id)
            return self._count(RouteResult.NO_RECIPIENT)

        message = build_message(
            OutboundMessageType.ACTION.value,
            action,
            player=connection.name,
            playerId=session_id,
        )
        if not await send_message(self._registry, display.session_id, message):
            return self._count(RouteResult.NO_RECIPIENT)
        logger.debug("Action relayed", session_id=session_id, name=connection.name)
        return self._count(RouteResult.RELAYED)

    async def route_feedback(self, session_id: str, payload: Any) -> RouteResult:
        """Relay display feedback to the active controller."""
        display = self._registry.display
        if display is None or display.session_id != session_id:
            logger.info(
                ErrorMessages.UNAUTHORIZED_ACTION,
                session_id=session_id,
                message_type="FEEDBACK",
                reason="not_the_display",
                error_type=ErrorType.UNAUTHORIZED_ACTION.value,
            )
            return self._count(RouteResult.DROPPED)

        grant = self._arbiter.active_grant
        if grant is None or not self._arbiter.is_active(grant.session_id):
            logger.debug("No active controller, dropping feedback", session_id=session_id)
            return self._count(RouteResult.NO_RECIPIENT)

        message = build_message(OutboundMessageType.FEEDBACK.value, payload)
        if not await send_message(self._registry, grant.session_id, message):
            return self._count(RouteResult.NO_RECIPIENT)
        return self._count(RouteResult.RELAYED)
