"""
State broadcasting for the turn relay.

After every mutation the full arbitration state is pushed to the display
and every registered controller. It is always the whole state, never a
delta, so a client that missed an update converges on the next one.

The state travels as three messages, keeping the discriminators existing
clients listen for:

- QUEUE_UPDATE: ordered [{id, name}]
- CURRENT_PLAYER: active name (controllers match on names)
- CURRENT_PLAYER_ID: active session id
"""

from typing import Any

from ..schemas.realtime.websocket_messages import OutboundMessageType
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_registry import ConnectionRegistry
from .envelope import build_message
from .turn_arbiter import TurnArbiter, TurnSnapshot
from .websocket_helpers import send_message

logger = get_logger(__name__)


def build_state_messages(snapshot: TurnSnapshot) -> list[dict[str, Any]]:
    """Serialize a snapshot into the outbound state messages."""
    return [
        build_message(OutboundMessageType.QUEUE_UPDATE.value, snapshot.queue_payload()),
        build_message(OutboundMessageType.CURRENT_PLAYER.value, snapshot.active_name),
        build_message(OutboundMessageType.CURRENT_PLAYER_ID.value, snapshot.active_id),
    ]


class StateBroadcaster:
    """Fans the canonical arbitration state out to every live party."""

    def __init__(self, registry: ConnectionRegistry, arbiter: TurnArbiter) -> None:
        self._registry = registry
        self._arbiter = arbiter
        self.stats = {"broadcasts": 0, "deliveries": 0, "skipped_recipients": 0}

    def recipients(self) -> list[str]:
        """Display first, then controllers in connect order."""
        sessions = []
        display = self._registry.display
        if display is not None:
            sessions.append(display.session_id)
        sessions.extend(c.session_id for c in self._registry.controllers())
        return sessions

    async def broadcast(self) -> TurnSnapshot:
        """
        Push the current state to everyone.

        Returns:
            The snapshot that was sent
        """
        snapshot = self._arbiter.snapshot()
        messages = build_state_messages(snapshot)
        self.stats["broadcasts"] += 1

        delivered = 0
        skipped = 0
        for session_id in self.recipients():
            ok = True
            for message in messages:
                if not await send_message(self._registry, session_id, message):
                    ok = False
                    break
            if ok:
                delivered += 1
            else:
                skipped += 1

        self.stats["deliveries"] += delivered
        self.stats["skipped_recipients"] += skipped
        logger.debug(
            "State broadcast",
            queue=[p.name for p in snapshot.queue],
            active_id=snapshot.active_id,
            active_name=snapshot.active_name,
            delivered=delivered,
            skipped=skipped,
        )
        return snapshot
