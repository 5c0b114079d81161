"""
Identity continuity across reconnects.

A client that reloads its page or loses its network gets a brand new
session id but declares the same display name. The reconciler uses the
name cached on the active grant to hand the turn to the new session, so a
refreshed client is not locked out of its own turn.

Two triggers exist and both are needed:

- on_register: a controller registers with the active name;
- on_blocked_action: a non-active session that declares the active name
  sends an ACTION. The triggering action is still dropped; the rebound
  grant applies from the next action on.

Only an exact match with the active name ever moves the grant. A
different name never usurps someone else's turn.
"""

from ..structured_logging.enhanced_logging_config import get_logger
from .turn_arbiter import TurnArbiter

logger = get_logger(__name__)


class IdentityReconciler:
    """Rewrites the active grant to a reconnected session that declares the active name."""

    def __init__(self, arbiter: TurnArbiter) -> None:
        self._arbiter = arbiter
        self.stats = {"on_register": 0, "self_heal": 0}

    @property
    def cached_active_name(self) -> str | None:
        grant = self._arbiter.active_grant
        return grant.name if grant else None

    def matches_active(self, session_id: str, name: str | None) -> bool:
        """True when `name` is the active name but `session_id` does not hold the grant."""
        if name is None or name != self.cached_active_name:
            return False
        return self._arbiter.active_grant.session_id != session_id

    def on_register(self, session_id: str, name: str) -> str | None:
        """
        Reconcile a controller registration.

        Returns:
            The session id the turn was inherited from, or None
        """
        if not self.matches_active(session_id, name):
            return None
        previous = self._arbiter.rebind_active(session_id, name)
        if previous is not None:
            self.stats["on_register"] += 1
            logger.info(
                "Reconnected controller inherited active turn",
                session_id=session_id,
                previous_session_id=previous,
                name=name,
            )
        return previous

    def on_blocked_action(self, session_id: str, name: str | None) -> bool:
        """
        Self-heal after an action was refused.

        Returns:
            True if the grant now points at `session_id`
        """
        if name is None or not self.matches_active(session_id, name):
            return False
        previous = self._arbiter.rebind_active(session_id, name)
        if previous is None:
            return False
        self.stats["self_heal"] += 1
        logger.info(
            "Self-healed active grant after blocked action",
            session_id=session_id,
            previous_session_id=previous,
            name=name,
        )
        return True

    def release(self) -> bool:
        """Forget the cached active identity (explicit display release)."""
        return self._arbiter.release()
