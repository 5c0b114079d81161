"""
Turn arbitration for the relay.

The TurnArbiter owns the ordered queue of controller participants and the
active control grant. It is the authorization boundary: ActionRouter asks it
whether a session may act, StateBroadcaster asks it for a snapshot, and
nothing outside this module mutates the queue or the grant. Participants
and grants are immutable values; the arbiter replaces them rather than
editing them in place so callers can never hold a mutable reference into
its state.

Two configuration axes shape the behaviour:

- policy: under FIFO-slot0 the head of the queue is the active controller
  at all times; under explicit-grant only grant() activates anybody.
- grant_order / advance: how grant() and advance() reorder the queue.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from ..config.models import ActivationPolicy, AdvanceMode, ArbitrationConfig, GrantOrder
from ..error_types import ErrorMessages, ErrorType
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Participant:
    """A controller's logical identity and its place in the queue."""

    session_id: str
    name: str
    # True while the slot is held for a disconnected active controller
    orphaned: bool = False

    def to_dict(self) -> dict[str, str]:
        return {"id": self.session_id, "name": self.name}


@dataclass(frozen=True)
class ActiveControlGrant:
    """The single exclusive authorization to issue actions."""

    session_id: str
    name: str


@dataclass(frozen=True)
class TurnSnapshot:
    """Canonical view of the arbitration state at one instant."""

    queue: tuple[Participant, ...]
    active_id: str | None
    active_name: str | None

    def queue_payload(self) -> list[dict[str, str]]:
        return [participant.to_dict() for participant in self.queue]


@dataclass(frozen=True)
class AdvanceResult:
    """What advance() did to the participant whose turn ended."""

    ended: Participant
    evicted: bool


class TurnArbiter:
    """Owner of the turn queue and the active control grant."""

    def __init__(self, config: ArbitrationConfig, is_live: Callable[[str], bool] | None = None) -> None:
        """
        Args:
            config: Arbitration policy
            is_live: Liveness check for sessions (ConnectionRegistry.is_live)
        """
        self._config = config
        self._is_live = is_live or (lambda _session_id: True)
        self._queue: list[Participant] = []
        self._grant: ActiveControlGrant | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def config(self) -> ArbitrationConfig:
        return self._config

    @property
    def queue(self) -> tuple[Participant, ...]:
        return tuple(self._queue)

    @property
    def active_grant(self) -> ActiveControlGrant | None:
        return self._grant

    def is_active(self, session_id: str | None) -> bool:
        """True iff `session_id` currently holds a live active grant."""
        if session_id is None or self._grant is None or self._grant.session_id != session_id:
            return False
        participant = self._find_by_session(session_id)
        return participant is not None and not participant.orphaned

    def participant(self, session_id: str) -> Participant | None:
        return self._find_by_session(session_id)

    def orphaned_sessions(self) -> set[str]:
        return {p.session_id for p in self._queue if p.orphaned}

    def snapshot(self) -> TurnSnapshot:
        grant = self._grant
        return TurnSnapshot(
            queue=tuple(self._queue),
            active_id=grant.session_id if grant else None,
            active_name=grant.name if grant else None,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def join(self, session_id: str, name: str) -> Participant:
        """
        Append a participant to the end of the queue.

        A session that is already queued keeps its slot and only has its
        name updated (a controller re-declaring itself).
        """
        index = self._index_of(session_id)
        if index is not None:
            updated = replace(self._queue[index], name=name)
            self._queue[index] = updated
            if self._grant is not None and self._grant.session_id == session_id:
                self._grant = ActiveControlGrant(session_id, name)
            logger.debug("Participant renamed in place", session_id=session_id, name=name, position=index)
            return updated

        participant = Participant(session_id=session_id, name=name)
        self._queue.append(participant)
        self._sync_head()
        logger.info(
            "Participant joined queue",
            session_id=session_id,
            name=name,
            position=len(self._queue) - 1,
            active_id=self._grant.session_id if self._grant else None,
        )
        return participant

    def grant(self, target: str | None) -> bool:
        """
        Move the addressed participant to the privileged position.

        `target` is matched against session ids first and display names
        second. A None target is a release. Unknown or stale targets and
        targets that are already active leave the state untouched.

        Returns:
            True if the arbitration state changed
        """
        if target is None:
            return self.release()

        participant = self._resolve_target(target)
        if participant is None:
            logger.info(ErrorMessages.STALE_TARGET, target=target, error_type=ErrorType.STALE_TARGET.value)
            return False
        if self.is_active(participant.session_id):
            logger.debug("Grant target already active", session_id=participant.session_id)
            return False

        index = self._queue.index(participant)
        if self._config.grant_order == GrantOrder.ROTATE:
            self._queue[0], self._queue[index] = self._queue[index], self._queue[0]
        else:
            self._queue.pop(index)
            self._queue.insert(0, participant)

        self._grant = ActiveControlGrant(participant.session_id, participant.name)
        self._prune_orphans()
        self._sync_head()
        logger.info(
            "Control granted",
            session_id=participant.session_id,
            name=participant.name,
            grant_order=self._config.grant_order.value,
            queue=[p.name for p in self._queue],
        )
        return True

    def advance(self) -> AdvanceResult | None:
        """
        End the current turn.

        Under FIFO-slot0 the head's turn ends; under explicit-grant the
        active participant's turn ends (nothing happens when nobody is
        active). The participant is evicted or rotated to the tail
        according to the advance mode. An orphaned slot is always dropped.

        Returns:
            The participant whose turn ended, or None if there was none
        """
        if not self._queue:
            return None

        if self._config.policy == ActivationPolicy.FIFO_SLOT0:
            index = 0
        else:
            if self._grant is None:
                return None
            index = self._index_of(self._grant.session_id)
            if index is None:
                self._grant = None
                return None

        ended = self._queue.pop(index)
        evicted = ended.orphaned or self._config.advance == AdvanceMode.EVICT
        if not evicted:
            self._queue.append(ended)

        self._grant = None
        self._sync_head()
        logger.info(
            "Turn advanced",
            session_id=ended.session_id,
            name=ended.name,
            evicted=evicted,
            queue=[p.name for p in self._queue],
        )
        return AdvanceResult(ended=ended, evicted=evicted)

    def leave(self, session_id: str, retain: bool | None = None) -> Participant | None:
        """
        Remove a participant whose controller left.

        When the active participant leaves and identity retention is
        enabled, its slot stays in the queue marked orphaned and the grant
        keeps its name so the same name can reclaim it. An already orphaned
        slot is always removed.

        Args:
            session_id: Session of the departing controller
            retain: Override for retain_identity_on_disconnect

        Returns:
            The removed or orphaned participant, or None if not queued
        """
        index = self._index_of(session_id)
        if index is None:
            return None

        if retain is None:
            retain = self._config.retain_identity_on_disconnect
        participant = self._queue[index]
        holds_grant = self._grant is not None and self._grant.session_id == session_id

        if holds_grant and not participant.orphaned and retain:
            orphan = replace(participant, orphaned=True)
            self._queue[index] = orphan
            logger.info("Active participant orphaned", session_id=session_id, name=participant.name)
            return orphan

        self._queue.pop(index)
        if holds_grant:
            self._grant = None
        self._sync_head()
        logger.info(
            "Participant left queue",
            session_id=session_id,
            name=participant.name,
            was_active=holds_grant,
            active_id=self._grant.session_id if self._grant else None,
        )
        return participant

    def release(self) -> bool:
        """
        Clear the active grant and forget the cached active identity.

        Under FIFO-slot0 a live head stays active; only an orphaned head is
        dropped (promoting the next participant).

        Returns:
            True if the arbitration state changed
        """
        before = self.snapshot()
        if self._config.policy == ActivationPolicy.EXPLICIT_GRANT:
            self._grant = None
        self._prune_orphans(keep_active=False)
        self._sync_head()
        changed = self.snapshot() != before
        logger.info("Control released", changed=changed)
        return changed

    def rebind_active(self, session_id: str, name: str) -> str | None:
        """
        Transfer the active slot to a new session that declares the active name.

        The new session takes over the slot's queue position; if it already
        had its own queue entry, that entry is merged away. Only an exact
        match with the grant's name is accepted.

        Returns:
            The session id that previously held the grant, or None if no rebind happened
        """
        grant = self._grant
        if grant is None or grant.name != name or grant.session_id == session_id:
            return None

        own_index = self._index_of(session_id)
        if own_index is not None:
            self._queue.pop(own_index)

        slot_index = self._index_of(grant.session_id)
        participant = Participant(session_id=session_id, name=name)
        if slot_index is None:
            self._queue.insert(0, participant)
        else:
            self._queue[slot_index] = participant

        self._grant = ActiveControlGrant(session_id, name)
        logger.info(
            "Active slot rebound",
            previous_session_id=grant.session_id,
            session_id=session_id,
            name=name,
        )
        return grant.session_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, session_id: str) -> int | None:
        for index, participant in enumerate(self._queue):
            if participant.session_id == session_id:
                return index
        return None

    def _find_by_session(self, session_id: str) -> Participant | None:
        index = self._index_of(session_id)
        return self._queue[index] if index is not None else None

    def _resolve_target(self, target: Any) -> Participant | None:
        target = str(target)
        by_id = self._find_by_session(target)
        candidates = [by_id] if by_id is not None else [p for p in self._queue if p.name == target]
        for participant in candidates:
            if not participant.orphaned and self._is_live(participant.session_id):
                return participant
        return None

    def _prune_orphans(self, keep_active: bool = True) -> None:
        """Drop orphaned slots, except the one holding the grant when `keep_active` is set."""
        active_id = self._grant.session_id if self._grant and keep_active else None
        self._queue = [p for p in self._queue if not p.orphaned or p.session_id == active_id]
        if self._grant is not None and self._index_of(self._grant.session_id) is None:
            self._grant = None

    def _sync_head(self) -> None:
        """Under FIFO-slot0 the grant always follows the queue head."""
        if self._config.policy != ActivationPolicy.FIFO_SLOT0:
            return
        if not self._queue:
            self._grant = None
            return
        head = self._queue[0]
        self._grant = ActiveControlGrant(head.session_id, head.name)
