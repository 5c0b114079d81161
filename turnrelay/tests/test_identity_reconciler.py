"""
Tests for name-based identity reconciliation.
"""

from ..config.models import ActivationPolicy, ArbitrationConfig
from ..realtime.identity_reconciler import IdentityReconciler
from ..realtime.turn_arbiter import TurnArbiter


def make_pair(**overrides) -> tuple[TurnArbiter, IdentityReconciler]:
    arbiter = TurnArbiter(ArbitrationConfig(**overrides))
    return arbiter, IdentityReconciler(arbiter)


class TestOnRegister:
    def test_reconnect_inherits_orphaned_turn(self):
        arbiter, reconciler = make_pair(policy=ActivationPolicy.EXPLICIT_GRANT)
        arbiter.join("a1", "Alice")
        arbiter.grant("Alice")
        arbiter.leave("a1")

        inherited_from = reconciler.on_register("a2", "Alice")

        assert inherited_from == "a1"
        assert arbiter.is_active("a2")
        assert reconciler.stats["on_register"] == 1

    def test_different_name_never_usurps(self):
        arbiter, reconciler = make_pair()
        arbiter.join("a1", "Alice")
        arbiter.grant("Alice")

        assert reconciler.on_register("m1", "Mallory") is None
        assert arbiter.is_active("a1")

    def test_no_active_name_means_no_reconciliation(self):
        arbiter, reconciler = make_pair()
        arbiter.join("a1", "Alice")

        assert reconciler.cached_active_name is None
        assert reconciler.on_register("a2", "Alice") is None

    def test_same_session_is_not_a_reconnect(self):
        arbiter, reconciler = make_pair()
        arbiter.join("a1", "Alice")
        arbiter.grant("a1")

        assert not reconciler.matches_active("a1", "Alice")
        assert reconciler.on_register("a1", "Alice") is None


class TestOnBlockedAction:
    def test_self_heal_moves_grant_to_sender(self):
        arbiter, reconciler = make_pair()
        arbiter.join("a1", "Alice")
        arbiter.join("a2", "Alice")
        arbiter.grant("a1")

        assert reconciler.on_blocked_action("a2", "Alice") is True

        assert arbiter.is_active("a2")
        assert not arbiter.is_active("a1")
        assert reconciler.stats["self_heal"] == 1

    def test_self_heal_requires_active_name(self):
        arbiter, reconciler = make_pair()
        arbiter.join("a1", "Alice")
        arbiter.join("b1", "Bob")
        arbiter.grant("a1")

        assert reconciler.on_blocked_action("b1", "Bob") is False
        assert reconciler.on_blocked_action("b1", None) is False
        assert arbiter.is_active("a1")


def test_release_forgets_cached_name():
    arbiter, reconciler = make_pair()
    arbiter.join("a1", "Alice")
    arbiter.grant("a1")
    arbiter.leave("a1")
    assert reconciler.cached_active_name == "Alice"

    reconciler.release()

    assert reconciler.cached_active_name is None
    assert reconciler.on_register("a2", "Alice") is None
