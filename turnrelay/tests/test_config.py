"""
Unit tests for configuration models.
"""

import pytest
from pydantic import ValidationError

from ..config import AppConfig, get_config, reset_config
from ..config.models import (
    ActivationPolicy,
    AdvanceMode,
    ArbitrationConfig,
    GrantOrder,
    LoggingConfig,
    RealtimeConfig,
    ServerConfig,
)


class TestServerConfig:
    def test_defaults(self, monkeypatch):
        for name in ("SERVER_HOST", "SERVER_PORT", "PORT"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.health_message == "Turn Relay Server is Running!"

    def test_platform_port_variable(self, monkeypatch):
        monkeypatch.delenv("SERVER_PORT", raising=False)
        monkeypatch.setenv("PORT", "9123")

        assert ServerConfig().port == 9123

    def test_invalid_port(self):
        with pytest.raises(ValidationError):
            ServerConfig(port=70000)


class TestArbitrationConfig:
    def test_defaults(self, monkeypatch):
        for name in ("ARBITRATION_POLICY", "ARBITRATION_GRANT_ORDER", "ARBITRATION_ADVANCE"):
            monkeypatch.delenv(name, raising=False)

        config = ArbitrationConfig()

        assert config.policy == ActivationPolicy.EXPLICIT_GRANT
        assert config.grant_order == GrantOrder.PROMOTE_TO_FRONT
        assert config.advance == AdvanceMode.ROTATE
        assert config.retain_identity_on_disconnect is True
        assert config.eviction_grace_seconds == 2.0

    def test_environment_values_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("ARBITRATION_POLICY", "fifo-SLOT0")
        monkeypatch.setenv("ARBITRATION_GRANT_ORDER", "Rotate")
        monkeypatch.setenv("ARBITRATION_ADVANCE", "EVICT")

        config = ArbitrationConfig()

        assert config.policy == ActivationPolicy.FIFO_SLOT0
        assert config.grant_order == GrantOrder.ROTATE
        assert config.advance == AdvanceMode.EVICT

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValidationError):
            ArbitrationConfig(policy="first-come")

    @pytest.mark.parametrize("field", ["reclaim_window_seconds", "eviction_grace_seconds"])
    def test_timer_durations_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            ArbitrationConfig(**{field: 0})


class TestLoggingAndRealtime:
    def test_level_is_normalized(self):
        assert LoggingConfig(level="warning").level == "WARNING"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            LoggingConfig(environment="staging")

    def test_invalid_format(self):
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")

    def test_realtime_limits(self):
        config = RealtimeConfig()
        assert config.max_message_size == 10 * 1024
        assert config.max_name_length == 32
        with pytest.raises(ValidationError):
            RealtimeConfig(max_name_length=0)


def test_get_config_is_fresh_under_pytest(monkeypatch):
    monkeypatch.setenv("ARBITRATION_ADVANCE", "evict")
    first = get_config()
    monkeypatch.setenv("ARBITRATION_ADVANCE", "rotate")
    second = get_config()

    assert first is not second
    assert first.arbitration.advance == AdvanceMode.EVICT
    assert second.arbitration.advance == AdvanceMode.ROTATE
    reset_config()


def test_to_legacy_dict():
    config = AppConfig(arbitration=ArbitrationConfig(policy=ActivationPolicy.FIFO_SLOT0))

    legacy = config.to_legacy_dict()

    assert legacy["logging"]["environment"] == "unit_test"
    assert legacy["arbitration"]["policy"] == "FIFO-slot0"
    assert set(legacy) == {"host", "port", "logging", "arbitration"}
