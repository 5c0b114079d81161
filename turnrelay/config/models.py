"""
Pydantic-based configuration models for the turn relay server.

Every setting can be supplied through the environment (or a .env file)
using the prefix of the section it belongs to, e.g. ARBITRATION_POLICY or
LOGGING_LEVEL. The hosting platform's bare PORT variable is honoured too.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ActivationPolicy(str, Enum):
    """How the active controller is chosen."""

    FIFO_SLOT0 = "FIFO-slot0"  # the queue head is always the active controller
    EXPLICIT_GRANT = "explicit-grant"  # only the display's grant activates


class GrantOrder(str, Enum):
    """How a granted participant reaches the head of the queue."""

    PROMOTE_TO_FRONT = "promote-to-front"
    ROTATE = "rotate"


class AdvanceMode(str, Enum):
    """What happens to the head of the queue on NEXT_TURN."""

    EVICT = "evict"
    ROTATE = "rotate"


def _normalize_choice(value: Any, enum_cls: type[Enum]) -> Any:
    """Match a string against an enum's values case-insensitively."""
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted:
                return member
    return value


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(
        default=8080,
        validation_alias=AliasChoices("SERVER_PORT", "PORT"),
        description="Server port (hosting platforms provide PORT)",
    )
    health_message: str = Field(
        default="Turn Relay Server is Running!", description="Plain-text body of the HTTP health response"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore", "populate_by_name": True}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}


class ArbitrationConfig(BaseSettings):
    """
    Turn arbitration policy.

    Installations differ in how they hand out control, so each axis is an
    explicit setting rather than a hard-coded choice.
    """

    policy: ActivationPolicy = Field(default=ActivationPolicy.EXPLICIT_GRANT, description="Activation policy")
    grant_order: GrantOrder = Field(default=GrantOrder.PROMOTE_TO_FRONT, description="Queue reordering on grant")
    advance: AdvanceMode = Field(default=AdvanceMode.ROTATE, description="Queue behaviour on NEXT_TURN")
    retain_identity_on_disconnect: bool = Field(
        default=True, description="Keep the active name and slot when the active controller disconnects"
    )
    reclaim_window_seconds: float = Field(default=30.0, description="How long an orphaned active slot is held")
    eviction_grace_seconds: float = Field(default=2.0, description="Delay before force-closing an evicted controller")

    @field_validator("policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        return _normalize_choice(v, ActivationPolicy)

    @field_validator("grant_order", mode="before")
    @classmethod
    def normalize_grant_order(cls, v: Any) -> Any:
        return _normalize_choice(v, GrantOrder)

    @field_validator("advance", mode="before")
    @classmethod
    def normalize_advance(cls, v: Any) -> Any:
        return _normalize_choice(v, AdvanceMode)

    @field_validator("reclaim_window_seconds", "eviction_grace_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Timer durations must be positive."""
        if v <= 0:
            raise ValueError("Timer durations must be greater than zero")
        return v

    model_config = {"env_prefix": "ARBITRATION_", "case_sensitive": False, "extra": "ignore"}


class RealtimeConfig(BaseSettings):
    """WebSocket transport limits and heartbeat."""

    max_message_size: int = Field(default=10 * 1024, description="Maximum inbound frame size in bytes")
    max_json_depth: int = Field(default=10, description="Maximum inbound JSON nesting depth")
    max_name_length: int = Field(default=32, description="Maximum controller display name length")
    ping_interval: float = Field(default=30.0, description="Protocol-level ping interval in seconds")
    ping_timeout: float = Field(default=30.0, description="Seconds to wait for a pong before terminating")

    @field_validator("max_message_size", "max_json_depth", "max_name_length")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        """Validate limits are positive."""
        if v < 1:
            raise ValueError("Transport limits must be at least 1")
        return v

    model_config = {"env_prefix": "REALTIME_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via get_config() rather than instantiating directly.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    arbitration: ArbitrationConfig = Field(default_factory=ArbitrationConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict[str, Any]:
        """Flatten into the dictionary shape consumed by setup_enhanced_logging."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "logging": self.logging.model_dump(),
            "arbitration": self.arbitration.model_dump(mode="json"),
        }
