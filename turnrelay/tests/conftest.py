"""
Test configuration and fixtures for the turn relay test suite.

WebSockets are AsyncMock objects specced on Starlette's WebSocket; every
frame the relay writes is recorded on the mock's send_json.
"""

import os
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocket
from starlette.websockets import WebSocketState

# Set before any config is loaded
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "DEBUG")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")

from ..config import AppConfig  # noqa: E402
from ..config.models import ArbitrationConfig, RealtimeConfig  # noqa: E402
from ..realtime.relay_hub import RelayHub  # noqa: E402
from .fixtures import frame  # noqa: E402


@pytest.fixture
def make_websocket() -> Callable[[], AsyncMock]:
    """Factory for open mock WebSockets."""

    def _make() -> AsyncMock:
        websocket = AsyncMock(spec=WebSocket)
        websocket.client_state = WebSocketState.CONNECTED
        websocket.application_state = WebSocketState.CONNECTED
        return websocket

    return _make


@pytest.fixture
def make_config() -> Callable[..., AppConfig]:
    """Build an AppConfig with explicit arbitration settings."""

    def _make(**arbitration: Any) -> AppConfig:
        arbitration.setdefault("eviction_grace_seconds", 0.05)
        arbitration.setdefault("reclaim_window_seconds", 0.05)
        return AppConfig(arbitration=ArbitrationConfig(**arbitration), realtime=RealtimeConfig())

    return _make


@pytest.fixture
def make_hub(make_config) -> Callable[..., RelayHub]:
    """Build a RelayHub with explicit arbitration settings."""

    def _make(**arbitration: Any) -> RelayHub:
        return RelayHub(make_config(**arbitration))

    return _make


@pytest.fixture
def connect_display(make_websocket):
    """Connect a WebSocket to a hub and register it as the display."""

    async def _connect(hub: RelayHub) -> tuple[str, AsyncMock]:
        websocket = make_websocket()
        connection = await hub.connect(websocket)
        await hub.handle_frame(connection.session_id, frame("REGISTER_DISPLAY"))
        return connection.session_id, websocket

    return _connect


@pytest.fixture
def connect_controller(make_websocket):
    """Connect a WebSocket to a hub and register it as a named controller."""

    async def _connect(hub: RelayHub, name: str | None) -> tuple[str, AsyncMock]:
        websocket = make_websocket()
        connection = await hub.connect(websocket)
        payload = {"name": name} if name is not None else None
        await hub.handle_frame(connection.session_id, frame("REGISTER_CONTROLLER", payload))
        return connection.session_id, websocket

    return _connect
