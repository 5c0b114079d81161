"""
Application lifecycle management for the turn relay.

The relay hub lives on app.state for the lifetime of the process. State is
not persisted: a restart starts with an empty queue.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..realtime.relay_hub import RelayHub
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("turnrelay.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the relay hub on startup and cancel its timers on shutdown."""
    config = app.state.config
    hub = RelayHub(config)
    app.state.relay_hub = hub
    logger.info(
        "Relay hub started",
        policy=config.arbitration.policy.value,
        grant_order=config.arbitration.grant_order.value,
        advance=config.arbitration.advance.value,
        retain_identity_on_disconnect=config.arbitration.retain_identity_on_disconnect,
    )
    try:
        yield
    finally:
        await hub.shutdown()
        app.state.relay_hub = None
        logger.info("Relay hub stopped")
