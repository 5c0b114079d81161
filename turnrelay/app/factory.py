"""
FastAPI application factory for the turn relay server.

This module handles FastAPI app creation and router registration.
"""

from fastapi import FastAPI

from ..api.health import health_router
from ..api.real_time import realtime_router
from ..config import AppConfig, get_config
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Configuration to use (loaded from the environment when omitted)

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = config or get_config()

    app = FastAPI(
        title="Turn Relay",
        description="Realtime control-arbitration relay between one display and many controllers",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.health_message = config.server.health_message
    app.state.relay_hub = None

    app.include_router(health_router)
    app.include_router(realtime_router)

    logger.info("Application created", host=config.server.host, port=config.server.port)
    return app
