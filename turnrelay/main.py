"""
Turn relay server - main application entry point.

Run with `python -m turnrelay.main` or point uvicorn at `turnrelay.main:app`.
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Logging must be configured before any logger emits
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)

app = create_app(config)


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    run_config = get_config()
    logger.info("Starting turn relay", host=run_config.server.host, port=run_config.server.port)
    uvicorn.run(
        "turnrelay.main:app",
        host=run_config.server.host,
        port=run_config.server.port,
        reload=False,
        access_log=True,
        use_colors=False,
        # Protocol-level heartbeat: uvicorn pings every interval and drops peers that miss a pong
        ws_ping_interval=run_config.realtime.ping_interval,
        ws_ping_timeout=run_config.realtime.ping_timeout,
    )


if __name__ == "__main__":
    run()
