"""MenuTrail API service entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.
"""

import logging

from menutrail.api import create_app
from menutrail.api.middleware.request_id import RequestIDLogFilter
from menutrail.core.settings import get_settings_safe

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s"

# This is what uvicorn references: menutrail.api.main:app
app = create_app(get_settings_safe())


def configure_logging(level: str) -> None:
    """Configure root logging with request id correlation."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIDLogFilter())


def run() -> None:
    """Run the API server using uvicorn.

    This function is called by the menutrail-api console script
    defined in pyproject.toml.
    """
    import uvicorn

    settings = app.state.settings
    if settings is not None:
        host, port, level = settings.api_host, settings.api_port, settings.log_level
    else:
        host, port, level = "127.0.0.1", 8000, "INFO"
        logger.warning("Could not load settings, using defaults")

    configure_logging(level)
    logger.info("Starting MenuTrail API on %s:%d", host, port)

    uvicorn.run(
        "menutrail.api.main:app",
        host=host,
        port=port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    run()
