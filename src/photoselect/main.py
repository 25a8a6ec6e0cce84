"""
Server entry point for photoselect.

Run with ``photoselect`` (console script) or ``python -m photoselect.main``.
"""

import sys

import uvicorn

from .api import create_app
from .config import get_settings
from .errors import ConfigurationError
from .logging_config import configure_structured_logging, get_logger

configure_structured_logging()
logger = get_logger(__name__)


def run() -> None:
    """Build the app from the environment and serve it; exit 1 on bad configuration."""
    settings = get_settings()
    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.critical("startup_aborted", error=str(e))
        sys.exit(1)

    logger.info("server_starting", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
