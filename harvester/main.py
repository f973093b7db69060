"""Application entry point.

Configures logging and serves the HTTP API with aiohttp.
"""

import logging

from aiohttp import web

from .api.handlers import create_app
from .config import config

# Logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, config.server.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main application entry point.

    Builds the web application and runs it on the configured host and port.
    """
    app = create_app()
    logger.info(f"Starting listing harvester on {config.server.host}:{config.server.port}")
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)


if __name__ == "__main__":
    main()
