"""Process entry point: load configuration, set up logging and serve the app."""
from __future__ import annotations

import logging
import sys

import uvicorn

from .app import create_app
from .config import Config
from .logging_config import setup_logging

LOGGER = logging.getLogger("zombie_transformer.server")


def main() -> None:
    try:
        config = Config.from_env()
    except ValueError as exc:
        logging.basicConfig(level=logging.ERROR)
        LOGGER.error("Invalid configuration: %s", exc)
        sys.exit(1)

    setup_logging(config.log_level, config.log_file)
    app = create_app(config)

    LOGGER.info("🧟 Zombie Transformer running on http://localhost:%d", config.port)
    LOGGER.info("Using %s; make sure %s is set in your .env file", config.provider, config.credential_variable)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
