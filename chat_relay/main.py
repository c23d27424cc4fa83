"""
Main module for the chat relay server.
"""

from __future__ import annotations

import logging

import uvicorn

from chat_relay.config import Configuration
from chat_relay.server import create_app


def main() -> None:
    """Main entry point - serve the relay with uvicorn."""
    config = Configuration()

    level = str(config.get_logging_config().get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    server_config = config.get_server_config()
    app = create_app(config)

    logging.info(
        f"Chat relay listening on {server_config['host']}:{server_config['port']}"
    )
    uvicorn.run(
        app,
        host=server_config["host"],
        port=server_config["port"],
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
