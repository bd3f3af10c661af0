"""
Service entry point.

Loads config.yaml (or environment variables), configures logging and serves
the REST API until interrupted.

Usage:
    butterfly-services
    python -m butterfly
"""

import asyncio
import logging
import sys

from butterfly.api import run_server
from butterfly.config import load_config
from butterfly.exchanges.structs import TradingMode
from butterfly.infrastructure.exceptions import ConfigurationError
from butterfly.infrastructure.logging import configure_logging, get_logger

logger = logging.getLogger(__name__)


async def main() -> None:
    config = load_config()
    if config.logging is not None:
        configure_logging(config.logging)

    app_logger = get_logger('butterfly.main')
    if config.trading_mode == TradingMode.LIVE:
        app_logger.warning("Running in LIVE TRADING mode - real orders will be placed")
    else:
        app_logger.info("Running in TEST mode - orders are validated only")

    for name, exchange_config in config.exchanges.items():
        app_logger.info("Exchange configured", exchange=name, summary=exchange_config.get_summary())

    await run_server(config)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
