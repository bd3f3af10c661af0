"""
Structured Logging

Usage:
    from butterfly.infrastructure.logging import get_logger

    logger = get_logger('api.server')
    logger.info("Server started", port=3000)

    # Exchange logger with context
    logger = get_exchange_logger('kraken', 'adapter')
    logger.debug("Nonce issued", nonce=1700000000000)

    # Metrics
    logger.metric("order_submitted", 1, exchange="mexc")
"""

from .interfaces import (
    LogLevel,
    LogType,
    LogRecord,
    LogBackend,
    LogRouter,
    HFTLoggerInterface,
    redact
)
from .hft_logger import HFTLogger, LoggingTimer
from .factory import (
    LoggerFactory,
    get_logger,
    get_exchange_logger,
    configure_logging
)
from .structs import (
    LoggingConfig,
    ConsoleBackendConfig,
    FileBackendConfig,
    RouterConfig,
    BackendConfig
)
from .router import SimpleRouter, create_router
from .backends.console import ConsoleBackend
from .backends.file import FileBackend

__all__ = [
    'LogLevel',
    'LogType',
    'LogRecord',
    'LogBackend',
    'LogRouter',
    'HFTLoggerInterface',
    'redact',
    'HFTLogger',
    'LoggingTimer',
    'LoggerFactory',
    'get_logger',
    'get_exchange_logger',
    'configure_logging',
    'LoggingConfig',
    'ConsoleBackendConfig',
    'FileBackendConfig',
    'RouterConfig',
    'BackendConfig',
    'SimpleRouter',
    'create_router',
    'ConsoleBackend',
    'FileBackend',
]
