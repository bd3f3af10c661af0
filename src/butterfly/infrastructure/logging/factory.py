"""
Logging Factory

Creates and caches logger instances from struct-based configuration.
Components receive the result as ``self.logger``.
"""

import os
from typing import Dict, Optional

from .interfaces import HFTLoggerInterface, LogBackend
from .hft_logger import HFTLogger
from .router import create_router
from .backends.console import ConsoleBackend
from .backends.file import FileBackend
from .structs import LoggingConfig, RouterConfig


class LoggerFactory:
    """Logging factory - trust config, fail fast."""

    _cached_loggers: Dict[str, HFTLoggerInterface] = {}
    _default_config: Optional[LoggingConfig] = None
    _backends: Optional[Dict[str, LogBackend]] = None

    @classmethod
    def create_logger(cls, name: str, config: Optional[LoggingConfig] = None) -> HFTLoggerInterface:
        if name in cls._cached_loggers:
            return cls._cached_loggers[name]

        config = config or cls.get_default_config()
        backends = cls._get_backends(config)
        router = create_router(backends, config.router or RouterConfig())

        logger = HFTLogger(
            name=name,
            backends=list(backends.values()),
            router=router,
            default_context=config.default_context
        )

        cls._cached_loggers[name] = logger
        return logger

    @classmethod
    def _get_backends(cls, config: LoggingConfig) -> Dict[str, LogBackend]:
        # Backends are shared by all loggers so a file is opened by one writer
        if cls._backends is None:
            backends: Dict[str, LogBackend] = {}
            if config.console and config.console.enabled:
                backends['console'] = ConsoleBackend(config.console, 'console')
            if config.file and config.file.enabled:
                backends['file'] = FileBackend(config.file, 'file')
            cls._backends = backends
        return cls._backends

    @classmethod
    def get_default_config(cls) -> LoggingConfig:
        if cls._default_config is None:
            environment = os.getenv('ENVIRONMENT', 'dev')
            if environment == 'production':
                cls._default_config = LoggingConfig.default_production()
            else:
                cls._default_config = LoggingConfig.default_development()
        return cls._default_config

    @classmethod
    def configure(cls, config: LoggingConfig) -> None:
        """Replace the default configuration; already created loggers are rebuilt on next use."""
        config.validate()
        cls.clear_cache()
        cls._default_config = config

    @classmethod
    def clear_cache(cls) -> None:
        cls._cached_loggers.clear()
        cls._backends = None
        cls._default_config = None


def get_logger(name: str) -> HFTLoggerInterface:
    """Get logger instance."""
    return LoggerFactory.create_logger(name)


def get_exchange_logger(exchange: str, component: Optional[str] = None) -> HFTLoggerInterface:
    """Get exchange logger with optional component, e.g. ``kraken.adapter``."""
    name = f"{exchange.lower()}.{component}" if component else exchange.lower()
    return get_logger(name)


def configure_logging(config: LoggingConfig) -> None:
    LoggerFactory.configure(config)
