"""
Logging contracts: records, backends, routing and the logger interface.

Components log with a message plus keyword context; backends decide how a
record is rendered. Credential material never reaches a backend: context keys
that name a key, secret or signature are masked when the record is built.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

REDACTED = "***"

# Lowercased context keys whose values are masked
_SENSITIVE_KEYS = frozenset({
    'api_key', 'apikey', 'api_secret', 'secret', 'secret_key', 'signature',
    'api-sign', 'api-key', 'x-mexc-apikey', 'headers',
})


def redact(context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: REDACTED if key.lower() in _SENSITIVE_KEYS else value
        for key, value in context.items()
    }


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(IntEnum):
    """Record kind; the router picks backends by kind."""
    TEXT = 1
    METRIC = 2
    AUDIT = 3   # order submissions


@dataclass
class LogRecord:
    """One log event. ``exchange`` and ``asset`` are lifted out of the context."""
    timestamp: float
    level: LogLevel
    log_type: LogType
    logger_name: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    metric_name: Optional[str] = None
    metric_value: Optional[float] = None
    metric_tags: Optional[Dict[str, Any]] = None

    exchange: Optional[str] = None
    asset: Optional[str] = None

    @classmethod
    def create_text(cls, level: LogLevel, logger_name: str, message: str, **context) -> 'LogRecord':
        return cls(time.time(), level, LogType.TEXT, logger_name, message, redact(context))

    @classmethod
    def create_audit(cls, logger_name: str, event: str, **context) -> 'LogRecord':
        return cls(time.time(), LogLevel.INFO, LogType.AUDIT, logger_name, event, redact(context))

    @classmethod
    def create_metric(cls, logger_name: str, metric_name: str, value: float, **tags) -> 'LogRecord':
        return cls(time.time(), LogLevel.INFO, LogType.METRIC, logger_name, "",
                   metric_name=metric_name, metric_value=value, metric_tags=redact(tags))


class LogBackend(ABC):
    """
    Output target for records.

    ``write_sync`` is used when no event loop is running; ``write`` defaults
    to it. A backend that keeps failing disables itself.
    """

    MAX_ERRORS = 10

    def __init__(self, name: str):
        self.name = name
        self.enabled = True
        self.min_level = LogLevel.DEBUG
        self._error_count = 0

    @abstractmethod
    def should_handle(self, record: LogRecord) -> bool:
        pass

    @abstractmethod
    def write_sync(self, record: LogRecord) -> None:
        pass

    async def write(self, record: LogRecord) -> None:
        self.write_sync(record)

    async def flush(self) -> None:
        pass

    def _handle_error(self, error: Exception) -> None:
        self._error_count += 1
        if self._error_count >= self.MAX_ERRORS:
            self.enabled = False


class LogRouter(ABC):

    @abstractmethod
    def get_backends(self, record: LogRecord) -> List[LogBackend]:
        pass


class HFTLoggerInterface(ABC):
    """
    Logger injected into components as ``self.logger``.

        logger.info("Balance fetched", exchange="kraken", asset="BTC", balance=0.5)
        logger.metric("http_request_duration_ms", 41.2, method="POST")
        logger.audit("Market sell order submitted", exchange="mexc", order_id="123")
    """

    @abstractmethod
    def debug(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def error(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def critical(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def metric(self, name: str, value: float, **tags) -> None:
        pass

    @abstractmethod
    def audit(self, event: str, **context) -> None:
        pass

    @abstractmethod
    def set_context(self, **context) -> None:
        pass

    @abstractmethod
    async def flush(self) -> None:
        pass

    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        self.metric(f"{operation}_latency_ms", duration_ms, **tags)
