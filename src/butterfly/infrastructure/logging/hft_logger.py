"""
Logger implementation.

A log call builds one record and hands it to every backend the router picks.
With a running event loop each backend write is scheduled as a task so a log
call never waits on file I/O; ``flush`` waits for those tasks. Without a loop
backends are written in place.
"""

import asyncio
import time
import weakref
from typing import Any, Dict, List, Optional, Set

from .interfaces import HFTLoggerInterface, LogBackend, LogLevel, LogRecord, LogRouter

# Context keys promoted to record fields
_CORRELATION_KEYS = ('exchange', 'asset')


class HFTLogger(HFTLoggerInterface):
    """Named logger with persistent context, shared backends and a router."""

    _live: "weakref.WeakSet[HFTLogger]" = weakref.WeakSet()

    def __init__(self, name: str, backends: List[LogBackend], router: LogRouter,
                 default_context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.backends = backends
        self.router = router
        self.context: Dict[str, Any] = dict(default_context or {})
        self._tasks: Set[asyncio.Task] = set()
        HFTLogger._live.add(self)

    def _emit(self, record: LogRecord) -> None:
        targets = self.router.get_backends(record)
        if not targets:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            for backend in targets:
                try:
                    backend.write_sync(record)
                except Exception as e:
                    backend._handle_error(e)
            return

        for backend in targets:
            task = loop.create_task(self._write(backend, record))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _write(backend: LogBackend, record: LogRecord) -> None:
        try:
            await backend.write(record)
        except Exception as e:
            backend._handle_error(e)

    def _merged(self, context: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(self.context)
        merged.update(context)
        return merged

    def _text(self, level: LogLevel, msg: str, context: Dict[str, Any]) -> None:
        merged = self._merged(context)
        correlation = {key: merged.pop(key, None) for key in _CORRELATION_KEYS}
        record = LogRecord.create_text(level, self.name, msg, **merged)
        record.exchange, record.asset = correlation['exchange'], correlation['asset']
        self._emit(record)

    def debug(self, msg: str, **context) -> None:
        self._text(LogLevel.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._text(LogLevel.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._text(LogLevel.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._text(LogLevel.ERROR, msg, context)

    def critical(self, msg: str, **context) -> None:
        self._text(LogLevel.CRITICAL, msg, context)

    def metric(self, name: str, value: float, **tags) -> None:
        merged = self._merged(tags)
        record = LogRecord.create_metric(self.name, name, value, **merged)
        record.exchange, record.asset = merged.get('exchange'), merged.get('asset')
        self._emit(record)

    def audit(self, event: str, **context) -> None:
        merged = self._merged(context)
        correlation = {key: merged.pop(key, None) for key in _CORRELATION_KEYS}
        record = LogRecord.create_audit(self.name, event, **merged)
        record.exchange, record.asset = correlation['exchange'], correlation['asset']
        self._emit(record)

    def set_context(self, **context) -> None:
        self.context.update(context)

    async def flush(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        for backend in self.backends:
            try:
                await backend.flush()
            except Exception as e:
                backend._handle_error(e)

    @classmethod
    async def shutdown_all(cls) -> None:
        """Flush every logger still alive; called on server shutdown."""
        await asyncio.gather(*(logger.flush() for logger in list(cls._live)),
                             return_exceptions=True)


class LoggingTimer:
    """
    Time a block and report ``<operation>_latency_ms``.

        with LoggingTimer(logger, 'kraken_sell_order', exchange='kraken'):
            response = await send_signed(...)

    An exception leaving the block is also logged at ERROR and re-raised.
    """

    def __init__(self, logger: HFTLoggerInterface, operation: str, **tags):
        self.logger = logger
        self.operation = operation
        self.tags = tags
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def __enter__(self) -> "LoggingTimer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._stopped = time.perf_counter()
        self.logger.latency(self.operation, self.elapsed_ms, **self.tags)
        if exc_type is not None:
            self.logger.error(f"{self.operation} failed", error_type=exc_type.__name__, **self.tags)

    @property
    def elapsed_ms(self) -> float:
        if self._started is None:
            return 0.0
        return ((self._stopped or time.perf_counter()) - self._started) * 1000
