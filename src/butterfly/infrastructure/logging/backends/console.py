"""
Console backend.

Writes through the standard ``logging`` module so records share handlers
with aiohttp and any other library logging in the process.
"""

import logging
from typing import Any

from ..interfaces import LogBackend, LogLevel, LogRecord, LogType
from ..structs import ConsoleBackendConfig

_CONTEXT_VALUE_LIMIT = 200


def _short(value: Any, limit: int) -> str:
    text = str(value)
    return text if len(text) <= limit else text[:limit] + "..."


class ConsoleBackend(LogBackend):
    """Text and audit records at or above ``min_level``."""

    def __init__(self, config: ConsoleBackendConfig, name: str = "console"):
        super().__init__(name)
        self.config = config
        self.enabled = config.enabled
        self.min_level = LogLevel[config.min_level.upper()]
        if self.enabled:
            self._install_root_handler()

    def should_handle(self, record: LogRecord) -> bool:
        return (self.enabled
                and record.level >= self.min_level
                and record.log_type != LogType.METRIC)

    def write_sync(self, record: LogRecord) -> None:
        # LogLevel values equal the stdlib logging levels
        logging.getLogger(record.logger_name).log(int(record.level), self.format(record))

    def _install_root_handler(self) -> None:
        root = logging.getLogger()
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)-8s %(name)-24s %(message)s'))
            root.addHandler(handler)
        if root.level == logging.NOTSET or root.level > self.min_level:
            root.setLevel(int(self.min_level))

    def format(self, record: LogRecord) -> str:
        text = _short(record.message, self.config.max_message_length)

        pairs = []
        if self.config.include_context:
            pairs.extend(f"{key}={_short(value, _CONTEXT_VALUE_LIMIT)}"
                         for key, value in record.context.items())
        if record.exchange:
            pairs.append(f"exchange={record.exchange}")
        if record.asset:
            pairs.append(f"asset={record.asset}")
        if pairs:
            text = f"{text} | {', '.join(pairs)}"

        if record.log_type == LogType.AUDIT:
            text = f"[AUDIT] {text}"
        return text
