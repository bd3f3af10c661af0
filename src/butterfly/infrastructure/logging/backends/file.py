"""
File backend.

Lines are buffered while an event loop is running and appended with aiofiles
once ``buffer_size`` lines are queued or an ERROR record arrives. Without a
loop each record is appended synchronously. The file rotates by size:
``butterfly.log`` becomes ``butterfly.1``, ``butterfly.1`` becomes
``butterfly.2`` and so on up to ``backup_count``.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import aiofiles.os
import msgspec

from ..interfaces import LogBackend, LogLevel, LogRecord, LogType
from ..structs import FileBackendConfig

_json_encoder = msgspec.json.Encoder(enc_hook=str)


class FileBackend(LogBackend):

    def __init__(self, config: FileBackendConfig, name: str = "file"):
        super().__init__(name)
        self.config = config
        self.path = Path(config.path)
        self.enabled = config.enabled
        self.min_level = LogLevel[config.min_level.upper()]
        self._max_bytes = config.max_size_mb * 1024 * 1024
        self._pending: List[str] = []
        self._lock = asyncio.Lock()

        if self.enabled:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def should_handle(self, record: LogRecord) -> bool:
        if not self.enabled:
            return False
        # metrics and audit records bypass the level filter
        return record.log_type != LogType.TEXT or record.level >= self.min_level

    def write_sync(self, record: LogRecord) -> None:
        if self.path.exists() and self.path.stat().st_size >= self._max_bytes:
            self._rotate()
        with open(self.path, 'a', encoding='utf-8') as fh:
            fh.write(self.render(record) + '\n')

    async def write(self, record: LogRecord) -> None:
        async with self._lock:
            self._pending.append(self.render(record))
            if record.level >= LogLevel.ERROR or len(self._pending) >= self.config.buffer_size:
                await self._drain()

    async def flush(self) -> None:
        async with self._lock:
            await self._drain()

    async def _drain(self) -> None:
        if not self._pending:
            return
        if await aiofiles.os.path.exists(self.path):
            if await aiofiles.os.path.getsize(self.path) >= self._max_bytes:
                self._rotate()

        lines, self._pending = self._pending, []
        async with aiofiles.open(self.path, 'a', encoding='utf-8') as fh:
            await fh.write('\n'.join(lines) + '\n')

    def _rotate(self) -> None:
        keep = self.config.backup_count
        if keep == 0:
            self.path.unlink(missing_ok=True)
            return
        for index in range(keep - 1, 0, -1):
            source = self.path.with_suffix(f'.{index}')
            if source.exists():
                source.replace(self.path.with_suffix(f'.{index + 1}'))
        self.path.replace(self.path.with_suffix('.1'))

    def render(self, record: LogRecord) -> str:
        if self.config.format == 'json':
            return _json_encoder.encode(self._as_dict(record)).decode('utf-8')

        stamp = datetime.fromtimestamp(record.timestamp).isoformat()
        if record.log_type == LogType.METRIC:
            tags = ' '.join(f"{key}={value}" for key, value in (record.metric_tags or {}).items())
            return f"{stamp} METRIC {record.logger_name} {record.metric_name}={record.metric_value} {tags}".rstrip()

        fields = dict(record.context)
        if record.exchange:
            fields['exchange'] = record.exchange
        if record.asset:
            fields['asset'] = record.asset
        line = f"{stamp} {record.level.name} {record.logger_name} {record.message}"
        if fields:
            line += " | " + ', '.join(f"{key}={value}" for key, value in fields.items())
        return line

    @staticmethod
    def _as_dict(record: LogRecord) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'timestamp': record.timestamp,
            'level': record.level.name,
            'type': record.log_type.name,
            'logger': record.logger_name,
            'message': record.message,
        }
        if record.context:
            data['context'] = record.context
        if record.log_type == LogType.METRIC:
            data.update(metric=record.metric_name, value=record.metric_value, tags=record.metric_tags)
        if record.exchange:
            data['exchange'] = record.exchange
        if record.asset:
            data['asset'] = record.asset
        return data
