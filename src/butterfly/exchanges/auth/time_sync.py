"""
Exchange clock synchronization.

Timestamp-authenticated exchanges reject requests whose timestamp drifts too
far from their own clock. ``ExchangeTimeSyncer`` keeps the offset between the
local clock and one exchange server and produces adjusted timestamps.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from .clock import Clock, now_millis

ServerTimeFetcher = Callable[[str], Awaitable[int]]


def normalize_base_url(url: str) -> str:
    """Stable cache key for a base URL: trimmed, lowercase scheme/host, no trailing slash."""
    url = url.strip().rstrip('/')
    scheme, sep, rest = url.partition('://')
    if not sep:
        return url
    host, slash, path = rest.partition('/')
    return f"{scheme.lower()}://{host.lower()}{slash}{path}"


class ExchangeTimeSyncer:
    """
    Offset between local wall-clock and an exchange server clock.

    ``synced_now() == local_now() + offset``; before ``init_from_server`` the
    offset is zero. A single int is read and replaced whole, so no locking.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or now_millis
        self._offset_millis = 0
        self._initialized = False

    @property
    def offset_millis(self) -> int:
        return self._offset_millis

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def init_from_server(self, server_time_millis: int) -> None:
        """Recompute the offset from a freshly fetched server time."""
        self._offset_millis = int(server_time_millis) - self._clock()
        self._initialized = True

    def synced_now(self) -> int:
        return self._clock() + self._offset_millis

    def timestamp_string(self) -> str:
        return str(self.synced_now())


class TimeSyncCache:
    """
    One ``ExchangeTimeSyncer`` per base URL, initialized on first use.

    Concurrent first requests for the same URL share a single server-time
    fetch. A failed fetch caches nothing, so the next call retries.
    """

    def __init__(self, fetch_server_time: ServerTimeFetcher, clock: Optional[Clock] = None):
        self._fetch_server_time = fetch_server_time
        self._clock = clock
        self._syncers: Dict[str, ExchangeTimeSyncer] = {}
        self._lock = asyncio.Lock()

    async def get(self, base_url: str) -> ExchangeTimeSyncer:
        key = normalize_base_url(base_url)
        syncer = self._syncers.get(key)
        if syncer is not None:
            return syncer

        async with self._lock:
            syncer = self._syncers.get(key)
            if syncer is None:
                server_time = await self._fetch_server_time(key)
                syncer = ExchangeTimeSyncer(self._clock)
                syncer.init_from_server(server_time)
                self._syncers[key] = syncer
            return syncer

    def __contains__(self, base_url: str) -> bool:
        return normalize_base_url(base_url) in self._syncers

    def __len__(self) -> int:
        return len(self._syncers)
