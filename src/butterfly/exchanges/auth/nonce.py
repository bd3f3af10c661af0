"""
Nonce generation for exchanges that require strictly increasing request ids.

Kraken rejects any private request whose nonce is not greater than the last
one it accepted for the API key, so every adapter using a key must draw from
the same counter. ``NonceRegistry`` hands out exactly one ``NonceGenerator``
per (exchange, api key) for the life of the process.
"""

import threading
from typing import Dict, Optional, Tuple

from .clock import Clock, now_millis


class NonceGenerator:
    """
    Strictly increasing millisecond nonces.

    ``next()`` returns ``max(now, last + 1)``: it follows the wall clock when
    calls are sparse and increments past it under bursts.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or now_millis
        self._lock = threading.Lock()
        self._last_issued = self._clock()

    @property
    def last_issued(self) -> int:
        return self._last_issued

    def next(self) -> int:
        # Read-compute-write must stay free of awaits
        with self._lock:
            candidate = max(self._clock(), self._last_issued + 1)
            self._last_issued = candidate
            return candidate

    def next_string(self) -> str:
        return str(self.next())


class NonceRegistry:
    """Process-wide map of (exchange, api key) to its single nonce generator."""

    _lock = threading.Lock()
    _generators: Dict[Tuple[str, str], NonceGenerator] = {}

    @classmethod
    def get(cls, exchange: str, api_key: str, clock: Optional[Clock] = None) -> NonceGenerator:
        key = (exchange.lower(), api_key)
        with cls._lock:
            generator = cls._generators.get(key)
            if generator is None:
                generator = NonceGenerator(clock)
                cls._generators[key] = generator
            return generator

    @classmethod
    def clear(cls) -> None:
        """Drop all generators. Tests only; live counters must never be reset."""
        with cls._lock:
            cls._generators.clear()


def get_nonce_generator(exchange: str, api_key: str) -> NonceGenerator:
    return NonceRegistry.get(exchange, api_key)
