import time
from typing import Callable

Clock = Callable[[], int]


def now_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
