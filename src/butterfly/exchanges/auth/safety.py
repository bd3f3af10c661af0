from typing import Any

from butterfly.exchanges.structs import TradingMode

LIVE_ENVIRONMENT = "production"


def resolve_safety_mode(allow_live: Any = None, environment: Any = None) -> TradingMode:
    """
    Decide whether orders go to the live or the test endpoint.

    LIVE requires ``allow_live`` to be exactly ``True`` and ``environment`` to
    be exactly ``"production"``. Anything else, including missing or truthy
    non-bool values, is TEST.
    """
    if allow_live is True and environment == LIVE_ENVIRONMENT:
        return TradingMode.LIVE
    return TradingMode.TEST
