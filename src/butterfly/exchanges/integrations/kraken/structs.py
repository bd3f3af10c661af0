from typing import Any, Dict, List, Optional

import msgspec


class KrakenResponse(msgspec.Struct, kw_only=True):
    """Kraken envelope: every endpoint returns ``error`` and ``result``."""
    error: List[str] = []
    result: Optional[Any] = None


class KrakenServerTime(msgspec.Struct, kw_only=True):
    unixtime: int
    rfc1123: Optional[str] = None


class KrakenTickerInfo(msgspec.Struct, kw_only=True):
    """Ticker entry; ``c`` is the last trade closed as [price, lot volume]."""
    c: List[str]


class KrakenAddOrderResult(msgspec.Struct, kw_only=True):
    """AddOrder result; ``txid`` is absent when the order was only validated."""
    descr: Optional[Dict[str, Any]] = None
    txid: Optional[List[str]] = None
