"""
Request and response bodies for the REST API.

msgspec Structs, camelCase on the wire.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

import msgspec
from aiohttp import web
from msgspec import Struct

from butterfly.exchanges.structs import Asset, TradingMode


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HealthResponse(Struct, rename="camel"):
    status: str
    environment: str
    trading_mode: TradingMode
    exchanges: List[str]
    timestamp: str


class BalanceResponse(Struct, rename="camel"):
    asset: str
    exchange: str
    balance: float
    timestamp: str
    percentage: Optional[float] = None
    available: Optional[float] = None


class PriceResponse(Struct, rename="camel"):
    asset: str
    exchange: str
    price: float
    pair: str
    timestamp: str


class ServerTimeResponse(Struct, rename="camel"):
    exchange: str
    server_time: int
    timestamp: str


class SellOrderRequest(Struct, rename="camel"):
    asset: Asset
    to: str = "USDT"


class SellOrderResponse(Struct, rename="camel"):
    success: bool
    exchange: str
    asset: str
    pair: str
    quantity: float
    mode: TradingMode
    timestamp: str
    order_id: Optional[str] = None
    response: Any = None


class ErrorResponse(Struct, rename="camel"):
    error: str
    message: str
    status_code: int
    timestamp: str


def json_response(data: Struct, status: int = 200) -> web.Response:
    """Encode a Struct as a JSON response."""
    return web.Response(
        body=msgspec.json.encode(data),
        status=status,
        content_type="application/json",
    )


def error_response(status: int, error: str, message: str) -> web.Response:
    return json_response(
        ErrorResponse(error=error, message=message, status_code=status, timestamp=utc_timestamp()),
        status=status,
    )
