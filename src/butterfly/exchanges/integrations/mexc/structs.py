"""MEXC spot REST payloads. Field names follow the MEXC wire format."""

from typing import Optional, Union

import msgspec


class MexcServerTimeResponse(msgspec.Struct):
    serverTime: int


class MexcTickerPriceResponse(msgspec.Struct):
    symbol: str
    price: str


class MexcBalanceEntry(msgspec.Struct):
    """One asset of ``/api/v3/account``; amounts are decimal strings."""
    asset: str
    free: str
    locked: str = "0"


class MexcAccountResponse(msgspec.Struct, kw_only=True):
    canTrade: bool = True
    accountType: str = "SPOT"
    balances: Optional[list[MexcBalanceEntry]] = None


class MexcOrderResponse(msgspec.Struct, kw_only=True):
    """Live order acknowledgement; ``/api/v3/order/test`` answers ``{}``."""
    orderId: Optional[Union[str, int]] = None
    symbol: Optional[str] = None
    status: Optional[str] = None
    transactTime: Optional[int] = None


class MexcErrorResponse(msgspec.Struct):
    """Error body, e.g. ``{"code": 700002, "msg": "Signature for this request is not valid."}``."""
    code: int
    msg: str
