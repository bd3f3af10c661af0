"""
Common exchange data structures.

msgspec Structs shared by the adapters and the route layer. Field names are
snake_case in Python and camelCase on the wire.
"""

from typing import Any, Dict, Optional

import msgspec
from msgspec import Struct

from .enums import TradingMode


class Asset(Struct, frozen=True, rename="camel"):
    """
    Asset to operate on.

    Attributes:
        name: Canonical ticker (e.g. BTC)
        exchange: Exchange name (mexc, kraken)
        percentage: Share of the free balance to sell (0-100)
        api_url: Base URL override for this request
        amount: Absolute sell quantity; overrides percentage when set
    """
    name: str
    exchange: str
    percentage: float = 100.0
    api_url: Optional[str] = None
    amount: Optional[float] = None

    @property
    def ticker(self) -> str:
        return self.name.strip().upper()

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Asset name is required")
        if not 0 <= self.percentage <= 100:
            raise ValueError(f"percentage must be between 0 and 100, got {self.percentage}")
        if self.amount is not None and self.amount <= 0:
            raise ValueError(f"amount must be positive, got {self.amount}")


class SignedRequest(Struct, frozen=True):
    """Fully assembled authenticated request, consumed once by the transport."""
    url: str
    method: str
    headers: Dict[str, str]
    body: Optional[str] = None


class OrderResult(Struct, frozen=True, rename="camel"):
    """Outcome of a market sell order submission."""
    exchange: str
    asset: str
    pair: str
    quantity: float
    mode: TradingMode
    order_id: Optional[str] = None
    response: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)
