"""
Runtime-checkable protocols for the exchange layer.

Adapters satisfy ``ExchangeAdapterInterface`` structurally; there is no shared
base class. Signer, nonce generator and time synchronizer are composed into
each adapter by constructor injection.

Usage:
    if isinstance(adapter, ExchangeAdapterInterface):
        price = await adapter.fetch_price(asset)
"""

from typing import Protocol, runtime_checkable

from butterfly.exchanges.structs import Asset, OrderResult, TradingMode


@runtime_checkable
class CredentialProvider(Protocol):
    """Source of API credentials; raises ``CredentialNotFound`` when absent."""

    def get_key(self, exchange: str) -> str:
        ...

    def get_secret(self, exchange: str) -> str:
        ...


@runtime_checkable
class ExchangeAdapterInterface(Protocol):
    """
    Uniform operations every exchange adapter exposes.

    All network operations are async and raise ``ExchangeAdapterError``
    subclasses carrying exchange, asset and operation context.
    """

    exchange: str
    trading_mode: TradingMode

    def create_pair(self, asset: Asset, target: str = "USDT") -> str:
        """Exchange-native pair symbol. Pure."""
        ...

    async def fetch_price(self, asset: Asset, target: str = "USDT") -> float:
        ...

    async def fetch_balance(self, asset: Asset) -> float:
        """Free balance; 0.0 when the exchange omits the asset."""
        ...

    async def get_sell_amount(self, asset: Asset) -> float:
        ...

    async def create_market_sell_order(self, asset: Asset, target: str = "USDT") -> OrderResult:
        ...

    async def get_server_timestamp(self, asset: Asset) -> int:
        """Exchange server time in milliseconds, via the cached clock offset."""
        ...
