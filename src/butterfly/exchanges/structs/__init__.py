from .enums import ExchangeEnum, TradingMode, OrderSide, OrderType
from .common import Asset, SignedRequest, OrderResult

__all__ = [
    'ExchangeEnum',
    'TradingMode',
    'OrderSide',
    'OrderType',
    'Asset',
    'SignedRequest',
    'OrderResult',
]
