from enum import Enum


class ExchangeEnum(Enum):
    """Supported exchanges; value is the lowercase name used in config and routes."""
    MEXC = "mexc"
    KRAKEN = "kraken"

    @classmethod
    def from_name(cls, name: str) -> "ExchangeEnum":
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            available = [e.value for e in cls]
            raise ValueError(f"Unknown exchange name: {name}, available: {available}.")


class TradingMode(Enum):
    """Order routing: TEST hits the validation endpoint, LIVE places real orders."""
    TEST = "test"
    LIVE = "live"


class OrderSide(Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(Enum):
    MARKET = "MARKET"
