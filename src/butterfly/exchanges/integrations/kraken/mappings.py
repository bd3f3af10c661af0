"""Kraken asset code mappings. Only tickers that differ on Kraken are listed."""

from typing import List

KRAKEN_ASSET_MAP = {
    'BTC': 'XXBT',
    'ETH': 'XETH',
    'USD': 'ZUSD',
}

# Kraken's ticker result keys use XBT for bitcoin
_TICKER_ALIASES = {
    'BTC': 'XBT',
}


def to_kraken_asset(ticker: str) -> str:
    ticker = ticker.upper()
    return KRAKEN_ASSET_MAP.get(ticker, ticker)


def ticker_aliases(ticker: str) -> List[str]:
    """Substrings that identify ``ticker`` inside a Kraken result key."""
    ticker = ticker.upper()
    aliases = [ticker]
    alias = _TICKER_ALIASES.get(ticker)
    if alias:
        aliases.append(alias)
    return aliases
