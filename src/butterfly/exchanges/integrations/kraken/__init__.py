from .kraken_adapter import KrakenAdapter
from .mappings import KRAKEN_ASSET_MAP, to_kraken_asset

__all__ = ['KrakenAdapter', 'KRAKEN_ASSET_MAP', 'to_kraken_asset']
