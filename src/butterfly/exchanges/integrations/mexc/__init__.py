from .mexc_adapter import MexcAdapter

__all__ = ['MexcAdapter']
