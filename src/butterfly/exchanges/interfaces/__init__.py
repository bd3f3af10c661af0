from .protocols import CredentialProvider, ExchangeAdapterInterface

__all__ = ['CredentialProvider', 'ExchangeAdapterInterface']
