from typing import Dict, Optional

from butterfly.infrastructure.exceptions import CredentialNotFound
from .structs import AppConfig, ExchangeCredentials


class ConfigCredentialProvider:
    """
    Credential lookup backed by the loaded configuration.

    An empty key or secret counts as not configured.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 credentials: Optional[Dict[str, ExchangeCredentials]] = None):
        self._credentials: Dict[str, ExchangeCredentials] = {}
        if config is not None:
            for name, exchange_config in config.exchanges.items():
                self._credentials[name.lower()] = exchange_config.credentials
        if credentials:
            for name, creds in credentials.items():
                self._credentials[name.lower()] = creds

    def get_key(self, exchange: str) -> str:
        creds = self._credentials.get(exchange.lower())
        if creds is None or not creds.api_key:
            raise CredentialNotFound(exchange, 'key')
        return creds.api_key

    def get_secret(self, exchange: str) -> str:
        creds = self._credentials.get(exchange.lower())
        if creds is None or not creds.secret_key:
            raise CredentialNotFound(exchange, 'secret')
        return creds.secret_key

    def has_credentials(self, exchange: str) -> bool:
        creds = self._credentials.get(exchange.lower())
        return creds is not None and creds.has_private_api
