from typing import Optional


class ConfigurationError(Exception):
    """Configuration-specific exception for setup errors."""

    def __init__(self, message: str, setting_name: Optional[str] = None):
        self.setting_name = setting_name
        super().__init__(message)


class CredentialNotFound(LookupError):
    """No credential of the requested kind is configured for the exchange."""

    def __init__(self, exchange: str, kind: str):
        self.exchange = exchange
        self.kind = kind
        super().__init__(f"API {kind} not found for exchange: {exchange}")
