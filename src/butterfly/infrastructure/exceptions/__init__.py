from .exchange import (
    ExchangeAdapterError,
    MissingCredentials,
    InvalidCredential,
    SigningError,
    NetworkFailure,
    ExchangeRejected,
    PriceUnavailable,
    BalanceUnavailable,
)
from .system import ConfigurationError, CredentialNotFound

__all__ = [
    "ExchangeAdapterError",
    "MissingCredentials",
    "InvalidCredential",
    "SigningError",
    "NetworkFailure",
    "ExchangeRejected",
    "PriceUnavailable",
    "BalanceUnavailable",
    "ConfigurationError",
    "CredentialNotFound",
]
