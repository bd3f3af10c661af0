from typing import List, Optional


class ExchangeAdapterError(Exception):
    """Base exception for all exchange adapter errors.

    Carries enough context (exchange, asset, operation) to diagnose a failure
    from the message alone.
    """
    def __init__(self, message: str, exchange: Optional[str] = None,
                 asset: Optional[str] = None, operation: Optional[str] = None) -> None:
        self.message = message
        self.exchange = exchange
        self.asset = asset
        self.operation = operation
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.exchange:
            context.append(f"exchange={self.exchange}")
        if self.asset:
            context.append(f"asset={self.asset}")
        if self.operation:
            context.append(f"operation={self.operation}")
        if not context:
            return self.message
        return f"{self.message} [{', '.join(context)}]"


# Local precondition errors (raised before any network call)
class MissingCredentials(ExchangeAdapterError):
    """API key or secret absent or empty."""
    pass


class InvalidCredential(ExchangeAdapterError):
    """Secret is malformed for the exchange signing algorithm."""
    pass


class SigningError(ExchangeAdapterError):
    """Canonical request data cannot be signed (e.g. nonce field missing)."""
    pass


# Transport errors
class NetworkFailure(ExchangeAdapterError):
    """Transport-level failure, wrapped with the attempted URL."""
    def __init__(self, message: str, url: Optional[str] = None, **context) -> None:
        self.url = url
        super().__init__(message, **context)

    def _format(self) -> str:
        base = super()._format()
        return f"{base} url={self.url}" if self.url else base


# Remote errors
class ExchangeRejected(ExchangeAdapterError):
    """Exchange returned a structured error. Original text is preserved verbatim."""
    def __init__(self, message: str, status_code: Optional[int] = None,
                 api_code: Optional[int] = None, errors: Optional[List[str]] = None,
                 **context) -> None:
        self.status_code = status_code
        self.api_code = api_code
        self.errors = list(errors) if errors else [message]
        super().__init__(message, **context)


# Response parsed but the expected data is absent
class PriceUnavailable(ExchangeAdapterError):
    """Ticker response does not contain the requested pair."""
    pass


class BalanceUnavailable(ExchangeAdapterError):
    """Account response does not contain a balance section, or nothing to sell."""
    pass
