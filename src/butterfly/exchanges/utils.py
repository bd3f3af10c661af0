"""
Exchange helper functions shared by the adapters.

Plain functions, no classes: credential precondition, transport call with
error wrapping, quantity formatting and JSON decoding of exchange bodies.
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

import msgspec

from butterfly.infrastructure.exceptions import (
    BalanceUnavailable, ExchangeRejected, MissingCredentials, NetworkFailure
)
from butterfly.infrastructure.exceptions.system import CredentialNotFound
from butterfly.infrastructure.networking.http import (
    HTTPMethod, HttpResponse, HttpTransport, TransportError
)
from butterfly.exchanges.interfaces import CredentialProvider
from butterfly.exchanges.structs import Asset, SignedRequest


def require_credentials(provider: CredentialProvider, exchange: str,
                        asset: Optional[str], operation: str) -> Tuple[str, str]:
    """Return (api_key, secret) or raise ``MissingCredentials``. Never touches the network."""
    try:
        api_key = provider.get_key(exchange)
        secret = provider.get_secret(exchange)
    except CredentialNotFound as e:
        raise MissingCredentials(str(e), exchange=exchange, asset=asset, operation=operation) from e

    if not api_key or not secret:
        raise MissingCredentials(
            f"Missing API credentials (api_key={bool(api_key)}, api_secret={bool(secret)})",
            exchange=exchange, asset=asset, operation=operation
        )
    return api_key, secret


async def send_request(transport: HttpTransport, method: HTTPMethod, url: str,
                       exchange: str, asset: Optional[str], operation: str,
                       headers: Optional[Dict[str, str]] = None,
                       body: Union[str, None] = None) -> HttpResponse:
    """Issue one request, wrapping transport failures as ``NetworkFailure``."""
    try:
        if method == HTTPMethod.GET:
            return await transport.get(url, headers=headers)
        return await transport.post(url, body=body, headers=headers)
    except TransportError as e:
        raise NetworkFailure(str(e), url=url, exchange=exchange, asset=asset, operation=operation) from e


async def send_signed(transport: HttpTransport, request: SignedRequest,
                      exchange: str, asset: Optional[str], operation: str) -> HttpResponse:
    """Send a fully assembled signed request."""
    return await send_request(transport, HTTPMethod(request.method), request.url,
                              exchange, asset, operation,
                              headers=request.headers, body=request.body)


def decode_json(response: HttpResponse, exchange: str, asset: Optional[str], operation: str) -> Any:
    """Decode a JSON body; a non-JSON body is surfaced verbatim as a rejection."""
    try:
        return msgspec.json.decode(response.text)
    except msgspec.DecodeError as e:
        raise ExchangeRejected(
            response.text[:500] or f"Empty response (HTTP {response.status})",
            status_code=response.status,
            exchange=exchange, asset=asset, operation=operation
        ) from e


def compute_sell_amount(asset: Asset, balance: Optional[float]) -> float:
    """``asset.amount`` when set, else ``percentage`` of ``balance``."""
    if asset.amount is not None:
        return float(asset.amount)
    return (asset.percentage / 100.0) * float(balance or 0.0)


def ensure_positive_quantity(quantity: float, exchange: str, asset: str, operation: str) -> None:
    if quantity <= 0:
        raise BalanceUnavailable(
            f"Nothing to sell: computed quantity {quantity}",
            exchange=exchange, asset=asset, operation=operation
        )


def format_quantity(quantity: float) -> str:
    """Plain decimal string without exponent or trailing zeros (0.00001, 12.5)."""
    return format(Decimal(str(quantity)).normalize(), 'f')
