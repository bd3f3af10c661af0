"""
MEXC Exchange Adapter

MEXC authenticates with a query-embedded ``timestamp`` and ``signature`` (hex
HMAC-SHA256 over the literal query string) plus the ``X-MEXC-APIKEY`` header.
Timestamps come from a per-base-URL synchronizer so local clock drift does
not push requests outside ``recvWindow``.

Endpoints:
- GET  /api/v3/time            server time (ms)
- GET  /api/v3/ticker/price    last price, unauthenticated
- GET  /api/v3/account         balances, signed
- POST /api/v3/order/test      order validation (test mode)
- POST /api/v3/order           live order
"""

from typing import Any, Optional
from urllib.parse import urlencode

import msgspec

from butterfly.config.structs import ExchangeConfig
from butterfly.infrastructure.exceptions import (
    BalanceUnavailable, ExchangeRejected, PriceUnavailable
)
from butterfly.infrastructure.logging import HFTLoggerInterface, LoggingTimer, get_exchange_logger
from butterfly.infrastructure.networking.http import HTTPMethod, HttpResponse, HttpTransport
from butterfly.exchanges.auth import Clock, HmacSha256Signer, TimeSyncCache, normalize_base_url
from butterfly.exchanges.interfaces import CredentialProvider
from butterfly.exchanges.structs import (
    Asset, OrderResult, OrderSide, OrderType, SignedRequest, TradingMode
)
from butterfly.exchanges.utils import (
    compute_sell_amount, decode_json, ensure_positive_quantity, format_quantity,
    require_credentials, send_request, send_signed
)
from .structs import (
    MexcAccountResponse, MexcErrorResponse, MexcOrderResponse,
    MexcServerTimeResponse, MexcTickerPriceResponse
)


class MexcAdapter:
    """MEXC spot adapter: pair mapping, prices, balances and market sells."""

    exchange = "mexc"

    _RECV_WINDOW = 5000
    _TIME_PATH = "/api/v3/time"
    _TICKER_PATH = "/api/v3/ticker/price"
    _ACCOUNT_PATH = "/api/v3/account"
    _ORDER_PATH = "/api/v3/order"
    _TEST_ORDER_PATH = "/api/v3/order/test"

    # MEXC uses canonical tickers
    SYMBOL_MAP: dict = {}

    def __init__(self, config: ExchangeConfig, transport: HttpTransport,
                 credentials: CredentialProvider,
                 trading_mode: TradingMode = TradingMode.TEST,
                 signer: Optional[HmacSha256Signer] = None,
                 clock: Optional[Clock] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.config = config
        self.transport = transport
        self.credentials = credentials
        self.trading_mode = trading_mode
        self.signer = signer or HmacSha256Signer()
        self.logger = logger or get_exchange_logger(self.exchange, 'adapter')
        self._time_sync = TimeSyncCache(self._fetch_server_time, clock)

        self.logger.debug("MEXC adapter initialized",
                          exchange=self.exchange,
                          base_url=config.resolved_base_url,
                          trading_mode=trading_mode.value)

    def _base_url(self, asset: Asset) -> str:
        return normalize_base_url(asset.api_url or self.config.resolved_base_url)

    def create_pair(self, asset: Asset, target: str = "USDT") -> str:
        base = self.SYMBOL_MAP.get(asset.ticker, asset.ticker)
        quote = self.SYMBOL_MAP.get(target.upper(), target.upper())
        return f"{base}{quote}".upper()

    async def _fetch_server_time(self, base_url: str) -> int:
        url = f"{base_url}{self._TIME_PATH}"
        response = await send_request(self.transport, HTTPMethod.GET, url,
                                      self.exchange, None, 'server_time')
        data = self._parse(response, None, 'server_time')
        try:
            server_time = msgspec.convert(data, type=MexcServerTimeResponse).serverTime
        except msgspec.ValidationError as e:
            raise ExchangeRejected(f"Unexpected server time response: {response.text[:200]}",
                                   status_code=response.status, exchange=self.exchange,
                                   operation='server_time') from e

        self.logger.debug("MEXC clock synchronized", base_url=base_url, server_time=server_time)
        return server_time

    async def get_server_timestamp(self, asset: Asset) -> int:
        syncer = await self._time_sync.get(self._base_url(asset))
        return syncer.synced_now()

    async def fetch_price(self, asset: Asset, target: str = "USDT") -> float:
        pair = self.create_pair(asset, target)
        url = f"{self._base_url(asset)}{self._TICKER_PATH}?{urlencode({'symbol': pair})}"

        response = await send_request(self.transport, HTTPMethod.GET, url,
                                      self.exchange, asset.ticker, 'fetch_price')
        data = self._parse(response, asset.ticker, 'fetch_price')

        try:
            ticker = msgspec.convert(data, type=MexcTickerPriceResponse)
            price = float(ticker.price)
        except (msgspec.ValidationError, ValueError) as e:
            raise PriceUnavailable(f"No price data found for pair {pair}",
                                   exchange=self.exchange, asset=asset.ticker,
                                   operation='fetch_price') from e
        return price

    async def fetch_balance(self, asset: Asset) -> float:
        api_key, secret = require_credentials(self.credentials, self.exchange,
                                              asset.ticker, 'fetch_balance')
        base_url = self._base_url(asset)
        syncer = await self._time_sync.get(base_url)

        query = urlencode({
            'timestamp': syncer.timestamp_string(),
            'recvWindow': self._RECV_WINDOW,
        })
        request = self._signed_request(HTTPMethod.GET, base_url, self._ACCOUNT_PATH,
                                       query, api_key, secret)
        response = await send_signed(self.transport, request, self.exchange,
                                     asset.ticker, 'fetch_balance')
        data = self._parse(response, asset.ticker, 'fetch_balance')

        try:
            account = msgspec.convert(data, type=MexcAccountResponse)
        except msgspec.ValidationError as e:
            raise BalanceUnavailable(f"Unexpected account response: {e}", exchange=self.exchange,
                                     asset=asset.ticker, operation='fetch_balance') from e
        if account.balances is None:
            raise BalanceUnavailable("Account response has no balances", exchange=self.exchange,
                                     asset=asset.ticker, operation='fetch_balance')

        for entry in account.balances:
            if entry.asset.upper() == asset.ticker:
                return float(entry.free)

        # MEXC omits zero balances
        return 0.0

    async def get_sell_amount(self, asset: Asset) -> float:
        balance = None if asset.amount is not None else await self.fetch_balance(asset)
        return compute_sell_amount(asset, balance)

    async def create_market_sell_order(self, asset: Asset, target: str = "USDT") -> OrderResult:
        operation = 'create_market_sell_order'
        api_key, secret = require_credentials(self.credentials, self.exchange,
                                              asset.ticker, operation)
        pair = self.create_pair(asset, target)
        quantity = await self.get_sell_amount(asset)
        ensure_positive_quantity(quantity, self.exchange, asset.ticker, operation)

        base_url = self._base_url(asset)
        syncer = await self._time_sync.get(base_url)
        path = self._ORDER_PATH if self.trading_mode == TradingMode.LIVE else self._TEST_ORDER_PATH

        query = urlencode([
            ('symbol', pair),
            ('side', OrderSide.SELL.value),
            ('type', OrderType.MARKET.value),
            ('quantity', format_quantity(quantity)),
            ('timestamp', syncer.timestamp_string()),
            ('recvWindow', self._RECV_WINDOW),
        ])
        request = self._signed_request(HTTPMethod.POST, base_url, path, query, api_key, secret)

        with LoggingTimer(self.logger, 'mexc_sell_order', exchange=self.exchange, asset=asset.ticker):
            response = await send_signed(self.transport, request, self.exchange,
                                         asset.ticker, operation)
        data = self._parse(response, asset.ticker, operation)

        order_id = None
        if isinstance(data, dict) and data:
            try:
                order = msgspec.convert(data, type=MexcOrderResponse)
                order_id = str(order.orderId) if order.orderId is not None else None
            except msgspec.ValidationError:
                self.logger.warning("Unrecognized MEXC order response", response=data)

        self.logger.audit("Market sell order submitted",
                          exchange=self.exchange, asset=asset.ticker, pair=pair,
                          quantity=quantity, mode=self.trading_mode.value, order_id=order_id)

        return OrderResult(
            exchange=self.exchange,
            asset=asset.ticker,
            pair=pair,
            quantity=quantity,
            mode=self.trading_mode,
            order_id=order_id,
            response=data,
        )

    def _signed_request(self, method: HTTPMethod, base_url: str, path: str, query: str,
                        api_key: str, secret: str) -> SignedRequest:
        """Sign ``query`` exactly as sent; the signature is appended last."""
        signature = self.signer.sign(secret, query)
        return SignedRequest(
            url=f"{base_url}{path}?{query}&signature={signature}",
            method=method.value,
            headers={'X-MEXC-APIKEY': api_key},
        )

    def _parse(self, response: HttpResponse, asset: Optional[str], operation: str) -> Any:
        """Decode the body and raise ``ExchangeRejected`` for MEXC error payloads."""
        data = decode_json(response, self.exchange, asset, operation)

        if isinstance(data, dict) and 'code' in data and 'msg' in data:
            try:
                error = msgspec.convert(data, type=MexcErrorResponse)
            except msgspec.ValidationError:
                error = None
            if error is not None and (not response.ok or error.code not in (0, 200)):
                self.logger.error("MEXC API error", exchange=self.exchange, asset=asset,
                                  operation=operation, status=response.status,
                                  api_code=error.code, error_message=error.msg)
                raise ExchangeRejected(error.msg, status_code=response.status, api_code=error.code,
                                       exchange=self.exchange, asset=asset, operation=operation)

        if not response.ok:
            raise ExchangeRejected(response.text[:500], status_code=response.status,
                                   exchange=self.exchange, asset=asset, operation=operation)
        return data
