"""
Kraken Exchange Adapter

Private Kraken calls are form-encoded POSTs carrying a ``nonce`` that must
strictly increase across the whole API key, signed with ``API-Sign``
(base64 HMAC-SHA512 over path + SHA256(nonce + body)). The nonce comes from
the key's shared ``NonceGenerator``; nonce issuance and signing happen
without any await in between.

Endpoints:
- GET  /0/public/Time       server time (seconds)
- GET  /0/public/Ticker     last trade price, unauthenticated
- POST /0/private/Balance   balances by Kraken asset code
- POST /0/private/AddOrder  market order (``validate=true`` in test mode)
"""

from typing import Any, List, Optional, Tuple
from urllib.parse import urlencode

import msgspec

from butterfly.config.structs import ExchangeConfig
from butterfly.infrastructure.exceptions import (
    BalanceUnavailable, ExchangeRejected, PriceUnavailable
)
from butterfly.infrastructure.logging import HFTLoggerInterface, LoggingTimer, get_exchange_logger
from butterfly.infrastructure.networking.http import HTTPMethod, HttpResponse, HttpTransport
from butterfly.exchanges.auth import (
    Clock, KrakenSigner, KrakenSignPayload, NonceGenerator, NonceRegistry,
    TimeSyncCache, normalize_base_url
)
from butterfly.exchanges.interfaces import CredentialProvider
from butterfly.exchanges.structs import Asset, OrderResult, SignedRequest, TradingMode
from butterfly.exchanges.utils import (
    compute_sell_amount, decode_json, ensure_positive_quantity, format_quantity,
    require_credentials, send_request, send_signed
)
from .mappings import KRAKEN_ASSET_MAP, ticker_aliases, to_kraken_asset
from .structs import KrakenAddOrderResult, KrakenResponse, KrakenServerTime, KrakenTickerInfo


class KrakenAdapter:
    """Kraken spot adapter: pair mapping, prices, balances and market sells."""

    exchange = "kraken"

    _TIME_PATH = "/0/public/Time"
    _TICKER_PATH = "/0/public/Ticker"
    _BALANCE_PATH = "/0/private/Balance"
    _ADD_ORDER_PATH = "/0/private/AddOrder"

    SYMBOL_MAP = KRAKEN_ASSET_MAP

    def __init__(self, config: ExchangeConfig, transport: HttpTransport,
                 credentials: CredentialProvider,
                 trading_mode: TradingMode = TradingMode.TEST,
                 nonce_generator: Optional[NonceGenerator] = None,
                 signer: Optional[KrakenSigner] = None,
                 clock: Optional[Clock] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.config = config
        self.transport = transport
        self.credentials = credentials
        self.trading_mode = trading_mode
        self.signer = signer or KrakenSigner()
        self.logger = logger or get_exchange_logger(self.exchange, 'adapter')
        self._nonce_generator = nonce_generator
        self._clock = clock
        self._time_sync = TimeSyncCache(self._fetch_server_time, clock)

        self.logger.debug("Kraken adapter initialized",
                          exchange=self.exchange,
                          base_url=config.resolved_base_url,
                          trading_mode=trading_mode.value)

    def _base_url(self, asset: Asset) -> str:
        return normalize_base_url(asset.api_url or self.config.resolved_base_url)

    def _nonce_for(self, api_key: str) -> NonceGenerator:
        if self._nonce_generator is not None:
            return self._nonce_generator
        # looked up per call, the key may change between requests
        return NonceRegistry.get(self.exchange, api_key, self._clock)

    def create_pair(self, asset: Asset, target: str = "USDT") -> str:
        return f"{to_kraken_asset(asset.ticker)}{to_kraken_asset(target)}".upper()

    async def _fetch_server_time(self, base_url: str) -> int:
        url = f"{base_url}{self._TIME_PATH}"
        response = await send_request(self.transport, HTTPMethod.GET, url,
                                      self.exchange, None, 'server_time')
        result = self._parse(response, None, 'server_time')
        try:
            server_time = msgspec.convert(result, type=KrakenServerTime)
        except msgspec.ValidationError as e:
            raise ExchangeRejected(f"Unexpected server time response: {response.text[:200]}",
                                   status_code=response.status, exchange=self.exchange,
                                   operation='server_time') from e

        self.logger.debug("Kraken clock synchronized", base_url=base_url,
                          unixtime=server_time.unixtime)
        return server_time.unixtime * 1000

    async def get_server_timestamp(self, asset: Asset) -> int:
        syncer = await self._time_sync.get(self._base_url(asset))
        return syncer.synced_now()

    async def fetch_price(self, asset: Asset, target: str = "USDT") -> float:
        pair = self.create_pair(asset, target)
        url = f"{self._base_url(asset)}{self._TICKER_PATH}?{urlencode({'pair': pair})}"

        response = await send_request(self.transport, HTTPMethod.GET, url,
                                      self.exchange, asset.ticker, 'fetch_price')
        result = self._parse(response, asset.ticker, 'fetch_price')

        ticker_data = self._find_ticker(result, pair, asset.ticker)
        try:
            ticker = msgspec.convert(ticker_data, type=KrakenTickerInfo)
            return float(ticker.c[0])
        except (msgspec.ValidationError, ValueError, IndexError) as e:
            raise PriceUnavailable(f"No price data found for pair {pair}",
                                   exchange=self.exchange, asset=asset.ticker,
                                   operation='fetch_price') from e

    @staticmethod
    def _find_ticker(result: Any, pair: str, ticker: str) -> Any:
        if not isinstance(result, dict):
            return None
        if pair in result:
            return result[pair]
        # Kraken may answer with its own key format, e.g. XBTUSDT for XXBTUSDT
        aliases = ticker_aliases(ticker)
        for key, value in result.items():
            if any(alias in key.upper() for alias in aliases):
                return value
        return None

    async def fetch_balance(self, asset: Asset) -> float:
        api_key, secret = require_credentials(self.credentials, self.exchange,
                                              asset.ticker, 'fetch_balance')

        request = self._signed_post(self._base_url(asset), self._BALANCE_PATH, api_key, secret, [])
        response = await send_signed(self.transport, request, self.exchange,
                                     asset.ticker, 'fetch_balance')
        result = self._parse(response, asset.ticker, 'fetch_balance')

        if not isinstance(result, dict):
            raise BalanceUnavailable("Balance response has no result", exchange=self.exchange,
                                     asset=asset.ticker, operation='fetch_balance')

        for code in (to_kraken_asset(asset.ticker), asset.ticker):
            if code in result:
                try:
                    return float(result[code])
                except (TypeError, ValueError) as e:
                    raise BalanceUnavailable(f"Unparseable balance {result[code]!r} for {code}",
                                             exchange=self.exchange, asset=asset.ticker,
                                             operation='fetch_balance') from e

        # Kraken omits zero balances
        return 0.0

    async def get_sell_amount(self, asset: Asset) -> float:
        balance = None if asset.amount is not None else await self.fetch_balance(asset)
        return compute_sell_amount(asset, balance)

    async def create_market_sell_order(self, asset: Asset, target: str = "USDT") -> OrderResult:
        operation = 'create_market_sell_order'
        api_key, secret = require_credentials(self.credentials, self.exchange,
                                              asset.ticker, operation)
        pair = self.create_pair(asset, target)
        volume = await self.get_sell_amount(asset)
        ensure_positive_quantity(volume, self.exchange, asset.ticker, operation)

        fields = [
            ('ordertype', 'market'),
            ('type', 'sell'),
            ('volume', format_quantity(volume)),
            ('pair', pair),
        ]
        if self.trading_mode == TradingMode.TEST:
            fields.append(('validate', 'true'))

        request = self._signed_post(self._base_url(asset), self._ADD_ORDER_PATH, api_key, secret, fields)

        with LoggingTimer(self.logger, 'kraken_sell_order', exchange=self.exchange, asset=asset.ticker):
            response = await send_signed(self.transport, request, self.exchange,
                                         asset.ticker, operation)
        result = self._parse(response, asset.ticker, operation)

        order_id = None
        if isinstance(result, dict):
            try:
                order = msgspec.convert(result, type=KrakenAddOrderResult)
                if order.txid:
                    order_id = order.txid[0]
            except msgspec.ValidationError:
                self.logger.warning("Unrecognized Kraken order result", response=result)

        self.logger.audit("Market sell order submitted",
                          exchange=self.exchange, asset=asset.ticker, pair=pair,
                          quantity=volume, mode=self.trading_mode.value, order_id=order_id)

        return OrderResult(
            exchange=self.exchange,
            asset=asset.ticker,
            pair=pair,
            quantity=volume,
            mode=self.trading_mode,
            order_id=order_id,
            response=result,
        )

    def _signed_post(self, base_url: str, path: str, api_key: str, secret: str,
                     fields: List[Tuple[str, str]]) -> SignedRequest:
        """Issue a nonce, build the form body and sign it. Synchronous."""
        nonce = self._nonce_for(api_key).next()
        body = urlencode([('nonce', str(nonce))] + fields)
        signature = self.signer.sign(secret, KrakenSignPayload(url_path=path, post_data=body))

        return SignedRequest(
            url=f"{base_url}{path}",
            method=HTTPMethod.POST.value,
            headers={
                'API-Key': api_key,
                'API-Sign': signature,
                'Content-Type': 'application/x-www-form-urlencoded; charset=utf-8',
            },
            body=body,
        )

    def _parse(self, response: HttpResponse, asset: Optional[str], operation: str) -> Any:
        """Decode the envelope; a non-empty ``error`` list is a rejection."""
        data = decode_json(response, self.exchange, asset, operation)

        try:
            envelope = msgspec.convert(data, type=KrakenResponse)
        except msgspec.ValidationError as e:
            raise ExchangeRejected(f"Unexpected Kraken response: {response.text[:200]}",
                                   status_code=response.status, exchange=self.exchange,
                                   asset=asset, operation=operation) from e

        if envelope.error:
            self.logger.error("Kraken API error", exchange=self.exchange, asset=asset,
                              operation=operation, status=response.status, errors=envelope.error)
            raise ExchangeRejected(', '.join(envelope.error), status_code=response.status,
                                   errors=envelope.error, exchange=self.exchange,
                                   asset=asset, operation=operation)

        if not response.ok:
            raise ExchangeRejected(response.text[:500], status_code=response.status,
                                   exchange=self.exchange, asset=asset, operation=operation)
        return envelope.result
