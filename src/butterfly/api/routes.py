"""
Exchange API Endpoints.

Routes (mounted under /api/v1):
- GET  /{exchange}/balance/{asset}?apiUrl=&percentage=
- GET  /{exchange}/price/{asset}?apiUrl=&to=
- GET  /{exchange}/time?apiUrl=
- POST /{exchange}/orders/sell      body: {"asset": {...}, "to": "USDT"}

Handlers only translate HTTP to adapter calls; adapter errors propagate to
the error middleware, which maps them to status codes.
"""

from typing import Optional

import msgspec
from aiohttp import web

from butterfly.exchanges.exchange_factory import ExchangeServiceContainer
from butterfly.exchanges.interfaces import ExchangeAdapterInterface
from butterfly.exchanges.structs import Asset
from butterfly.infrastructure.logging import get_logger

from .schemas import (
    BalanceResponse, PriceResponse, SellOrderRequest, SellOrderResponse,
    ServerTimeResponse, json_response, utc_timestamp
)


class RequestValidationError(Exception):
    """Malformed path, query or body."""
    pass


class UnknownExchangeError(LookupError):
    def __init__(self, exchange: str):
        self.exchange = exchange
        super().__init__(f"Unsupported exchange: {exchange}")


class ExchangeAPI:
    """HTTP handlers for balance, price, server time and market sell."""

    def __init__(self, container: ExchangeServiceContainer):
        self._container = container
        self.logger = get_logger('api.routes')

    def _adapter(self, request: web.Request) -> ExchangeAdapterInterface:
        name = request.match_info['exchange'].lower()
        try:
            return self._container.get_adapter(name)
        except ValueError:
            raise UnknownExchangeError(name)

    @staticmethod
    def _api_url(request: web.Request) -> Optional[str]:
        api_url = request.query.get('apiUrl')
        if api_url is None or api_url == '':
            return None
        if not api_url.startswith(('http://', 'https://')):
            raise RequestValidationError(f"apiUrl must be an http(s) URL, got {api_url}")
        return api_url

    @staticmethod
    def _percentage(request: web.Request) -> float:
        raw = request.query.get('percentage', '100')
        try:
            percentage = float(raw)
        except ValueError:
            raise RequestValidationError(f"percentage must be a number, got {raw}")
        if not 0 <= percentage <= 100:
            raise RequestValidationError(f"percentage must be between 0 and 100, got {percentage}")
        return percentage

    @staticmethod
    def _asset_name(request: web.Request) -> str:
        name = request.match_info['asset'].strip().upper()
        if not name.isalnum():
            raise RequestValidationError(f"Invalid asset symbol: {name}")
        return name

    async def get_balance(self, request: web.Request) -> web.Response:
        """GET /{exchange}/balance/{asset}"""
        adapter = self._adapter(request)
        percentage = self._percentage(request)
        asset = Asset(
            name=self._asset_name(request),
            exchange=adapter.exchange,
            percentage=percentage,
            api_url=self._api_url(request),
        )

        balance = await adapter.fetch_balance(asset)
        return json_response(BalanceResponse(
            asset=asset.ticker,
            exchange=adapter.exchange,
            balance=balance,
            percentage=percentage,
            available=balance * percentage / 100.0,
            timestamp=utc_timestamp(),
        ))

    async def get_price(self, request: web.Request) -> web.Response:
        """GET /{exchange}/price/{asset}"""
        adapter = self._adapter(request)
        target = request.query.get('to', 'USDT').strip().upper() or 'USDT'
        asset = Asset(
            name=self._asset_name(request),
            exchange=adapter.exchange,
            api_url=self._api_url(request),
        )

        price = await adapter.fetch_price(asset, target)
        return json_response(PriceResponse(
            asset=asset.ticker,
            exchange=adapter.exchange,
            price=price,
            pair=adapter.create_pair(asset, target),
            timestamp=utc_timestamp(),
        ))

    async def get_server_time(self, request: web.Request) -> web.Response:
        """GET /{exchange}/time"""
        adapter = self._adapter(request)
        asset = Asset(name='USDT', exchange=adapter.exchange, api_url=self._api_url(request))

        server_time = await adapter.get_server_timestamp(asset)
        return json_response(ServerTimeResponse(
            exchange=adapter.exchange,
            server_time=server_time,
            timestamp=utc_timestamp(),
        ))

    async def create_sell_order(self, request: web.Request) -> web.Response:
        """POST /{exchange}/orders/sell"""
        adapter = self._adapter(request)

        try:
            body = msgspec.json.decode(await request.read(), type=SellOrderRequest)
            body.asset.validate()
        except (msgspec.ValidationError, msgspec.DecodeError, ValueError) as e:
            raise RequestValidationError(f"Invalid order request: {e}")

        if body.asset.exchange.strip().lower() != adapter.exchange:
            raise RequestValidationError(
                f"Invalid exchange. This endpoint only supports {adapter.exchange.upper()} orders."
            )

        self.logger.info("Market sell order requested",
                         exchange=adapter.exchange, asset=body.asset.ticker,
                         percentage=body.asset.percentage, amount=body.asset.amount,
                         mode=adapter.trading_mode.value)

        result = await adapter.create_market_sell_order(body.asset, body.to.upper())
        return json_response(SellOrderResponse(
            success=True,
            exchange=result.exchange,
            asset=result.asset,
            pair=result.pair,
            quantity=result.quantity,
            mode=result.mode,
            order_id=result.order_id,
            response=result.response,
            timestamp=utc_timestamp(),
        ))


def create_exchange_router(container: ExchangeServiceContainer) -> web.Application:
    """Create the exchange API application."""
    api = ExchangeAPI(container)

    app = web.Application()
    app.router.add_get("/{exchange}/balance/{asset}", api.get_balance)
    app.router.add_get("/{exchange}/price/{asset}", api.get_price)
    app.router.add_get("/{exchange}/time", api.get_server_time)
    app.router.add_post("/{exchange}/orders/sell", api.create_sell_order)
    return app


def setup_exchange_routes(app: web.Application, container: ExchangeServiceContainer,
                          prefix: str = "/api/v1") -> None:
    app.add_subapp(prefix, create_exchange_router(container))
