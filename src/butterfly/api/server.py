"""
HTTP server assembly.

``create_app`` wires the exchange container into an aiohttp application with
the error middleware and health endpoint; ``run_server`` serves it until
cancelled.
"""

import asyncio
from http import HTTPStatus
from typing import Optional

from aiohttp import web

from butterfly.config.structs import AppConfig
from butterfly.exchanges.exchange_factory import ExchangeServiceContainer
from butterfly.infrastructure.exceptions import (
    BalanceUnavailable, ExchangeAdapterError, ExchangeRejected, InvalidCredential,
    MissingCredentials, NetworkFailure, PriceUnavailable, SigningError
)
from butterfly.infrastructure.logging import HFTLogger, get_logger

from .routes import RequestValidationError, UnknownExchangeError, setup_exchange_routes
from .schemas import HealthResponse, error_response, json_response, utc_timestamp

CONTAINER_KEY = web.AppKey("container", ExchangeServiceContainer)

# Most specific first
_ERROR_STATUS = (
    (MissingCredentials, 401),
    (InvalidCredential, 401),
    (PriceUnavailable, 404),
    (BalanceUnavailable, 404),
    (ExchangeRejected, 502),
    (NetworkFailure, 503),
    (SigningError, 500),
)


def status_for_error(error: ExchangeAdapterError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Map exceptions to ``{error, message, statusCode, timestamp}`` bodies."""
    logger = get_logger('api.server')
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        name = HTTPStatus(e.status).phrase.replace(' ', '')
        return error_response(e.status, name, e.text or e.reason)
    except RequestValidationError as e:
        return error_response(400, 'ValidationError', str(e))
    except UnknownExchangeError as e:
        return error_response(404, 'NotFound', str(e))
    except ExchangeAdapterError as e:
        status = status_for_error(e)
        logger.error("Exchange operation failed", path=request.path, status=status,
                     error_type=type(e).__name__, error_message=str(e),
                     exchange=e.exchange, asset=e.asset)
        return error_response(status, type(e).__name__, str(e))
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error("Unhandled error", path=request.path,
                     error_type=type(e).__name__, error_message=str(e))
        return error_response(500, 'InternalServerError', str(e) or 'Unknown error occurred')


async def health(request: web.Request) -> web.Response:
    """GET /health"""
    container = request.app[CONTAINER_KEY]
    return json_response(HealthResponse(
        status='ok',
        environment=container.config.environment,
        trading_mode=container.trading_mode,
        exchanges=container.supported_exchanges,
        timestamp=utc_timestamp(),
    ))


async def _on_cleanup(app: web.Application) -> None:
    await app[CONTAINER_KEY].close()
    await HFTLogger.shutdown_all()


def create_app(config: AppConfig, container: Optional[ExchangeServiceContainer] = None) -> web.Application:
    """Create the application; the container is closed on cleanup."""
    container = container or ExchangeServiceContainer(config)

    app = web.Application(middlewares=[error_middleware])
    app[CONTAINER_KEY] = container
    app.router.add_get("/health", health)
    setup_exchange_routes(app, container)
    app.on_cleanup.append(_on_cleanup)
    return app


async def run_server(config: AppConfig) -> None:
    """Serve until cancelled."""
    logger = get_logger('api.server')
    app = create_app(config)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()

    logger.info("Server started", host=config.server.host, port=config.server.port,
                environment=config.environment, trading_mode=config.trading_mode.value)
    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Server stopping")
        await runner.cleanup()
