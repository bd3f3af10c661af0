from .server import create_app, run_server, error_middleware, status_for_error
from .routes import ExchangeAPI, create_exchange_router, setup_exchange_routes

__all__ = [
    'create_app',
    'run_server',
    'error_middleware',
    'status_for_error',
    'ExchangeAPI',
    'create_exchange_router',
    'setup_exchange_routes',
]
