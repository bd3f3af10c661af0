from .structs import (
    AppConfig,
    ExchangeConfig,
    ExchangeCredentials,
    NetworkConfig,
    ServerConfig,
    TradingConfig,
    DEFAULT_BASE_URLS,
)
from .config_manager import ConfigManager, load_config
from .credentials import ConfigCredentialProvider

__all__ = [
    'AppConfig',
    'ExchangeConfig',
    'ExchangeCredentials',
    'NetworkConfig',
    'ServerConfig',
    'TradingConfig',
    'DEFAULT_BASE_URLS',
    'ConfigManager',
    'load_config',
    'ConfigCredentialProvider',
]
