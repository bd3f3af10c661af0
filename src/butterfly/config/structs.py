from typing import Dict, Optional

from msgspec import Struct

from butterfly.exchanges.structs import ExchangeEnum, TradingMode
from butterfly.exchanges.auth.safety import resolve_safety_mode
from butterfly.infrastructure.logging.structs import LoggingConfig


DEFAULT_BASE_URLS: Dict[str, str] = {
    "mexc": "https://api.mexc.com",
    "kraken": "https://api.kraken.com",
}


class NetworkConfig(Struct, frozen=True):
    """
    Network configuration settings.

    Attributes:
        request_timeout: Total HTTP request timeout in seconds
        connect_timeout: Connection timeout in seconds
    """
    request_timeout: float = 10.0
    connect_timeout: float = 5.0

    def validate(self) -> None:
        """Validate network configuration."""
        if self.request_timeout <= 0 or self.request_timeout > 60:
            raise ValueError(f"request_timeout must be between 0 and 60 seconds, got {self.request_timeout}")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")


class ExchangeCredentials(Struct, frozen=True):
    """Exchange API credentials."""
    api_key: str = ""
    secret_key: str = ""

    @property
    def has_private_api(self) -> bool:
        """Check if both credentials are provided."""
        return bool(self.api_key) and bool(self.secret_key)

    def get_preview(self) -> str:
        """Get safe preview of credentials for logging."""
        if not self.api_key:
            return "Not configured"
        if len(self.api_key) > 8:
            return f"{self.api_key[:4]}...{self.api_key[-4:]}"
        return "***"

    def validate(self) -> None:
        """Validate credentials (empty pair allowed for public-only mode)."""
        if not self.api_key and not self.secret_key:
            return

        if bool(self.api_key) != bool(self.secret_key):
            raise ValueError("Both api_key and secret_key must be provided together or both empty")


class ExchangeConfig(Struct, frozen=True):
    """
    Exchange configuration.

    Attributes:
        name: Exchange name ('mexc', 'kraken')
        credentials: API credentials
        base_url: REST API base URL, used when a request carries no override
        enabled: Whether routes for this exchange are served
    """
    name: str
    credentials: ExchangeCredentials = ExchangeCredentials()
    base_url: str = ""
    enabled: bool = True

    @property
    def exchange_enum(self) -> ExchangeEnum:
        return ExchangeEnum.from_name(self.name)

    @property
    def resolved_base_url(self) -> str:
        return (self.base_url or DEFAULT_BASE_URLS.get(self.name.lower(), "")).rstrip("/")

    def has_credentials(self) -> bool:
        return self.credentials.has_private_api

    def validate(self) -> None:
        ExchangeEnum.from_name(self.name)
        self.credentials.validate()
        if self.base_url and not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url}")

    def get_summary(self) -> str:
        return (f"{self.name}: base_url={self.resolved_base_url}, "
                f"credentials={self.credentials.get_preview()}, enabled={self.enabled}")


class TradingConfig(Struct, frozen=True):
    """
    Trading safety settings.

    Attributes:
        allow_live_trading: Explicit opt-in for the live order endpoint
    """
    allow_live_trading: bool = False


class ServerConfig(Struct, frozen=True):
    host: str = "0.0.0.0"
    port: int = 3000

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")


class AppConfig(Struct, frozen=True):
    """Complete application configuration."""
    environment: str = "development"
    trading: TradingConfig = TradingConfig()
    server: ServerConfig = ServerConfig()
    network: NetworkConfig = NetworkConfig()
    exchanges: Dict[str, ExchangeConfig] = {}
    logging: Optional[LoggingConfig] = None

    @property
    def trading_mode(self) -> TradingMode:
        return resolve_safety_mode(self.trading.allow_live_trading, self.environment)

    def get_exchange_config(self, exchange: str) -> ExchangeConfig:
        """Configured exchange, or a public-only default for a known exchange."""
        name = ExchangeEnum.from_name(exchange).value
        config = self.exchanges.get(name)
        if config is None:
            config = ExchangeConfig(name=name)
        return config
