"""
Exchange adapter wiring.

``ExchangeServiceContainer`` owns the HTTP transport and builds one adapter
per exchange on first use. Nonce generators come from the process-wide
``NonceRegistry`` so every adapter for the same API key shares one counter.
"""

from typing import Dict, Optional, Union

from butterfly.config.structs import AppConfig
from butterfly.config.credentials import ConfigCredentialProvider
from butterfly.infrastructure.logging import HFTLoggerInterface, get_logger
from butterfly.infrastructure.networking.http import AiohttpTransport, HttpTransport
from butterfly.exchanges.auth import Clock, NonceRegistry
from butterfly.exchanges.interfaces import CredentialProvider, ExchangeAdapterInterface
from butterfly.exchanges.integrations.mexc import MexcAdapter
from butterfly.exchanges.integrations.kraken import KrakenAdapter
from butterfly.exchanges.structs import ExchangeEnum, TradingMode
from butterfly.infrastructure.exceptions.system import CredentialNotFound

EXCHANGE_ADAPTER_MAP = {
    ExchangeEnum.MEXC: MexcAdapter,
    ExchangeEnum.KRAKEN: KrakenAdapter,
}

# Exchanges whose private API is nonce-authenticated
NONCE_EXCHANGES = {ExchangeEnum.KRAKEN}


class ExchangeServiceContainer:
    """
    Lazily created, cached exchange adapters sharing one transport.

    Args:
        config: Application configuration
        transport: HTTP transport; an ``AiohttpTransport`` is created when omitted
        credentials: Credential provider; defaults to the configured credentials
        clock: Millisecond clock for nonces and time sync (tests)
    """

    def __init__(self, config: AppConfig, transport: Optional[HttpTransport] = None,
                 credentials: Optional[CredentialProvider] = None,
                 clock: Optional[Clock] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.config = config
        self.logger = logger or get_logger('exchanges.container')
        self.transport = transport or AiohttpTransport(config.network)
        self.credentials = credentials or ConfigCredentialProvider(config)
        self.clock = clock
        self._adapters: Dict[ExchangeEnum, ExchangeAdapterInterface] = {}

        self.logger.info("Exchange container initialized",
                         environment=config.environment,
                         trading_mode=self.trading_mode.value)

    @property
    def trading_mode(self) -> TradingMode:
        return self.config.trading_mode

    @property
    def supported_exchanges(self):
        """Exchanges with an adapter that are not disabled in the configuration."""
        return [exchange.value for exchange in EXCHANGE_ADAPTER_MAP
                if self.config.get_exchange_config(exchange.value).enabled]

    def get_adapter(self, exchange: Union[str, ExchangeEnum]) -> ExchangeAdapterInterface:
        """Adapter for ``exchange``; raises ``ValueError`` for unknown or disabled exchanges."""
        exchange_enum = exchange if isinstance(exchange, ExchangeEnum) else ExchangeEnum.from_name(exchange)
        if not self.config.get_exchange_config(exchange_enum.value).enabled:
            raise ValueError(f"Exchange is disabled: {exchange_enum.value}")

        adapter = self._adapters.get(exchange_enum)
        if adapter is None:
            adapter = self._create_adapter(exchange_enum)
            self._adapters[exchange_enum] = adapter
        return adapter

    def _create_adapter(self, exchange: ExchangeEnum) -> ExchangeAdapterInterface:
        adapter_class = EXCHANGE_ADAPTER_MAP[exchange]
        kwargs = dict(
            config=self.config.get_exchange_config(exchange.value),
            transport=self.transport,
            credentials=self.credentials,
            trading_mode=self.trading_mode,
            clock=self.clock,
        )

        if exchange in NONCE_EXCHANGES:
            try:
                api_key = self.credentials.get_key(exchange.value)
            except CredentialNotFound:
                # Adapter raises MissingCredentials on first private call
                api_key = None
            if api_key:
                kwargs['nonce_generator'] = NonceRegistry.get(exchange.value, api_key, self.clock)

        adapter = adapter_class(**kwargs)
        self.logger.debug("Exchange adapter created", exchange=exchange.value,
                          adapter=adapter_class.__name__)
        return adapter

    async def close(self) -> None:
        await self.transport.close()
        self._adapters.clear()
        self.logger.info("Exchange container closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
