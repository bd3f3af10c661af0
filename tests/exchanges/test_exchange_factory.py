"""Test adapter wiring in the exchange service container."""

import pytest

from butterfly.config.structs import AppConfig, ExchangeConfig, TradingConfig
from butterfly.exchanges.auth import NonceRegistry
from butterfly.exchanges.exchange_factory import ExchangeServiceContainer
from butterfly.exchanges.integrations.kraken import KrakenAdapter
from butterfly.exchanges.integrations.mexc import MexcAdapter
from butterfly.exchanges.structs import Asset, ExchangeEnum, TradingMode


@pytest.fixture
def app_config():
    return AppConfig(
        environment="development",
        exchanges={
            'mexc': ExchangeConfig(name='mexc', base_url='https://mexc.test'),
            'kraken': ExchangeConfig(name='kraken', base_url='https://kraken.test'),
        },
    )


class TestExchangeServiceContainer:

    def test_adapters_created_lazily_and_cached(self, app_config, transport, credentials):
        container = ExchangeServiceContainer(app_config, transport=transport, credentials=credentials)

        mexc = container.get_adapter('mexc')
        assert isinstance(mexc, MexcAdapter)
        assert container.get_adapter('MEXC') is mexc
        assert container.get_adapter(ExchangeEnum.MEXC) is mexc
        assert isinstance(container.get_adapter('kraken'), KrakenAdapter)

    def test_adapter_receives_exchange_config(self, app_config, transport, credentials):
        container = ExchangeServiceContainer(app_config, transport=transport, credentials=credentials)

        assert container.get_adapter('kraken').config.resolved_base_url == 'https://kraken.test'

    def test_unconfigured_exchange_uses_default_url(self, transport, credentials):
        container = ExchangeServiceContainer(AppConfig(), transport=transport, credentials=credentials)

        assert container.get_adapter('mexc').config.resolved_base_url == 'https://api.mexc.com'

    def test_unknown_exchange(self, app_config, transport, credentials):
        container = ExchangeServiceContainer(app_config, transport=transport, credentials=credentials)

        with pytest.raises(ValueError, match="Unknown exchange name: binance"):
            container.get_adapter('binance')

    def test_supported_exchanges(self, app_config, transport, credentials):
        container = ExchangeServiceContainer(app_config, transport=transport, credentials=credentials)

        assert container.supported_exchanges == ['mexc', 'kraken']

    def test_disabled_exchange_not_served(self, transport, credentials):
        config = AppConfig(exchanges={'kraken': ExchangeConfig(name='kraken', enabled=False)})
        container = ExchangeServiceContainer(config, transport=transport, credentials=credentials)

        with pytest.raises(ValueError, match="Exchange is disabled: kraken"):
            container.get_adapter('kraken')
        assert container.supported_exchanges == ['mexc']
        assert isinstance(container.get_adapter('mexc'), MexcAdapter)

    @pytest.mark.parametrize("environment, allow_live, expected", [
        ("production", True, TradingMode.LIVE),
        ("production", False, TradingMode.TEST),
        ("development", True, TradingMode.TEST),
    ])
    def test_trading_mode_propagates(self, transport, credentials, environment, allow_live, expected):
        config = AppConfig(environment=environment,
                           trading=TradingConfig(allow_live_trading=allow_live))
        container = ExchangeServiceContainer(config, transport=transport, credentials=credentials)

        assert container.trading_mode == expected
        assert container.get_adapter('mexc').trading_mode == expected
        assert container.get_adapter('kraken').trading_mode == expected

    async def test_containers_share_nonce_counter(self, app_config, transport, credentials, fake_clock):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})
        first = ExchangeServiceContainer(app_config, transport=transport,
                                         credentials=credentials, clock=fake_clock)
        second = ExchangeServiceContainer(app_config, transport=transport,
                                          credentials=credentials, clock=fake_clock)
        asset = Asset(name="BTC", exchange="kraken")

        await first.get_adapter('kraken').fetch_balance(asset)
        await second.get_adapter('kraken').fetch_balance(asset)

        assert [call.body for call in transport.calls] == [
            f"nonce={fake_clock.now + 1}",
            f"nonce={fake_clock.now + 2}",
        ]
        assert NonceRegistry.get('kraken', 'kraken-key') is first.get_adapter('kraken')._nonce_generator

    def test_missing_kraken_key_defers_nonce(self, app_config, transport, no_credentials):
        container = ExchangeServiceContainer(app_config, transport=transport, credentials=no_credentials)

        adapter = container.get_adapter('kraken')

        assert adapter._nonce_generator is None

    async def test_close_closes_transport(self, app_config, transport, credentials):
        async with ExchangeServiceContainer(app_config, transport=transport, credentials=credentials) as container:
            container.get_adapter('mexc')

        assert transport.closed
