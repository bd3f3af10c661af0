"""Test the Kraken exchange adapter against a recording transport."""

import asyncio
import base64
import hashlib
import hmac
from urllib.parse import parse_qs, parse_qsl

import pytest

from butterfly.exchanges.auth import NonceGenerator, NonceRegistry
from butterfly.exchanges.integrations.kraken import KrakenAdapter
from butterfly.exchanges.interfaces import ExchangeAdapterInterface
from butterfly.exchanges.structs import Asset, TradingMode
from butterfly.infrastructure.exceptions import (
    BalanceUnavailable, ExchangeRejected, InvalidCredential, MissingCredentials,
    NetworkFailure, PriceUnavailable
)
from butterfly.config.credentials import ConfigCredentialProvider
from butterfly.config.structs import ExchangeCredentials

from conftest import KRAKEN_SECRET


def kraken_asset(name="BTC", **kwargs):
    return Asset(name=name, exchange="kraken", **kwargs)


def expected_signature(path, body, secret=KRAKEN_SECRET):
    nonce = parse_qs(body)["nonce"][0]
    message = path.encode() + hashlib.sha256((nonce + body).encode()).digest()
    return base64.b64encode(hmac.new(base64.b64decode(secret), message, hashlib.sha512).digest()).decode()


def body_nonce(call):
    return int(parse_qs(call.body)["nonce"][0])


class TestKrakenAdapter:
    """Test Kraken pair mapping, pricing, balances and orders."""

    @pytest.fixture
    def adapter(self, kraken_config, transport, credentials, fake_clock):
        return KrakenAdapter(kraken_config, transport, credentials, clock=fake_clock)

    def test_satisfies_protocol(self, adapter):
        assert isinstance(adapter, ExchangeAdapterInterface)

    @pytest.mark.parametrize("name, target, pair", [
        ("BTC", "USDT", "XXBTUSDT"),
        ("btc", "usd", "XXBTZUSD"),
        ("ETH", "USDT", "XETHUSDT"),
        ("DOGE", "USDT", "DOGEUSDT"),
        ("SOL", "EUR", "SOLEUR"),
    ])
    def test_create_pair(self, adapter, name, target, pair):
        assert adapter.create_pair(kraken_asset(name), target) == pair

    async def test_fetch_price_exact_key(self, adapter, transport):
        transport.reply("GET", "/0/public/Ticker", {
            "error": [], "result": {"XXBTUSDT": {"c": ["43000.5", "0.01"]}}
        })

        assert await adapter.fetch_price(kraken_asset("BTC")) == 43000.5
        assert transport.calls[0].url == "https://api.kraken.com/0/public/Ticker?pair=XXBTUSDT"

    async def test_fetch_price_alternate_key(self, adapter, transport):
        transport.reply("GET", "/0/public/Ticker", {
            "error": [], "result": {"XBTUSDT": {"c": ["42999.9", "0.5"]}}
        })

        assert await adapter.fetch_price(kraken_asset("BTC")) == 42999.9

    async def test_fetch_price_no_matching_key(self, adapter, transport):
        transport.reply("GET", "/0/public/Ticker", {
            "error": [], "result": {"XETHZUSD": {"c": ["2500.0", "1"]}}
        })

        with pytest.raises(PriceUnavailable) as exc_info:
            await adapter.fetch_price(kraken_asset("BTC"))
        assert "XXBTUSDT" in str(exc_info.value)

    async def test_fetch_price_error_list(self, adapter, transport):
        transport.reply("GET", "/0/public/Ticker", {"error": ["EQuery:Unknown asset pair"]})

        with pytest.raises(ExchangeRejected) as exc_info:
            await adapter.fetch_price(kraken_asset("NOPE"))

        assert exc_info.value.message == "EQuery:Unknown asset pair"
        assert exc_info.value.errors == ["EQuery:Unknown asset pair"]

    async def test_fetch_balance_signed_form_post(self, adapter, transport, fake_clock):
        transport.reply("POST", "/0/private/Balance", {
            "error": [], "result": {"XXBT": "0.7500000000", "ZUSD": "12.50"}
        })

        balance = await adapter.fetch_balance(kraken_asset("BTC"))

        assert balance == 0.75
        call = transport.calls[0]
        assert call.url == "https://api.kraken.com/0/private/Balance"
        assert call.body == f"nonce={fake_clock.now + 1}"
        assert call.headers["API-Key"] == "kraken-key"
        assert call.headers["API-Sign"] == expected_signature("/0/private/Balance", call.body)
        assert call.headers["Content-Type"].startswith("application/x-www-form-urlencoded")

    async def test_fetch_balance_plain_ticker_fallback(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {"DOGE": "1500"}})

        assert await adapter.fetch_balance(kraken_asset("DOGE")) == 1500.0

    async def test_fetch_balance_absent_asset_is_zero(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {"ZUSD": "10"}})

        assert await adapter.fetch_balance(kraken_asset("ETH")) == 0.0

    async def test_fetch_balance_missing_result(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": []})

        with pytest.raises(BalanceUnavailable):
            await adapter.fetch_balance(kraken_asset("BTC"))

    async def test_fetch_balance_invalid_nonce_rejected(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": ["EAPI:Invalid nonce"]})

        with pytest.raises(ExchangeRejected) as exc_info:
            await adapter.fetch_balance(kraken_asset("BTC"))

        assert exc_info.value.message == "EAPI:Invalid nonce"
        assert exc_info.value.operation == "fetch_balance"

    async def test_missing_credentials_make_no_network_call(self, kraken_config, transport,
                                                            no_credentials, fake_clock):
        adapter = KrakenAdapter(kraken_config, transport, no_credentials, clock=fake_clock)

        with pytest.raises(MissingCredentials):
            await adapter.fetch_balance(kraken_asset("BTC"))
        with pytest.raises(MissingCredentials):
            await adapter.create_market_sell_order(kraken_asset("BTC", amount=1))

        assert transport.calls == []

    async def test_malformed_secret_fails_before_send(self, kraken_config, transport, fake_clock):
        credentials = ConfigCredentialProvider(credentials={
            'kraken': ExchangeCredentials(api_key='kraken-key', secret_key='not*base64'),
        })
        adapter = KrakenAdapter(kraken_config, transport, credentials, clock=fake_clock)

        with pytest.raises(InvalidCredential):
            await adapter.fetch_balance(kraken_asset("BTC"))
        assert transport.calls == []

    async def test_sequential_balance_nonces_increase(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})

        for _ in range(20):
            await adapter.fetch_balance(kraken_asset("BTC"))

        nonces = [body_nonce(call) for call in transport.calls]
        assert all(b > a for a, b in zip(nonces, nonces[1:]))

    async def test_concurrent_balance_nonces_unique(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})

        await asyncio.gather(*(adapter.fetch_balance(kraken_asset("BTC")) for _ in range(50)))

        nonces = [body_nonce(call) for call in transport.calls]
        assert len(set(nonces)) == 50
        assert nonces == sorted(nonces)

    async def test_adapters_share_registry_generator(self, kraken_config, transport, credentials, fake_clock):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})
        first = KrakenAdapter(kraken_config, transport, credentials, clock=fake_clock)
        second = KrakenAdapter(kraken_config, transport, credentials, clock=fake_clock)

        await first.fetch_balance(kraken_asset("BTC"))
        await second.fetch_balance(kraken_asset("BTC"))
        await first.fetch_balance(kraken_asset("BTC"))

        nonces = [body_nonce(call) for call in transport.calls]
        assert nonces == [fake_clock.now + 1, fake_clock.now + 2, fake_clock.now + 3]
        assert NonceRegistry.get("kraken", "kraken-key") is first._nonce_for("kraken-key")

    async def test_injected_generator_used(self, kraken_config, transport, credentials, fake_clock):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})
        generator = NonceGenerator(fake_clock)
        adapter = KrakenAdapter(kraken_config, transport, credentials,
                                nonce_generator=generator, clock=fake_clock)

        await adapter.fetch_balance(kraken_asset("BTC"))

        assert body_nonce(transport.calls[0]) == generator.last_issued

    async def test_rotated_key_uses_its_own_counter(self, kraken_config, transport, fake_clock):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})
        credentials = ConfigCredentialProvider(credentials={
            "kraken": ExchangeCredentials(api_key="key-a", secret_key=KRAKEN_SECRET),
        })
        adapter = KrakenAdapter(kraken_config, transport, credentials, clock=fake_clock)

        await adapter.fetch_balance(kraken_asset("BTC"))
        await adapter.fetch_balance(kraken_asset("BTC"))
        credentials._credentials["kraken"] = ExchangeCredentials(api_key="key-b", secret_key=KRAKEN_SECRET)
        await adapter.fetch_balance(kraken_asset("BTC"))

        assert [call.headers["API-Key"] for call in transport.calls] == ["key-a", "key-a", "key-b"]
        assert body_nonce(transport.calls[2]) == fake_clock.now + 1
        assert NonceRegistry.get("kraken", "key-a").last_issued == fake_clock.now + 2
        assert NonceRegistry.get("kraken", "key-b").last_issued == fake_clock.now + 1

    async def test_sell_order_test_mode_validates(self, adapter, transport, fake_clock):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {"XXBT": "0.4"}})
        transport.reply("POST", "/0/private/AddOrder", {
            "error": [], "result": {"descr": {"order": "sell 0.20000000 XBTUSDT @ market"}}
        })

        result = await adapter.create_market_sell_order(kraken_asset("BTC", percentage=50))

        assert result.mode == TradingMode.TEST
        assert result.pair == "XXBTUSDT"
        assert result.quantity == 0.2
        assert result.order_id is None

        call = transport.calls_to("/0/private/AddOrder")[0]
        fields = parse_qsl(call.body)
        assert [key for key, _ in fields] == ["nonce", "ordertype", "type", "volume", "pair", "validate"]
        assert dict(fields) == {
            "nonce": str(body_nonce(call)),
            "ordertype": "market",
            "type": "sell",
            "volume": "0.2",
            "pair": "XXBTUSDT",
            "validate": "true",
        }
        assert call.headers["API-Sign"] == expected_signature("/0/private/AddOrder", call.body)
        assert body_nonce(call) > body_nonce(transport.calls_to("/0/private/Balance")[0])

    async def test_sell_order_live_mode_has_no_validate(self, kraken_config, transport, credentials, fake_clock):
        transport.reply("POST", "/0/private/AddOrder", {
            "error": [], "result": {"descr": {"order": "sell 3 DOGEUSDT @ market"}, "txid": ["OABCDE-12345-FGHIJK"]}
        })
        adapter = KrakenAdapter(kraken_config, transport, credentials,
                                trading_mode=TradingMode.LIVE, clock=fake_clock)

        result = await adapter.create_market_sell_order(kraken_asset("DOGE", amount=3))

        assert result.mode == TradingMode.LIVE
        assert result.order_id == "OABCDE-12345-FGHIJK"
        assert "validate" not in parse_qs(transport.calls[0].body)
        assert parse_qs(transport.calls[0].body)["volume"] == ["3"]

    async def test_sell_order_nothing_to_sell(self, adapter, transport):
        transport.reply("POST", "/0/private/Balance", {"error": [], "result": {}})

        with pytest.raises(BalanceUnavailable):
            await adapter.create_market_sell_order(kraken_asset("BTC"))

        assert transport.calls_to("/0/private/AddOrder") == []

    async def test_sell_order_rejection_preserved(self, adapter, transport):
        transport.reply("POST", "/0/private/AddOrder", {
            "error": ["EOrder:Insufficient funds", "EGeneral:Invalid arguments:volume"]
        })

        with pytest.raises(ExchangeRejected) as exc_info:
            await adapter.create_market_sell_order(kraken_asset("BTC", amount=1))

        error = exc_info.value
        assert error.errors == ["EOrder:Insufficient funds", "EGeneral:Invalid arguments:volume"]
        assert error.message == "EOrder:Insufficient funds, EGeneral:Invalid arguments:volume"
        assert "exchange=kraken" in str(error) and "asset=BTC" in str(error)

    async def test_network_failure_wrapped(self, adapter, transport, transport_error):
        transport.reply_with("POST", "/0/private/Balance", transport_error)

        with pytest.raises(NetworkFailure) as exc_info:
            await adapter.fetch_balance(kraken_asset("ETH"))

        assert exc_info.value.url == "https://api.kraken.com/0/private/Balance"
        assert exc_info.value.asset == "ETH"
        assert exc_info.value.__cause__ is transport_error

    async def test_get_server_timestamp(self, adapter, transport, fake_clock):
        transport.reply("GET", "/0/public/Time", {
            "error": [], "result": {"unixtime": 1700000100, "rfc1123": "Tue, 14 Nov 23 22:15:00 +0000"}
        })

        first = await adapter.get_server_timestamp(kraken_asset("BTC"))
        fake_clock.advance(250)
        second = await adapter.get_server_timestamp(kraken_asset("BTC"))

        assert first == 1700000100000
        assert second == 1700000100250
        assert len(transport.calls_to("/0/public/Time")) == 1
