"""Test exchange clock synchronization."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from butterfly.exchanges.auth import ExchangeTimeSyncer, TimeSyncCache, normalize_base_url


class TestExchangeTimeSyncer:
    """Test offset arithmetic."""

    def test_zero_offset_before_init(self, fake_clock):
        syncer = ExchangeTimeSyncer(fake_clock)
        assert not syncer.is_initialized
        assert syncer.synced_now() == fake_clock.now

    def test_synced_now_matches_server_time(self, fake_clock):
        fake_clock.now = 1639999995000
        syncer = ExchangeTimeSyncer(fake_clock)
        syncer.init_from_server(1640000000000)

        assert syncer.offset_millis == 5000
        assert syncer.synced_now() == 1640000000000

        fake_clock.advance(1000)
        assert syncer.synced_now() == 1640000001000
        assert syncer.timestamp_string() == "1640000001000"

    def test_negative_offset(self, fake_clock):
        syncer = ExchangeTimeSyncer(fake_clock)
        syncer.init_from_server(fake_clock.now - 250)
        assert syncer.offset_millis == -250

    def test_resync_recomputes_offset(self, fake_clock):
        syncer = ExchangeTimeSyncer(fake_clock)
        syncer.init_from_server(fake_clock.now + 100)
        syncer.init_from_server(fake_clock.now + 900)
        assert syncer.offset_millis == 900

    def test_real_clock(self):
        syncer = ExchangeTimeSyncer()
        before = syncer.synced_now()
        syncer.init_from_server(before + 10_000)
        assert syncer.synced_now() - before >= 10_000


class TestNormalizeBaseUrl:

    @pytest.mark.parametrize("url", [
        "https://api.mexc.com",
        "https://api.mexc.com/",
        " HTTPS://API.MEXC.COM/ ",
    ])
    def test_equivalent_urls_share_key(self, url):
        assert normalize_base_url(url) == "https://api.mexc.com"

    def test_path_case_preserved(self):
        assert normalize_base_url("https://Proxy.local/Kraken/") == "https://proxy.local/Kraken"


class TestTimeSyncCache:
    """Test lazy, memoized server-time fetch per base URL."""

    async def test_fetches_once_per_url(self, fake_clock):
        fetched = []

        async def fetch(base_url):
            fetched.append(base_url)
            return fake_clock.now + 2000

        cache = TimeSyncCache(fetch, fake_clock)
        first = await cache.get("https://api.mexc.com/")
        second = await cache.get("https://api.mexc.com")

        assert first is second
        assert fetched == ["https://api.mexc.com"]
        assert first.synced_now() == fake_clock.now + 2000

    async def test_distinct_urls_get_distinct_syncers(self, fake_clock):
        async def fetch(base_url):
            return fake_clock.now

        cache = TimeSyncCache(fetch, fake_clock)
        a = await cache.get("https://api.mexc.com")
        b = await cache.get("https://api2.mexc.com")

        assert a is not b
        assert len(cache) == 2
        assert "https://api.mexc.com/" in cache

    async def test_concurrent_first_requests_share_one_fetch(self, fake_clock):
        calls = 0

        async def fetch(base_url):
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return fake_clock.now

        cache = TimeSyncCache(fetch, fake_clock)
        syncers = await asyncio.gather(*(cache.get("https://api.mexc.com") for _ in range(10)))

        assert calls == 1
        assert len({id(s) for s in syncers}) == 1

    async def test_failed_fetch_is_not_cached(self, fake_clock):
        fetch = AsyncMock(side_effect=[RuntimeError("boom"), fake_clock.now + 40])

        cache = TimeSyncCache(fetch, fake_clock)
        with pytest.raises(RuntimeError):
            await cache.get("https://api.mexc.com")
        assert "https://api.mexc.com" not in cache

        syncer = await cache.get("https://api.mexc.com")
        assert syncer.is_initialized
        assert syncer.offset_millis == 40
        assert fetch.await_count == 2
        fetch.assert_awaited_with("https://api.mexc.com")
