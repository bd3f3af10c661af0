"""
Pytest configuration and shared fixtures.

Provides a recording fake HTTP transport, a controllable millisecond clock and
quiet test logging.
"""

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import msgspec
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Configure test environment
os.environ['ENVIRONMENT'] = 'test'

from butterfly.infrastructure.logging.factory import LoggerFactory
from butterfly.infrastructure.logging.structs import (
    LoggingConfig, ConsoleBackendConfig, FileBackendConfig, RouterConfig
)
from butterfly.infrastructure.networking.http import HttpResponse, HttpTransport, TransportError
from butterfly.exchanges.auth import NonceRegistry
from butterfly.config.structs import ExchangeConfig, ExchangeCredentials
from butterfly.config.credentials import ConfigCredentialProvider


TEST_LOGGING_CONFIG = LoggingConfig(
    environment="test",
    console=ConsoleBackendConfig(enabled=True, min_level="WARNING"),
    file=FileBackendConfig(enabled=False),
    router=RouterConfig(default_backends=["console"])
)

# base64 of b"kraken-test-secret-0123456789"
KRAKEN_SECRET = "a3Jha2VuLXRlc3Qtc2VjcmV0LTAxMjM0NTY3ODk="
MEXC_SECRET = "mexc-test-secret"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class RecordedCall(msgspec.Struct):
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[str] = None


Reply = Union[HttpResponse, Exception, Callable[["RecordedCall"], HttpResponse]]


class RecordingTransport(HttpTransport):
    """
    In-memory transport that records every call.

    Replies are matched by method and a URL substring, first match wins.
    An unmatched call fails the test.
    """

    def __init__(self):
        self.calls: List[RecordedCall] = []
        self._routes: List[tuple] = []
        self.closed = False

    def reply(self, method: str, url_fragment: str, payload: Any = None,
              status: int = 200, text: Optional[str] = None) -> None:
        body = text if text is not None else msgspec.json.encode(payload).decode('utf-8')
        self._routes.append((method, url_fragment, HttpResponse(status=status, text=body)))

    def reply_with(self, method: str, url_fragment: str, reply: Reply) -> None:
        self._routes.append((method, url_fragment, reply))

    def calls_to(self, url_fragment: str) -> List[RecordedCall]:
        return [call for call in self.calls if url_fragment in call.url]

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return self._dispatch(RecordedCall(method="GET", url=url, headers=dict(headers or {})))

    async def post(self, url: str, body=None, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return self._dispatch(RecordedCall(method="POST", url=url, headers=dict(headers or {}), body=body))

    async def close(self) -> None:
        self.closed = True

    def _dispatch(self, call: RecordedCall) -> HttpResponse:
        self.calls.append(call)
        for method, fragment, reply in self._routes:
            if method == call.method and fragment in call.url:
                if isinstance(reply, Exception):
                    raise reply
                if callable(reply):
                    return reply(call)
                return reply
        raise AssertionError(f"Unexpected {call.method} {call.url}")


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up test-appropriate logging configuration."""
    LoggerFactory.clear_cache()
    LoggerFactory._default_config = TEST_LOGGING_CONFIG


@pytest.fixture(autouse=True)
def clean_nonce_registry():
    NonceRegistry.clear()
    yield
    NonceRegistry.clear()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def credentials():
    return ConfigCredentialProvider(credentials={
        'mexc': ExchangeCredentials(api_key='mexc-key', secret_key=MEXC_SECRET),
        'kraken': ExchangeCredentials(api_key='kraken-key', secret_key=KRAKEN_SECRET),
    })


@pytest.fixture
def no_credentials():
    return ConfigCredentialProvider(credentials={
        'mexc': ExchangeCredentials(api_key='', secret_key=''),
        'kraken': ExchangeCredentials(api_key='', secret_key=''),
    })


@pytest.fixture
def mexc_config():
    return ExchangeConfig(name='mexc', base_url='https://api.mexc.com')


@pytest.fixture
def kraken_config():
    return ExchangeConfig(name='kraken', base_url='https://api.kraken.com')


@pytest.fixture
def transport_error():
    return TransportError("ClientConnectorError: connection refused")
