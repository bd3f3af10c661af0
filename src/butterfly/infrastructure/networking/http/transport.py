"""
HTTP Transport

Thin async transport used by the exchange adapters. It owns the aiohttp
session, applies the configured timeouts and returns the raw status and body;
interpreting the body (and any exchange error payload) is the adapter's job.

Any aiohttp or timeout failure surfaces as ``TransportError`` so adapters can
wrap it with exchange context without knowing the transport library.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

import aiohttp

from butterfly.config.structs import NetworkConfig
from butterfly.infrastructure.logging import HFTLoggerInterface, get_logger

from .structs import HTTPMethod, HttpResponse


class TransportError(Exception):
    """Request could not be completed (connection, DNS, TLS or timeout)."""

    def __init__(self, message: str, method: Optional[str] = None, url: Optional[str] = None):
        self.method = method
        self.url = url
        super().__init__(message)


class HttpTransport(ABC):
    """Minimal HTTP capability consumed by the exchange adapters."""

    @abstractmethod
    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        pass

    @abstractmethod
    async def post(self, url: str, body: Union[str, bytes, None] = None,
                   headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        pass

    async def close(self) -> None:
        pass


class AiohttpTransport(HttpTransport):
    """
    aiohttp-backed transport with a lazily created, shared session.

    Timeouts come from ``NetworkConfig``: ``request_timeout`` bounds the whole
    request and ``connect_timeout`` bounds connection setup.
    """

    def __init__(self, network_config: Optional[NetworkConfig] = None,
                 logger: Optional[HFTLoggerInterface] = None):
        self.network_config = network_config or NetworkConfig()
        self.logger = logger or get_logger('http.transport')

        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

        self._request_count = 0
        self._total_latency = 0.0

    async def _ensure_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                connector = aiohttp.TCPConnector(
                    limit=100,
                    limit_per_host=20,
                    ttl_dns_cache=300,
                    keepalive_timeout=30,
                )
                timeout = aiohttp.ClientTimeout(
                    total=self.network_config.request_timeout,
                    connect=self.network_config.connect_timeout,
                    sock_connect=self.network_config.connect_timeout,
                )
                self._session = aiohttp.ClientSession(
                    connector=connector,
                    timeout=timeout,
                    headers={
                        'User-Agent': 'butterfly-services/1.0',
                        'Accept': 'application/json',
                    }
                )
            return self._session

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await self._request(HTTPMethod.GET, url, headers=headers)

    async def post(self, url: str, body: Union[str, bytes, None] = None,
                   headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await self._request(HTTPMethod.POST, url, body=body, headers=headers)

    async def _request(self, method: HTTPMethod, url: str,
                       body: Union[str, bytes, None] = None,
                       headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        session = await self._ensure_session()
        start_time = time.perf_counter()

        try:
            async with session.request(method.value, url, data=body, headers=headers) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            self.logger.error("HTTP request timed out", method=method.value, url=url,
                              timeout=self.network_config.request_timeout)
            raise TransportError(
                f"Request timed out after {self.network_config.request_timeout}s",
                method=method.value, url=url
            ) from e
        except aiohttp.ClientError as e:
            self.logger.error("HTTP request failed", method=method.value, url=url,
                              error_type=type(e).__name__, error_message=str(e))
            raise TransportError(f"{type(e).__name__}: {e}", method=method.value, url=url) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._request_count += 1
        self._total_latency += duration_ms
        self.logger.metric("http_request_duration_ms", duration_ms,
                           method=method.value, status=status)

        return HttpResponse(status=status, text=text)

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

        if self._request_count > 0:
            self.logger.info("HTTP transport closed",
                             total_requests=self._request_count,
                             avg_latency_ms=self._total_latency / self._request_count)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
