"""HTTP transport posting events to the collection endpoint."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import SenderConfig
from ..events import serialize_event
from .base import DeliveryFailure, DeliveryResult, EventTransport


def build_client(config: SenderConfig) -> httpx.AsyncClient:
    """Create the pooled async client used for event delivery."""
    limits = httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_connections,
        keepalive_expiry=config.keepalive_expiry_seconds,
    )
    timeout = httpx.Timeout(
        config.request_timeout_seconds,
        connect=config.connect_timeout_seconds,
    )
    # httpx retries count attempts after the first one
    transport = httpx.AsyncHTTPTransport(
        limits=limits,
        retries=config.connect_attempts - 1,
    )
    return httpx.AsyncClient(transport=transport, timeout=timeout)


@dataclass
class HttpTransport(EventTransport):
    """
    Transport that POSTs each event as JSON to ``<server_url>/event``.

    Config:
        server_url: Base URL of the collection server
        api_key: Sent as a bearer token
        config: Client tuning (timeouts, pool size, connect attempts)
        client: Optional pre-built ``httpx.AsyncClient``; built from
            ``config`` when omitted

    Only HTTP 200 counts as delivered. The client is shared by all
    concurrent sends and closed exactly once by ``stop()``.
    """
    server_url: str
    api_key: str
    config: SenderConfig = field(default_factory=SenderConfig)
    client: httpx.AsyncClient | None = None

    _closed: bool = field(default=False, init=False)

    def __post_init__(self):
        if not self.server_url:
            raise ValueError("Server URL must not be empty")
        if not self.api_key:
            raise ValueError("API key must not be empty")
        if self.client is None:
            self.client = build_client(self.config)

    @property
    def endpoint(self) -> str:
        return f"{self.server_url.rstrip('/')}/event"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def send(self, event: Any) -> DeliveryResult:
        try:
            body = serialize_event(event)
        except Exception as e:
            return DeliveryResult.failed(DeliveryFailure.SERIALIZATION, error=str(e) or type(e).__name__)

        start = time.perf_counter()
        try:
            # Bounds the whole attempt, including connect retries and a slow body
            response = await asyncio.wait_for(
                self.client.post(self.endpoint, content=body, headers=self._headers()),
                timeout=self.config.request_timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            return DeliveryResult.failed(
                DeliveryFailure.TIMEOUT,
                error=str(e) or type(e).__name__,
                latency_ms=(time.perf_counter() - start) * 1000,
            )
        except httpx.HTTPError as e:
            return DeliveryResult.failed(
                DeliveryFailure.TRANSPORT,
                error=str(e) or type(e).__name__,
                latency_ms=(time.perf_counter() - start) * 1000,
            )

        latency = (time.perf_counter() - start) * 1000
        if response.status_code != 200:
            return DeliveryResult.failed(
                DeliveryFailure.REJECTED,
                error=f"Unexpected status {response.status_code}",
                status_code=response.status_code,
                latency_ms=latency,
            )
        return DeliveryResult.delivered(response.status_code, latency_ms=latency)

    async def stop(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.aclose()
