# -*- coding: utf-8 -*-
"""
HTTP transport boundary.

A transport executes exactly one HTTP call and never retries; all retry
decisions belong to retry.RetryPolicy. Connection failures are converted
here into NetworkError / RequestTimeoutError.
"""
import logging
from dataclasses import dataclass, field
from typing import Mapping, Protocol

import httpx

from .errors import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP response as seen by the client core."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value.split(";")[0].strip().lower()
        return ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    """Anything able to send one HTTP request."""

    async def send(
            self,
            method: str,
            path: str,
            headers: Mapping[str, str],
            body: bytes | None = None,
    ) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """Transport backed by a shared httpx.AsyncClient (connection pooling)."""

    def __init__(
            self,
            base_url: str,
            timeout: float = 60.0,
            http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            follow_redirects=True,
            transport=http_transport,
        )

    async def send(
            self,
            method: str,
            path: str,
            headers: Mapping[str, str],
            body: bytes | None = None,
    ) -> TransportResponse:
        try:
            response = await self._client.request(
                method, path, headers=dict(headers), content=body
            )
        except httpx.TimeoutException as e:
            logger.debug(f"{method} {path} timed out: {e}")
            raise RequestTimeoutError(f"{method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            logger.debug(f"{method} {path} transport error: {e}")
            raise NetworkError(f"{method} {path} failed: {e}") from e

        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()
