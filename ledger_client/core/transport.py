from __future__ import annotations

import logging
import time

import httpx

from ledger_client.core.errors import NetworkError
from ledger_client.core.request_builder import BuiltRequest

logger = logging.getLogger(__name__)


class Transport:
    """One network exchange per call; retries live in the recovery policy."""

    def __init__(
        self,
        *,
        timeout_seconds: float,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self._timeout, transport=transport)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: BuiltRequest) -> httpx.Response:
        """Send `request` and return the fully read response.

        Raises `NetworkError` when no response was received (DNS, refused
        connection, timeout). HTTP error statuses are returned, not raised.
        """

        start = time.perf_counter()
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                params=request.params or None,
                content=request.content,
                data=request.data,
                files=request.files,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.warning("%s %s timed out after %.1fms", request.method, request.url, duration_ms)
            raise NetworkError(
                "Request timed out",
                details={"url": request.url, "timeout_seconds": self._timeout.read},
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise NetworkError(str(exc) or "Network request failed", details={"url": request.url}) from exc

        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url,
            response.status_code,
            duration_ms,
        )
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
