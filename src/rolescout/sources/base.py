"""Shared HTTP plumbing for the external source clients."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised by a source client when a request could not be completed."""


class HttpSource:
    """Base class owning a lazily created ``httpx.AsyncClient``.

    Subclasses call :meth:`_get_client` for every request. A client passed
    to the constructor is used as-is and is not closed by :meth:`close`.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = headers or {}
        self._http_client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
