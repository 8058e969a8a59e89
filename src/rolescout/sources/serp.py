"""SerpAPI web search client.

Single attempt per query with an ``httpx`` timeout; requests are paced by
an ``aiolimiter.AsyncLimiter``. A failed query raises :class:`SearchError`
so callers can tell "the search failed" apart from "the search found
nothing".
"""

from __future__ import annotations

import logging

import httpx
from aiolimiter import AsyncLimiter

from rolescout.models import SearchHit
from rolescout.sources.base import HttpSource, SourceError

logger = logging.getLogger(__name__)

SERP_API_URL = "https://serpapi.com/search"
MAX_RESULTS = 20


class SearchError(SourceError):
    """Raised when a web search request fails."""


class SerpSearchClient(HttpSource):
    """Google organic results via SerpAPI."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = SERP_API_URL,
        timeout: float = 10.0,
        requests_per_second: int = 5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.api_key = api_key
        self.base_url = base_url
        self._rate_limiter = AsyncLimiter(max(1, requests_per_second), 1)
        self.query_count = 0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, num: int = 10) -> list[SearchHit]:
        """Run one query and return its organic results.

        Raises:
            SearchError: If the client is not configured or the request fails.
        """
        if not self.is_configured:
            raise SearchError("SerpAPI key not configured")

        params = {
            "api_key": self.api_key,
            "q": query,
            "engine": "google",
            "num": min(max(1, num), MAX_RESULTS),
            "gl": "us",
            "hl": "en",
        }

        client = await self._get_client()
        async with self._rate_limiter:
            self.query_count += 1
            try:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Search failed for %r: %s", query, e)
                raise SearchError(f"search failed for {query!r}: {e}") from e

        if data.get("error"):
            # SerpAPI reports "no results" as an error string with HTTP 200
            if "hasn't returned any results" in str(data["error"]):
                return []
            raise SearchError(f"search error for {query!r}: {data['error']}")

        hits: list[SearchHit] = []
        for result in data.get("organic_results") or []:
            hits.append(
                SearchHit(
                    title=result.get("title") or "",
                    snippet=result.get("snippet") or "",
                    link=result.get("link") or "",
                )
            )
        logger.debug("Search %r returned %d hits", query, len(hits))
        return hits[:num]
