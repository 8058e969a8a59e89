"""TMDb client: person lookup and combined credits."""

from __future__ import annotations

import logging

import httpx

from rolescout.models import RawCredit
from rolescout.sources.base import HttpSource

logger = logging.getLogger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"


class TMDbClient(HttpSource):
    """Thin async wrapper around the two TMDb endpoints the pipeline needs.

    Both methods degrade to an empty answer on any HTTP or decoding error;
    the caller treats that as "no primary source".
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = TMDB_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_json(self, path: str, params: dict | None = None) -> dict:
        client = await self._get_client()
        query = {"api_key": self.api_key, "language": "en-US"}
        query.update(params or {})
        response = await client.get(f"{self.base_url}/{path}", params=query)
        response.raise_for_status()
        return response.json()

    async def search_person(self, name: str) -> int | None:
        """Return the id of the first person matching *name*, or None."""
        if not self.is_configured:
            return None
        try:
            data = await self._get_json("search/person", {"query": name})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("TMDb person search failed for %r: %s", name, e)
            return None

        results = data.get("results") or []
        if not results:
            logger.info("TMDb has no person named %r", name)
            return None
        person_id = results[0].get("id")
        return int(person_id) if person_id is not None else None

    async def get_combined_credits(self, person_id: int) -> list[RawCredit]:
        """Return the cast side of the person's combined movie/TV credits."""
        if not self.is_configured:
            return []
        try:
            data = await self._get_json(f"person/{person_id}/combined_credits")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("TMDb credits fetch failed for person %s: %s", person_id, e)
            return []

        credits: list[RawCredit] = []
        for item in data.get("cast") or []:
            media_type = item.get("media_type") or "movie"
            credits.append(
                RawCredit(
                    title=item.get("title") if media_type == "movie" else item.get("name"),
                    character=item.get("character") or None,
                    media_type=media_type,
                    vote_count=int(item.get("vote_count") or 0),
                    popularity=float(item.get("popularity") or 0.0),
                    release_date=item.get("release_date") or item.get("first_air_date"),
                    genre_ids=tuple(item.get("genre_ids") or ()),
                )
            )
        return credits
