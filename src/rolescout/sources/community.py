"""Voice-actor community database scraper."""

from __future__ import annotations

import logging
import re

import httpx
from bs4 import BeautifulSoup

from rolescout.sources.base import HttpSource

logger = logging.getLogger(__name__)

COMMUNITY_BASE_URL = "https://www.behindthevoiceactors.com/voice-actors"
MAX_COMMUNITY_ROLES = 8

_HEADER_CELLS = {"character", "show/movie", "title", "role"}


def profile_slug(subject: str) -> str:
    """``"Jane Q. Doe"`` -> ``"Jane-Q-Doe"``."""
    parts = re.sub(r"[^A-Za-z0-9\s-]", "", subject).split()
    return "-".join(parts)


class VoiceActorDirectory(HttpSource):
    """Reads "Show: Character" credits from a voice actor's profile page."""

    def __init__(
        self,
        base_url: str = COMMUNITY_BASE_URL,
        timeout: float = 10.0,
        user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, headers={"User-Agent": user_agent}, client=client)
        self.base_url = base_url.rstrip("/")

    async def fetch_roles(self, subject: str) -> list[str]:
        url = f"{self.base_url}/{profile_slug(subject)}/"
        client = await self._get_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.info("Voice actor profile lookup failed for %r: %s", subject, e)
            return []

        roles = parse_profile(response.text)
        if roles:
            logger.info(
                "Voice actor profile found %d roles for %r: %s",
                len(roles),
                subject,
                ", ".join(roles[:3]),
            )
        else:
            logger.info("Voice actor profile for %r lists no roles", subject)
        return roles


def parse_profile(html: str, limit: int = MAX_COMMUNITY_ROLES) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")
    roles: list[str] = []

    for row in soup.select(".voice-acting table tr"):
        cells = row.find_all("td")
        if len(cells) < 2:
            continue
        character = cells[0].get_text(" ", strip=True)
        show = cells[1].get_text(" ", strip=True)
        if not character or not show:
            continue
        if character.lower() in _HEADER_CELLS or show.lower() in _HEADER_CELLS:
            continue
        entry = f"{show}: {character}"
        if 5 < len(entry) < 100:
            roles.append(entry)

    for elem in soup.select(".popular-roles .role"):
        text = elem.get_text(" ", strip=True)
        if 3 < len(text) < 100:
            roles.append(text)

    # order-preserving dedupe
    return list(dict.fromkeys(roles))[:limit]
