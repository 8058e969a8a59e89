"""Shared pytest fixtures for rolescout tests.

Provides the default lexicon, a zero-delay discovery config, and MagicMock
/ AsyncMock fakes for every external client (metadata provider,
encyclopedia, voice-actor directory, web search and judge). No test
touches the network.
"""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from mistralai.models.sdkerror import SDKError

from rolescout.config import DiscoveryConfig
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import ArticleSections, RawCredit, SearchHit, SectionEntry

SUBJECT = "Jane Doe"

VALIDATED_LEAD = (
    "Jane Doe (born 1980) is an American actress. She is best known for her "
    "role as Captain Zap in Midnight City."
)
ESCALATION_LEAD = (
    "Jane Doe (born 1982) is a Canadian actress. She is best known for her "
    "role as Captain Zap in Starship Voyager."
)


@pytest.fixture
def lexicon() -> Lexicon:
    return load_lexicon()


@pytest.fixture
def fast_config() -> DiscoveryConfig:
    """Config with every delay set to zero and no real keys."""
    return DiscoveryConfig(
        query_delay=0.0,
        batch_delay=0.0,
        hail_mary_query_delay=0.0,
        verify_concurrency=3,
    )


def imdb_hit(title: str, snippet: str) -> SearchHit:
    return SearchHit(title=title, snippet=snippet, link="https://www.imdb.com/title/tt0000001/")


def blog_hit(title: str, snippet: str) -> SearchHit:
    return SearchHit(title=title, snippet=snippet, link="https://fanblog.example.com/post")


def make_search(handler: Callable[[str], list[SearchHit]] | None = None, configured: bool = True):
    """Fake search client whose ``search`` delegates to *handler(query)*."""
    search = MagicMock()
    search.is_configured = configured

    async def _search(query: str, num: int = 10):
        return handler(query) if handler else []

    search.search = AsyncMock(side_effect=_search)
    search.close = AsyncMock()
    return search


class PaymentRequired(SDKError):
    """Mistral SDK error carrying HTTP 402, built without a real response."""

    status_code = 402

    def __init__(self) -> None:
        Exception.__init__(self, "payment required")

    def __str__(self) -> str:
        return "payment required"


def make_judge(answer: str | None = None, configured: bool = True):
    judge = MagicMock()
    judge.is_configured = configured
    judge.judge = AsyncMock(return_value=answer or "")
    return judge


def make_tmdb(credits: list[RawCredit] | None = None, person_id: int | None = 42):
    tmdb = MagicMock()
    tmdb.search_person = AsyncMock(return_value=person_id if credits is not None else None)
    tmdb.get_combined_credits = AsyncMock(return_value=credits or [])
    tmdb.close = AsyncMock()
    return tmdb


def make_wikipedia(sections: ArticleSections | None = None):
    wikipedia = MagicMock()
    wikipedia.fetch_structured_sections = AsyncMock(return_value=sections or ArticleSections())
    wikipedia.fetch_article_text = AsyncMock(
        return_value=sections.lead_text if sections else ""
    )
    wikipedia.close = AsyncMock()
    return wikipedia


def make_community(entries: list[str] | None = None):
    community = MagicMock()
    community.fetch_roles = AsyncMock(return_value=entries or [])
    community.close = AsyncMock()
    return community


@pytest.fixture
def validated_credits() -> list[RawCredit]:
    """Credits whose top title overlaps the known-for list."""
    return [
        RawCredit(title="Midnight City", character="Captain Zap", media_type="tv", vote_count=500),
        RawCredit(title="Harbor Lights", character="Detective Lane", media_type="movie", vote_count=300),
        RawCredit(
            title="The Tonight Show Starring Jimmy Fallon",
            character="Self",
            media_type="tv",
            vote_count=1000,
        ),
    ]


@pytest.fixture
def escalation_sections() -> ArticleSections:
    return ArticleSections(
        lead_text=ESCALATION_LEAD,
        sections=[
            (
                "Filmography",
                [
                    SectionEntry(title="Harbor Lights", character="Detective Lane", year=2015),
                    SectionEntry(title="Northern Star", character="Ada", year=2018),
                    SectionEntry(title="Quiet Hours", character="Nell", year=2020),
                ],
            )
        ],
    )
