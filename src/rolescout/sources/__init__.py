"""External source clients: metadata provider, encyclopedia, community
database, web search and the language-model judge."""

from rolescout.sources.base import HttpSource, SourceError
from rolescout.sources.community import VoiceActorDirectory
from rolescout.sources.llm import JudgeError, MistralJudge
from rolescout.sources.serp import SearchError, SerpSearchClient
from rolescout.sources.tmdb import TMDbClient
from rolescout.sources.wikipedia import WikipediaSource

__all__ = [
    "HttpSource",
    "JudgeError",
    "MistralJudge",
    "SearchError",
    "SerpSearchClient",
    "SourceError",
    "TMDbClient",
    "VoiceActorDirectory",
    "WikipediaSource",
]
