"""Known-for title extraction from the encyclopedia lead.

Example:
    >>> extract_known_for(
    ...     "Jane Doe is an actress best known for her role as Captain Zap "
    ...     "in Midnight City.", "Jane Doe")
    ['Midnight City']
"""

from __future__ import annotations

import logging
import re

from rolescout.constants import MAX_KNOWN_FOR
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.sources.wikipedia import WikipediaSource
from rolescout.text.normalizer import (
    clean_title,
    has_content_red_flags,
    is_valid_extracted_title,
    is_valid_title,
    normalize,
)
from rolescout.text.rules import CAPITALIZED_RUN, KNOWN_FOR_RULES, apply_rules

logger = logging.getLogger(__name__)

_ANCHOR = re.compile(r"(?:best\s+known|known|famous)\s+for\b", re.IGNORECASE)
_CLAUSE_END = re.compile(r"(?<!\b[A-Z])(?<!\bMr)(?<!\bMs)(?<!\bDr)(?<!\bMrs)\.(?:\s|$)")
_MEDIUM_SUFFIX = re.compile(
    r"\s+(?:film\s+series|television\s+series|tv\s+series|franchise|series|"
    r"trilogy|saga|films|film|movies|sitcom)$",
    re.IGNORECASE,
)


def known_for_clauses(text: str) -> list[str]:
    """Return each "known for ..." clause up to the end of its sentence."""
    clauses: list[str] = []
    for m in _ANCHOR.finditer(text):
        rest = text[m.start():]
        end = _CLAUSE_END.search(rest)
        clauses.append(rest[: end.start() + 1] if end else rest)
    return clauses


def tidy_title(raw: str) -> str:
    title = clean_title(raw)
    title = _MEDIUM_SUFFIX.sub("", title)
    return title.strip(" .,;:'\"")


def extract_known_for(
    text: str,
    subject: str,
    infobox: list[str] | None = None,
    lexicon: Lexicon | None = None,
    limit: int = MAX_KNOWN_FOR,
) -> list[str]:
    """Extract up to *limit* known-for titles from lead *text*.

    Infobox "Known for" entries are appended after the text matches.
    Every candidate must pass both title filters; duplicates (after
    normalization) keep their first position.
    """
    lex = lexicon or load_lexicon()
    raw_titles: list[str] = []
    for clause in known_for_clauses(text or ""):
        found = [m.title for m in apply_rules(KNOWN_FOR_RULES, clause) if m.title]
        if not found:
            anchor = _ANCHOR.match(clause)
            tail = clause[anchor.end():] if anchor else clause
            found = [m.title for m in CAPITALIZED_RUN.apply(tail) if m.title]
        raw_titles.extend(found)
    raw_titles.extend(infobox or [])

    titles: list[str] = []
    seen: set[str] = set()
    for raw in raw_titles:
        title = tidy_title(raw)
        key = normalize(title)
        if not key or key in seen:
            continue
        if not is_valid_title(title, lex):
            continue
        if not is_valid_extracted_title(title, subject, lex):
            continue
        if has_content_red_flags(title, lex):
            continue
        seen.add(key)
        titles.append(title)
    return titles[:limit]


class KnownForExtractor:
    """Fetches the subject's article lead and extracts known-for titles."""

    def __init__(
        self,
        wikipedia: WikipediaSource,
        lexicon: Lexicon | None = None,
        limit: int = MAX_KNOWN_FOR,
    ) -> None:
        self._wikipedia = wikipedia
        self._lexicon = lexicon
        self._limit = limit

    async def extract(self, subject: str) -> list[str]:
        text = await self._wikipedia.fetch_article_text(subject)
        if not text:
            logger.info("No article text for %r; known-for list is empty", subject)
            return []
        titles = extract_known_for(text, subject, lexicon=self._lexicon, limit=self._limit)
        logger.info("Known-for titles for %r: %s", subject, titles)
        return titles
