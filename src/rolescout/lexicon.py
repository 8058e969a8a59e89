"""Curated word lists used across the discovery pipeline.

Loads ``lexicon.yml`` (talk-show blocklist, guest-character words, franchise
table, voice-acting indicators, ...) into a :class:`Lexicon` and caches the
default instance at module level.

Example:
    >>> from rolescout.lexicon import load_lexicon
    >>> lex = load_lexicon()
    >>> lex.is_talk_show("The Tonight Show Starring Jimmy Fallon")
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Module-level lexicon cache
_lexicon_cache: Lexicon | None = None

DEFAULT_LEXICON_PATH = Path(__file__).parent / "lexicon.yml"


def _lower_list(values) -> tuple[str, ...]:
    return tuple(str(v).lower() for v in (values or []))


@dataclass(frozen=True)
class Lexicon:
    talk_shows: tuple[str, ...] = ()
    guest_characters: tuple[str, ...] = ()
    acting_indicators: tuple[str, ...] = ()
    voice_indicators: tuple[str, ...] = ()
    anime_indicators: tuple[str, ...] = ()
    animation_genre_id: int = 16
    documentary_genre_id: int = 99
    occupations: tuple[str, ...] = ()
    nationalities: tuple[str, ...] = ()
    medium_words: tuple[str, ...] = ()
    generic_words: tuple[str, ...] = ()
    generic_phrases: tuple[str, ...] = ()
    leading_stop_words: tuple[str, ...] = ()
    trailing_junk: tuple[str, ...] = ()
    content_red_flags: tuple[str, ...] = ()
    generic_characters: tuple[str, ...] = ()
    protected_titles: tuple[str, ...] = ()
    franchises: dict[str, tuple[str, ...]] = field(default_factory=dict)
    multi_actor_characters: dict[str, tuple[str, ...]] = field(default_factory=dict)
    animation_networks: tuple[str, ...] = ()
    hail_mary_queries: tuple[str, ...] = ()
    emergency_queries: tuple[str, ...] = ()
    authoritative_domains: tuple[str, ...] = ()

    def is_talk_show(self, title: str | None) -> bool:
        if not title:
            return False
        lower = title.lower()
        return any(pattern in lower for pattern in self.talk_shows)

    def is_guest_character(self, character: str | None) -> bool:
        """True for self / host / guest style credits.

        Matches the bare word, ``"self - x"``, ``"(self)"`` and the word as a
        leading or trailing token.
        """
        if not character:
            return False
        lower = character.lower().strip()
        for word in self.guest_characters:
            if (
                lower == word
                or lower.startswith(f"{word} - ")
                or f"({word})" in lower
                or lower.startswith(f"{word} ")
                or lower.endswith(f" {word}")
            ):
                return True
        return False

    def has_voice_indicator(self, text: str | None) -> bool:
        if not text:
            return False
        lower = text.lower()
        return any(word in lower for word in self.voice_indicators)

    def is_generic_character(self, character: str | None) -> bool:
        if not character:
            return True
        lower = character.lower().strip()
        return lower in self.generic_characters or lower.startswith("unknown")

    @property
    def title_exclude_words(self) -> frozenset[str]:
        """Nouns that are never a title on their own."""
        return frozenset(
            self.occupations + self.nationalities + self.medium_words + self.generic_words
        )


def load_lexicon(path: Path | None = None) -> Lexicon:
    """Load the lexicon from YAML.

    Caches the result at module level for subsequent calls.

    Args:
        path: Path to a lexicon file. Defaults to the ``lexicon.yml``
              co-located with this module.
    """
    global _lexicon_cache

    # Return cache only if using default path
    if _lexicon_cache is not None and path is None:
        return _lexicon_cache

    with open(path or DEFAULT_LEXICON_PATH) as f:
        raw = yaml.safe_load(f) or {}

    talk_shows: list[str] = []
    for patterns in (raw.get("talk_shows") or {}).values():
        talk_shows.extend(str(p).lower() for p in patterns)

    lexicon = Lexicon(
        talk_shows=tuple(talk_shows),
        guest_characters=_lower_list(raw.get("guest_characters")),
        acting_indicators=_lower_list(raw.get("acting_indicators")),
        voice_indicators=_lower_list(raw.get("voice_indicators")),
        anime_indicators=_lower_list(raw.get("anime_indicators")),
        animation_genre_id=int(raw.get("animation_genre_id", 16)),
        documentary_genre_id=int(raw.get("documentary_genre_id", 99)),
        occupations=_lower_list(raw.get("occupations")),
        nationalities=_lower_list(raw.get("nationalities")),
        medium_words=_lower_list(raw.get("medium_words")),
        generic_words=_lower_list(raw.get("generic_words")),
        generic_phrases=_lower_list(raw.get("generic_phrases")),
        leading_stop_words=_lower_list(raw.get("leading_stop_words")),
        trailing_junk=_lower_list(raw.get("trailing_junk")),
        content_red_flags=_lower_list(raw.get("content_red_flags")),
        generic_characters=_lower_list(raw.get("generic_characters")),
        protected_titles=_lower_list(raw.get("protected_titles")),
        franchises={
            str(name): _lower_list(aliases)
            for name, aliases in (raw.get("franchises") or {}).items()
        },
        multi_actor_characters={
            str(name).lower(): _lower_list(aliases)
            for name, aliases in (raw.get("multi_actor_characters") or {}).items()
        },
        animation_networks=_lower_list(raw.get("animation_networks")),
        hail_mary_queries=tuple(str(q) for q in raw.get("hail_mary_queries") or []),
        emergency_queries=tuple(str(q) for q in raw.get("emergency_queries") or []),
        authoritative_domains=_lower_list(raw.get("authoritative_domains")),
    )

    # Cache only for default path
    if path is None:
        _lexicon_cache = lexicon

    return lexicon
