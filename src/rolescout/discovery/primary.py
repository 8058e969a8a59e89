"""Primary metadata source fetch and known-for cross-validation.

The primary pool is built from the provider's combined credits:

1. drop credits without a title
2. drop talk-show, awards and guest/self appearances unless the credit
   looks like a genuine acting role
3. drop documentaries about the subject
4. keep credits with enough votes or a real character name
5. sort by vote count, then popularity, and cut to ``max_results``

:func:`cross_validate` then decides whether the pool belongs to the right
person. A ``False`` answer discards the whole pool.
"""

from __future__ import annotations

import logging
import re

from rolescout.constants import MAX_PRIMARY_RESULTS, MIN_VOTE_COUNT, TITLE_OVERLAP_RATIO
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import CandidateRole, Medium, RawCredit, SourceTag
from rolescout.sources.tmdb import TMDbClient
from rolescout.text.normalizer import normalize, titles_match

logger = logging.getLogger(__name__)

_TALK_FORMAT = re.compile(r"\b(?:show|live|tonight|morning|today)\b")
_CELEBRITY_SPECIAL = re.compile(r"\bcelebrity\b.*\b(?:special|edition)\b")
_YEAR = re.compile(r"^((?:19|20)\d{2})")


def is_likely_acting_role(title: str, character: str | None, lexicon: Lexicon) -> bool:
    """A credit on a talk-show-like title that is still a real performance."""
    if not title or not character:
        return False
    title_lower = title.lower()
    char_lower = character.lower()

    has_real_character = (
        not any(w in char_lower for w in ("self", "himself", "herself"))
        and char_lower not in ("guest", "host")
    )
    not_talk_format = (
        not _TALK_FORMAT.search(title_lower)
        or any(w in title_lower for w in ("movie", "film", "series"))
    )
    substantial_character = (
        len(character) > 3 and " " in character.strip() and "unknown" not in char_lower
    )
    acting_hint = any(w in char_lower for w in lexicon.acting_indicators)
    return has_real_character and (not_talk_format or substantial_character or acting_hint)


def is_talk_show_or_guest(credit: RawCredit, lexicon: Lexicon) -> bool:
    title = credit.title or ""
    guest_like = (
        lexicon.is_talk_show(title)
        or lexicon.is_guest_character(credit.character)
        or bool(_CELEBRITY_SPECIAL.search(title.lower()))
    )
    return guest_like and not is_likely_acting_role(title, credit.character, lexicon)


def is_documentary_about(credit: RawCredit, subject: str, lexicon: Lexicon) -> bool:
    if lexicon.documentary_genre_id not in credit.genre_ids:
        return False
    return normalize(subject) in normalize(credit.title)


def is_real_character(character: str | None, lexicon: Lexicon) -> bool:
    if not character or not character.strip():
        return False
    if lexicon.is_guest_character(character):
        return False
    return not lexicon.is_generic_character(character)


def determine_medium(credit: RawCredit, lexicon: Lexicon) -> Medium:
    """Map media type and voice/animation hints to a :class:`Medium`."""
    character = credit.character or ""
    text = f"{credit.title or ''} {character}"
    is_voice = (
        "(voice)" in character.lower()
        or lexicon.animation_genre_id in credit.genre_ids
        or lexicon.has_voice_indicator(text)
    )
    if is_voice:
        lowered = text.lower()
        if any(word in lowered for word in lexicon.anime_indicators):
            return Medium.VOICE_ANIME_TV
        return Medium.VOICE_CARTOON
    if credit.media_type == "tv":
        return Medium.LIVE_ACTION_TV
    if credit.media_type == "movie":
        return Medium.LIVE_ACTION_MOVIE
    return Medium.UNKNOWN


def release_year(date: str | None) -> int | None:
    if not date:
        return None
    m = _YEAR.match(date)
    return int(m.group(1)) if m else None


def clean_character(character: str | None) -> str | None:
    """Strip provider annotations like ``"(voice)"`` / ``"(uncredited)"``."""
    if not character:
        return None
    cleaned = re.sub(r"\s*\((?:voice|uncredited|archive footage|credit only)\)", "", character, flags=re.I)
    cleaned = cleaned.split(" / ")[0].strip()
    return cleaned or None


def matches_known_for(title: str | None, known_for: list[str], ratio: float = TITLE_OVERLAP_RATIO) -> bool:
    """True when *title* is the same work as any known-for entry."""
    if not title:
        return False
    return any(titles_match(title, known, ratio) for known in known_for)


def filter_credits(
    credits: list[RawCredit],
    subject: str,
    known_for: list[str],
    max_results: int = MAX_PRIMARY_RESULTS,
    min_vote_count: int = MIN_VOTE_COUNT,
    ratio: float = TITLE_OVERLAP_RATIO,
    lexicon: Lexicon | None = None,
) -> list[CandidateRole]:
    """Turn raw provider credits into the ranked primary candidate pool."""
    lex = lexicon or load_lexicon()
    kept: list[CandidateRole] = []
    dropped = 0
    for credit in credits:
        if not credit.title:
            dropped += 1
            continue
        if is_talk_show_or_guest(credit, lex):
            logger.debug("Dropping guest appearance: %s (%s)", credit.title, credit.character)
            dropped += 1
            continue
        if is_documentary_about(credit, subject, lex):
            dropped += 1
            continue
        if credit.vote_count <= min_vote_count and not is_real_character(credit.character, lex):
            dropped += 1
            continue

        character = clean_character(credit.character)
        kept.append(
            CandidateRole(
                title=credit.title,
                character=character if is_real_character(character, lex) else None,
                medium=determine_medium(credit, lex),
                year=release_year(credit.release_date),
                popularity=credit.popularity,
                vote_count=credit.vote_count,
                source_tag=SourceTag.PRIMARY_SOURCE,
                is_known_for=matches_known_for(credit.title, known_for, ratio),
            )
        )

    kept.sort(key=lambda r: (r.vote_count, r.popularity), reverse=True)

    # collapse repeat credits for the same work (multiple TV seasons, cameos)
    unique: list[CandidateRole] = []
    seen: set[str] = set()
    for role in kept:
        key = normalize(role.title)
        if key in seen:
            continue
        seen.add(key)
        unique.append(role)

    logger.info(
        "Primary credits for %r: %d kept, %d dropped, returning top %d",
        subject,
        len(unique),
        dropped,
        min(len(unique), max_results),
    )
    return unique[:max_results]


async def fetch_credits(tmdb: TMDbClient, subject: str) -> list[RawCredit]:
    """Raw combined credits for the first person matching *subject*.

    ``[]`` when the provider is unconfigured, fails, or knows no such person.
    """
    person_id = await tmdb.search_person(subject)
    if person_id is None:
        return []
    return await tmdb.get_combined_credits(person_id)


async def fetch_primary(
    tmdb: TMDbClient,
    subject: str,
    known_for: list[str],
    max_results: int = MAX_PRIMARY_RESULTS,
    min_vote_count: int = MIN_VOTE_COUNT,
    ratio: float = TITLE_OVERLAP_RATIO,
    lexicon: Lexicon | None = None,
) -> list[CandidateRole]:
    """Fetch and filter the primary pool in one call."""
    credits = await fetch_credits(tmdb, subject)
    if not credits:
        return []
    return filter_credits(
        credits,
        subject,
        known_for,
        max_results=max_results,
        min_vote_count=min_vote_count,
        ratio=ratio,
        lexicon=lexicon,
    )


def cross_validate(
    candidates: list[CandidateRole],
    known_for: list[str],
    ratio: float = TITLE_OVERLAP_RATIO,
) -> bool:
    """Check that the primary pool belongs to the subject.

    Returns True when there is nothing to check against (empty known-for)
    or when any candidate's title or character overlaps a known-for entry.
    False means the provider most likely matched a different person with
    the same name.
    """
    if not known_for:
        return True

    for role in candidates:
        if matches_known_for(role.title, known_for, ratio):
            logger.info("Cross-validation passed on title %r", role.title)
            return True
        character = role.character
        if not character or character.lower().startswith("unknown"):
            continue
        char_norm = normalize(character)
        for known in known_for:
            known_norm = normalize(known)
            if char_norm and (char_norm in known_norm or known_norm in char_norm):
                logger.info("Cross-validation passed on character %r", character)
                return True

    logger.warning(
        "Cross-validation failed: none of %d primary credits match known-for %s",
        len(candidates),
        known_for,
    )
    return False
