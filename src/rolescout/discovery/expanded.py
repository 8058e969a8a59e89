"""Fallback candidate pools: known-for titles, expanded encyclopedia
scrape and the voice-actor community source."""

from __future__ import annotations

import logging

from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import ArticleSections, CandidateRole, Medium, SourceTag
from rolescout.text.normalizer import (
    clean_title,
    has_content_red_flags,
    is_character_name,
    is_valid_extracted_title,
    normalize,
)
from rolescout.text.rules import NOTABLE_WORK_RULES, apply_rules

logger = logging.getLogger(__name__)

MAX_EXPANDED_TITLES = 10


def _heading_medium(heading: str, lexicon: Lexicon) -> Medium:
    lowered = heading.lower()
    if lexicon.has_voice_indicator(lowered):
        if any(word in lowered for word in lexicon.anime_indicators):
            return Medium.VOICE_ANIME_TV
        return Medium.VOICE_CARTOON
    if "television" in lowered or "tv" in lowered.split():
        return Medium.LIVE_ACTION_TV
    if "film" in lowered:
        return Medium.LIVE_ACTION_MOVIE
    return Medium.UNKNOWN


def _strip_marks(text: str) -> str:
    return text.strip(" \t*†‡§¶\"'“”")


def roles_from_known_for(known_for: list[str]) -> list[CandidateRole]:
    return [
        CandidateRole(title=title, source_tag=SourceTag.KNOWN_FOR, is_known_for=True)
        for title in known_for
    ]


def roles_from_sections(
    sections: ArticleSections,
    subject: str,
    lexicon: Lexicon | None = None,
    limit: int = MAX_EXPANDED_TITLES,
) -> list[CandidateRole]:
    """Candidate roles from filmography-like sections and the lead text."""
    lex = lexicon or load_lexicon()
    roles: list[CandidateRole] = []

    for heading, entries in sections.sections:
        medium = _heading_medium(heading, lex)
        for entry in entries:
            title = _strip_marks(entry.title)
            character = _strip_marks(entry.character or "") or None
            if character and not is_character_name(character, subject, title, lex):
                character = None
            roles.append(
                CandidateRole(
                    title=title,
                    character=character,
                    medium=medium,
                    year=entry.year,
                    source_tag=SourceTag.ENCYCLOPEDIA_EXPANDED,
                )
            )

    for match in apply_rules(NOTABLE_WORK_RULES, sections.lead_text):
        if match.title:
            roles.append(
                CandidateRole(
                    title=clean_title(match.title),
                    source_tag=SourceTag.ENCYCLOPEDIA_EXPANDED,
                )
            )

    merged = merge_candidates(roles)
    logger.info(
        "Expanded scrape for %r: %d raw entries, %d unique titles",
        subject,
        len(roles),
        len(merged),
    )
    return merged[:limit]


def roles_from_community(entries: list[str], subject: str, lexicon: Lexicon | None = None) -> list[CandidateRole]:
    """Parse ``"Show: Character"`` strings into voice roles."""
    lex = lexicon or load_lexicon()
    roles: list[CandidateRole] = []
    for entry in entries:
        show, sep, character = entry.partition(":")
        show = _strip_marks(show)
        character = _strip_marks(character) if sep else ""
        if not show:
            continue
        if character and not is_character_name(character, subject, show, lex):
            character = ""
        medium = (
            Medium.VOICE_ANIME_TV
            if any(word in show.lower() for word in lex.anime_indicators)
            else Medium.VOICE_CARTOON
        )
        roles.append(
            CandidateRole(
                title=show,
                character=character or None,
                medium=medium,
                source_tag=SourceTag.SPECIALTY_COMMUNITY,
            )
        )
    return merge_candidates(roles)


def has_voice_signal(
    known_for: list[str],
    lead_text: str = "",
    lexicon: Lexicon | None = None,
) -> bool:
    """True when known-for titles or the article lead suggest voice acting."""
    lex = lexicon or load_lexicon()
    if any(lex.has_voice_indicator(title) for title in known_for):
        return True
    return lex.has_voice_indicator(lead_text)


def merge_candidates(*pools: list[CandidateRole]) -> list[CandidateRole]:
    """Union pools in order, one role per normalized title.

    A later duplicate only contributes a character when the kept role has
    none, and upgrades ``is_known_for``.
    """
    merged: list[CandidateRole] = []
    by_key: dict[str, CandidateRole] = {}
    for pool in pools:
        for role in pool:
            key = normalize(role.title)
            if not key:
                continue
            existing = by_key.get(key)
            if existing is None:
                by_key[key] = role
                merged.append(role)
                continue
            if existing.character is None and role.character:
                existing.character = role.character
            if existing.medium is Medium.UNKNOWN and role.medium is not Medium.UNKNOWN:
                existing.medium = role.medium
            existing.is_known_for = existing.is_known_for or role.is_known_for
    return merged


def filter_valid_titles(
    roles: list[CandidateRole],
    subject: str,
    lexicon: Lexicon | None = None,
) -> list[CandidateRole]:
    """Keep roles whose title passes the strict extracted-title filter."""
    lex = lexicon or load_lexicon()
    valid: list[CandidateRole] = []
    for role in roles:
        if not is_valid_extracted_title(role.title, subject, lex):
            logger.debug("Rejected title %r", role.title)
            continue
        if has_content_red_flags(role.title, lex):
            logger.debug("Rejected title with content red flags %r", role.title)
            continue
        valid.append(role)
    return valid
