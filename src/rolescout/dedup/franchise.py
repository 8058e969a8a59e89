"""Franchise-based deduplication of the final role list.

Roles are grouped by a franchise key: the canonical name from the
franchise table when a title or character matches one, otherwise the
title's base name (sequel numbers, roman numerals, subtitles and
"Part N" suffixes removed). Groups of ``franchise_min_size`` or more are
franchises and are capped: two slots for big franchises, one otherwise.
"""

from __future__ import annotations

import logging
import re

from rolescout.config import Thresholds
from rolescout.constants import MAX_FINAL_ROLES
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import CandidateRole
from rolescout.text.normalizer import contains_phrase, normalize, title_case

logger = logging.getLogger(__name__)

_ROMAN_TAIL = re.compile(r"\s+(?:i{1,3}|iv|v|vi{1,3}|ix|x)$")
_NUMBER_TAIL = re.compile(r"\s+\d+$")
_PART_TAIL = re.compile(r"\s+(?:part|episode|chapter|volume|vol)\s*\S+$")
_SUBTITLE = re.compile(r"\s*(?::|\s-\s|\s–\s).*$")
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")

FranchiseTable = dict[str, tuple[str, ...]]


def base_franchise_name(title: str) -> str:
    """``"Midnight City II: Dawn"`` -> ``"midnight city"``."""
    base = title.lower().strip()
    base = _SUBTITLE.sub("", base)
    base = _PART_TAIL.sub("", base)
    base = _ROMAN_TAIL.sub("", base)
    base = _NUMBER_TAIL.sub("", base)
    base = _LEADING_ARTICLE.sub("", base)
    return normalize(base)


def table_franchise(role: CandidateRole, table: FranchiseTable) -> str | None:
    """Canonical franchise name from the table, title first then character."""
    for text in (role.title, role.character):
        if not text:
            continue
        for name, aliases in table.items():
            if any(contains_phrase(text, alias) for alias in aliases):
                return name
    return None


def franchise_key(role: CandidateRole, table: FranchiseTable) -> tuple[str, str]:
    """Return ``(group key, display name)`` for *role*."""
    if role.franchise_name:
        return normalize(role.franchise_name), role.franchise_name
    name = table_franchise(role, table)
    if name is not None:
        return normalize(name), name
    base = base_franchise_name(role.title) or normalize(role.title)
    return base, title_case(base)


def is_genuine_character(role: CandidateRole, lexicon: Lexicon | None = None) -> bool:
    """True when the role names a character distinct from the work itself."""
    if not role.character:
        return False
    lex = lexicon or load_lexicon()
    character = normalize(role.character)
    title = normalize(role.title)
    if not character or character == title or character in title:
        return False
    return not lex.is_generic_character(role.character)


def deduplicate(
    roles: list[CandidateRole],
    table: FranchiseTable | None = None,
    thresholds: Thresholds | None = None,
    limit: int = MAX_FINAL_ROLES,
    lexicon: Lexicon | None = None,
) -> list[CandidateRole]:
    """Cap each franchise's share of *roles* and return at most *limit*.

    Within a franchise, roles are preferred in this order: known-for,
    genuine character name, vote count. The final list puts known-for
    roles first, then sorts by vote count (stable).
    """
    lex = lexicon or load_lexicon()
    t = thresholds or Thresholds()
    franchise_table = lex.franchises if table is None else table

    groups: dict[str, list[CandidateRole]] = {}
    names: dict[str, str] = {}
    for role in roles:
        key, display = franchise_key(role, franchise_table)
        groups.setdefault(key, []).append(role)
        names.setdefault(key, display)

    kept: list[CandidateRole] = []
    for key, group in groups.items():
        if len(group) < t.franchise_min_size:
            kept.extend(group)
            continue
        slots = (
            t.large_franchise_slots
            if len(group) >= t.large_franchise_size
            else t.small_franchise_slots
        )
        ranked = sorted(
            group,
            key=lambda r: (not r.is_known_for, not is_genuine_character(r, lex), -r.vote_count),
        )
        chosen = ranked[:slots]
        for role in chosen:
            if role.franchise_name is None:
                role.assign_franchise(names[key])
        logger.info(
            "Franchise %r: kept %d of %d roles (%s)",
            names[key],
            len(chosen),
            len(group),
            ", ".join(r.label for r in chosen),
        )
        kept.extend(chosen)

    kept.sort(key=lambda r: (not r.is_known_for, -r.vote_count))
    return kept[:limit]


def remove_duplicate_roles(roles: list[CandidateRole]) -> list[CandidateRole]:
    """Drop repeats of the same work before verification.

    Two roles are the same work when their normalized titles are equal or
    one contains the other and the characters do not conflict.
    """
    unique: list[CandidateRole] = []
    for role in roles:
        title = normalize(role.title)
        character = normalize(role.character or "")
        duplicate = False
        for kept in unique:
            kept_title = normalize(kept.title)
            kept_character = normalize(kept.character or "")
            same_title = title == kept_title or (
                min(len(title), len(kept_title)) >= 4
                and (title in kept_title or kept_title in title)
            )
            if not same_title:
                continue
            if character and kept_character and character != kept_character:
                continue
            duplicate = True
            if not kept.character and role.character:
                kept.character = role.character
            kept.is_known_for = kept.is_known_for or role.is_known_for
            break
        if not duplicate:
            unique.append(role)
    return unique
