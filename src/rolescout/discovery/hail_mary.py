"""Hail-mary search: the broadest and most expensive discovery tier.

Two strategies share the same search client and cost meter:

- :meth:`HailMarySearch.mine_titles` runs broad voice-acting / filmography
  queries and mines titles out of result titles and snippets. Roles are
  tagged ``web_search`` and verified strictly.
- :meth:`HailMarySearch.emergency_recovery` runs when red flags fire. It
  pulls titles from film-database and encyclopedia filmography results,
  then looks up the subject's character for each title. Roles are tagged
  ``emergency_recovery`` and verified leniently.
"""

from __future__ import annotations

import asyncio
import logging

from rolescout.config import Thresholds
from rolescout.constants import HAIL_MARY_QUERY_DELAY_SECONDS
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import CandidateRole, Medium, SearchHit, SourceTag
from rolescout.sources.llm import JudgeError, MistralJudge
from rolescout.sources.serp import SearchError, SerpSearchClient
from rolescout.text.normalizer import (
    clean_title,
    has_content_red_flags,
    is_character_name,
    is_valid_extracted_title,
    normalize,
)
from rolescout.text.rules import CHARACTER_RULES, SEARCH_TITLE_RULES, apply_rules
from rolescout.verification.parser import parse_character_answer
from rolescout.verification.prompts import build_character_prompt
from rolescout.verification.verifier import CostMeter

logger = logging.getLogger(__name__)

HAIL_MARY_RESULTS = 15
CHARACTER_RESULTS = 10
CHARACTER_QUERY_DELAY = 0.3

# Title rules trusted for emergency recovery (explicit quoting or a year)
_EMERGENCY_RULES = tuple(
    r for r in SEARCH_TITLE_RULES if r.name in ("quoted_title", "title_with_year")
)
_SITE_NOISE = ("wikipedia", "imdb", "credits", "filmography", "biography")


def medium_from_text(text: str, lexicon: Lexicon) -> Medium:
    lowered = text.lower()
    if lexicon.has_voice_indicator(lowered):
        if any(word in lowered for word in lexicon.anime_indicators):
            return Medium.VOICE_ANIME_TV
        return Medium.VOICE_CARTOON
    if any(word in lowered for word in ("tv series", "television", "sitcom", "episode")):
        return Medium.LIVE_ACTION_TV
    if "film" in lowered or "movie" in lowered:
        return Medium.LIVE_ACTION_MOVIE
    return Medium.UNKNOWN


def is_plausible_mined_title(title: str, subject: str, lexicon: Lexicon) -> bool:
    if len(title) < 4 or len(title) > 40:
        return False
    lowered = title.lower()
    if any(noise in lowered for noise in _SITE_NOISE):
        return False
    if has_content_red_flags(title, lexicon):
        return False
    return is_valid_extracted_title(title, subject, lexicon)


def mine_titles_from_hits(
    hits: list[SearchHit],
    subject: str,
    rules=SEARCH_TITLE_RULES,
    lexicon: Lexicon | None = None,
) -> list[CandidateRole]:
    """Extract candidate roles from search hits, one per normalized title."""
    lex = lexicon or load_lexicon()
    roles: list[CandidateRole] = []
    seen: set[str] = set()
    for hit in hits:
        for match in apply_rules(rules, hit.text):
            if not match.title:
                continue
            title = clean_title(match.title)
            key = normalize(title)
            if not key or key in seen:
                continue
            if not is_plausible_mined_title(title, subject, lex):
                continue
            seen.add(key)
            character = None
            for char_match in apply_rules(CHARACTER_RULES, hit.text, subject=subject, title=title):
                if char_match.character and is_character_name(char_match.character, subject, title, lex):
                    character = char_match.character
                    break
            roles.append(
                CandidateRole(
                    title=title,
                    character=character,
                    medium=medium_from_text(hit.text, lex),
                    year=match.year,
                    source_tag=SourceTag.WEB_SEARCH,
                )
            )
    return roles


def voice_first(roles: list[CandidateRole]) -> list[CandidateRole]:
    """Stable sort putting voice roles ahead of everything else."""
    return sorted(roles, key=lambda r: r.medium not in (Medium.VOICE_CARTOON, Medium.VOICE_ANIME_TV))


class HailMarySearch:
    def __init__(
        self,
        search: SerpSearchClient | None,
        judge: MistralJudge | None = None,
        cost_meter: CostMeter | None = None,
        thresholds: Thresholds | None = None,
        query_delay: float = HAIL_MARY_QUERY_DELAY_SECONDS,
        character_query_delay: float = CHARACTER_QUERY_DELAY,
        lexicon: Lexicon | None = None,
    ) -> None:
        self._search = search
        self._judge = judge
        self.cost = cost_meter or CostMeter()
        self._thresholds = thresholds or Thresholds()
        self._query_delay = query_delay
        self._character_query_delay = character_query_delay
        self._lexicon = lexicon or load_lexicon()

    @property
    def available(self) -> bool:
        return self._search is not None and self._search.is_configured

    async def _run_query(self, query: str, num: int) -> list[SearchHit] | None:
        cost = self._thresholds.web_search_cost
        if not self.cost.can_spend(cost):
            logger.info("Cost budget reached; skipping query %r", query)
            return None
        self.cost.charge_web(cost)
        try:
            return await self._search.search(query, num=num)
        except SearchError as e:
            logger.warning("Hail-mary query failed (%s): %s", query, e)
            return []

    async def mine_titles(self, subject: str) -> list[CandidateRole]:
        if not self.available:
            return []
        t = self._thresholds
        hits: list[SearchHit] = []
        candidates: list[CandidateRole] = []
        for i, template in enumerate(self._lexicon.hail_mary_queries):
            if i and self._query_delay:
                await asyncio.sleep(self._query_delay)
            new_hits = await self._run_query(template.format(subject=subject), HAIL_MARY_RESULTS)
            if new_hits is None:
                break
            hits.extend(new_hits)
            candidates = mine_titles_from_hits(hits, subject, lexicon=self._lexicon)
            if len(candidates) >= t.hail_mary_target_candidates:
                logger.info("Hail-mary reached %d candidates after %d queries", len(candidates), i + 1)
                break

        ranked = voice_first(candidates)[: t.max_hail_mary_titles]
        logger.info("Hail-mary titles for %r: %s", subject, [r.title for r in ranked])
        return ranked

    async def discover_character(self, subject: str, title: str) -> str | None:
        """Find the character *subject* played in *title* (search, then judge)."""
        if self.available:
            hits = await self._run_query(f'"{subject}" "{title}" cast character', CHARACTER_RESULTS)
            for hit in hits or []:
                for match in apply_rules(CHARACTER_RULES, hit.text, subject=subject, title=title):
                    if match.character and is_character_name(match.character, subject, title, self._lexicon):
                        return match.character

        if self._judge is not None and self._judge.is_configured:
            if not self.cost.can_spend(self._thresholds.judge_cost):
                return None
            self.cost.charge_judge(self._thresholds.judge_cost)
            try:
                answer = await self._judge.judge(build_character_prompt(subject, title), max_tokens=20)
            except JudgeError as e:
                logger.warning("Character lookup via judge failed for %r: %s", title, e)
                return None
            character = parse_character_answer(answer)
            if character and is_character_name(character, subject, title, self._lexicon):
                return character
        return None

    async def emergency_recovery(self, subject: str) -> list[CandidateRole]:
        if not self.available:
            return []
        hits: list[SearchHit] = []
        for i, template in enumerate(self._lexicon.emergency_queries):
            if i and self._query_delay:
                await asyncio.sleep(self._query_delay)
            new_hits = await self._run_query(template.format(subject=subject), HAIL_MARY_RESULTS)
            if new_hits is None:
                break
            hits.extend(new_hits)

        found = mine_titles_from_hits(hits, subject, rules=_EMERGENCY_RULES, lexicon=self._lexicon)
        found = found[: self._thresholds.max_emergency_titles]

        roles: list[CandidateRole] = []
        for i, role in enumerate(found):
            if role.character is None:
                if i and self._character_query_delay:
                    await asyncio.sleep(self._character_query_delay)
                role.character = await self.discover_character(subject, role.title)
            role.source_tag = SourceTag.EMERGENCY_RECOVERY
            roles.append(role)

        logger.info(
            "Emergency recovery for %r found %d titles: %s",
            subject,
            len(roles),
            [r.label for r in roles],
        )
        return roles
