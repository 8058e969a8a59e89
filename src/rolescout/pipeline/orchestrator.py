"""Role discovery orchestrator.

Drives one run per subject through the escalation ladder declared in
:mod:`rolescout.pipeline.escalation`::

    primary -> validated -> done
            -> rejected -> expanded_scrape [-> specialty_source]
               -> verification -> done
                               -> hail_mary -> hail_mary_verification
                                  -> done | generic_fallback

Each run owns its candidate pools, cost meter and state machine. Source
failures degrade to the next tier; :meth:`RoleDiscoveryOrchestrator.discover_roles`
never raises and never returns an empty role list.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, TypeVar

from rolescout.config import DiscoveryConfig
from rolescout.constants import GENERIC_FALLBACK_LABELS
from rolescout.dedup.franchise import deduplicate, remove_duplicate_roles
from rolescout.discovery.expanded import (
    filter_valid_titles,
    has_voice_signal,
    merge_candidates,
    roles_from_community,
    roles_from_known_for,
    roles_from_sections,
)
from rolescout.discovery.hail_mary import HailMarySearch
from rolescout.discovery.known_for import extract_known_for
from rolescout.discovery.primary import cross_validate, fetch_credits, filter_credits
from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import (
    ArticleSections,
    CandidateRole,
    PipelineRunResult,
    PipelineTier,
    RedFlagReport,
    SourceTag,
)
from rolescout.pipeline.escalation import (
    TERMINAL_TIERS,
    EscalationSnapshot,
    create_escalation_sm,
    decide,
)
from rolescout.redflags import detect_red_flags
from rolescout.sources.community import VoiceActorDirectory
from rolescout.sources.llm import MistralJudge
from rolescout.sources.serp import SerpSearchClient
from rolescout.sources.tmdb import TMDbClient
from rolescout.sources.wikipedia import WikipediaSource
from rolescout.text.normalizer import normalize
from rolescout.verification.verifier import CostMeter, RoleVerifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


def generic_fallback_roles(subject: str) -> list[CandidateRole]:
    """Placeholder roles used when no real role survives verification."""
    return [
        CandidateRole(
            title=f"{subject} — {label}",
            source_tag=SourceTag.GENERIC_FALLBACK,
            search_terms=[f"{subject} {label.lower()}"],
        )
        for label in GENERIC_FALLBACK_LABELS
    ]


def build_search_terms(subject: str, role: CandidateRole) -> list[str]:
    """Image search queries for a final role, most specific first."""
    terms: list[str] = []
    if role.character:
        terms.append(f"{subject} {role.character} {role.title}")
        terms.append(f"{role.character} {role.title}")
    terms.append(f"{subject} {role.title}")
    return list(dict.fromkeys(terms))


@dataclass
class _RunState:
    """Mutable working set for a single run."""

    subject: str
    known_for: list[str] = field(default_factory=list)
    sections: ArticleSections = field(default_factory=ArticleSections)
    primary: list[CandidateRole] = field(default_factory=list)
    pool: list[CandidateRole] = field(default_factory=list)
    hail_pool: list[CandidateRole] = field(default_factory=list)
    confirmed: list[CandidateRole] = field(default_factory=list)
    rejected: list[CandidateRole] = field(default_factory=list)
    red_flags: RedFlagReport | None = None
    roles: list[CandidateRole] = field(default_factory=list)
    transitions: list[str] = field(default_factory=list)


class RoleDiscoveryOrchestrator:
    """Discovers a small, verified, franchise-balanced role list per subject.

    Clients default to ones built from *config*; tests inject fakes.

    Usage:
        async with RoleDiscoveryOrchestrator(load_discovery_config()) as orch:
            result = await orch.discover_roles("Jane Doe")
    """

    def __init__(
        self,
        config: DiscoveryConfig | None = None,
        *,
        tmdb: TMDbClient | None = None,
        wikipedia: WikipediaSource | None = None,
        community: VoiceActorDirectory | None = None,
        search: SerpSearchClient | None = None,
        judge: MistralJudge | None = None,
        lexicon: Lexicon | None = None,
    ) -> None:
        self._config = config or DiscoveryConfig()
        cfg = self._config
        self._tmdb = tmdb or TMDbClient(
            cfg.tmdb_api_key, base_url=cfg.tmdb_base_url, timeout=cfg.http_timeout
        )
        self._wikipedia = wikipedia or WikipediaSource(
            base_url=cfg.wikipedia_base_url, timeout=cfg.http_timeout, user_agent=cfg.user_agent
        )
        self._community = community or VoiceActorDirectory(
            base_url=cfg.community_base_url, timeout=cfg.http_timeout
        )
        self._search = search or SerpSearchClient(
            cfg.serp_api_key,
            base_url=cfg.serp_base_url,
            timeout=cfg.http_timeout,
            requests_per_second=cfg.search_rate_limit,
        )
        self._judge = judge or MistralJudge(
            cfg.mistral_api_key, model=cfg.judge_model, timeout=cfg.judge_timeout
        )
        self._lexicon = lexicon or load_lexicon()

    async def close(self) -> None:
        for source in (self._tmdb, self._wikipedia, self._community, self._search):
            await source.close()

    async def __aenter__(self) -> RoleDiscoveryOrchestrator:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _guarded(self, label: str, coro: Awaitable[T], default: T) -> T:
        """Await *coro*; any unexpected error is logged and becomes *default*."""
        try:
            return await coro
        except Exception:
            logger.exception("%s failed; continuing without it", label)
            return default

    async def discover_roles(self, subject: str) -> PipelineRunResult:
        """Run the full escalation ladder for *subject*.

        Never raises. The returned result always holds between one and
        ``max_final_roles`` roles.
        """
        subject = " ".join((subject or "").split())
        cost = CostMeter(budget=self._config.cost_budget)
        run = _RunState(subject=subject)
        try:
            tier = await self._run(run, cost)
        except Exception:
            logger.exception("Discovery for %r aborted; using generic fallback", subject)
            run.roles = generic_fallback_roles(subject)
            run.transitions.append("error")
            tier = PipelineTier.GENERIC_FALLBACK

        if not run.roles:
            # unreachable through the ladder; kept so callers never get []
            run.roles = generic_fallback_roles(subject)
            tier = PipelineTier.GENERIC_FALLBACK

        for role in run.roles:
            if not role.search_terms:
                role.search_terms = build_search_terms(subject, role)

        logger.info(
            "Discovery for %r finished in tier %s with %d roles (cost %.4f): %s",
            subject,
            tier.value,
            len(run.roles),
            cost.total,
            [r.label for r in run.roles],
        )
        return PipelineRunResult(
            subject=subject,
            roles=run.roles,
            tier=tier,
            cost=cost.total,
            red_flags=run.red_flags,
            rejected=run.rejected,
            known_for=run.known_for,
            transitions=run.transitions,
        )

    async def _run(self, run: _RunState, cost: CostMeter) -> PipelineTier:
        cfg = self._config
        t = cfg.thresholds
        subject = run.subject

        verifier = RoleVerifier(
            self._search,
            self._judge,
            cost_meter=cost,
            thresholds=t,
            query_delay=cfg.query_delay,
            batch_size=cfg.verify_batch_size,
            concurrency=cfg.verify_concurrency,
            batch_delay=cfg.batch_delay,
            lexicon=self._lexicon,
        )
        hail_mary = HailMarySearch(
            self._search,
            self._judge,
            cost_meter=cost,
            thresholds=t,
            query_delay=cfg.hail_mary_query_delay,
            character_query_delay=cfg.query_delay,
            lexicon=self._lexicon,
        )

        if not subject:
            logger.warning("Empty subject name; skipping discovery")
            run.roles = generic_fallback_roles(subject)
            run.transitions.append("empty_subject")
            return PipelineTier.GENERIC_FALLBACK

        # Encyclopedia article and primary credits are independent fetches
        run.sections, credits = await asyncio.gather(
            self._guarded(
                "Encyclopedia fetch",
                self._wikipedia.fetch_structured_sections(subject),
                ArticleSections(),
            ),
            self._guarded(
                "Primary credits fetch", fetch_credits(self._tmdb, subject), []
            ),
        )
        run.known_for = extract_known_for(
            run.sections.lead_text,
            subject,
            infobox=run.sections.infobox_known_for,
            lexicon=self._lexicon,
            limit=t.max_known_for,
        )
        logger.info("Known-for titles for %r: %s", subject, run.known_for)

        if credits:
            run.primary = filter_credits(
                credits,
                subject,
                run.known_for,
                max_results=cfg.max_primary_results,
                min_vote_count=t.min_vote_count,
                ratio=t.title_overlap_ratio,
                lexicon=self._lexicon,
            )
        snapshot = EscalationSnapshot(
            primary_count=len(run.primary),
            cross_validated=bool(run.primary)
            and cross_validate(run.primary, run.known_for, t.title_overlap_ratio),
        )

        sm = create_escalation_sm()
        state = PipelineTier.PRIMARY
        while state not in TERMINAL_TIERS:
            event = decide(state, snapshot, t)
            sm.send(event)
            new_state = PipelineTier(sm.current_state_value)
            run.transitions.append(f"{state.value}->{new_state.value}")
            logger.info("Escalation for %r: %s -> %s (%s)", subject, state.value, new_state.value, event)
            state = new_state
            await self._enter(state, run, snapshot, verifier, hail_mary)
        return state

    async def _enter(
        self,
        state: PipelineTier,
        run: _RunState,
        snapshot: EscalationSnapshot,
        verifier: RoleVerifier,
        hail_mary: HailMarySearch,
    ) -> None:
        """Do the work that belongs to *state* and update *snapshot*."""
        t = self._config.thresholds
        subject = run.subject

        if state is PipelineTier.VALIDATED:
            # cross-validated primary roles are trusted without verification
            run.confirmed = list(run.primary)

        elif state is PipelineTier.REJECTED:
            if run.primary:
                logger.warning(
                    "Discarding %d primary roles for %r: no overlap with known-for %s",
                    len(run.primary),
                    subject,
                    run.known_for,
                )
            run.pool = []

        elif state is PipelineTier.EXPANDED_SCRAPE:
            run.pool = merge_candidates(
                roles_from_known_for(run.known_for),
                roles_from_sections(run.sections, subject, self._lexicon),
            )
            snapshot.voice_signal = has_voice_signal(
                run.known_for, run.sections.lead_text, self._lexicon
            )

        elif state is PipelineTier.SPECIALTY_SOURCE:
            entries = await self._guarded(
                "Voice actor profile fetch", self._community.fetch_roles(subject), []
            )
            run.pool = merge_candidates(
                run.pool, roles_from_community(entries, subject, self._lexicon)
            )

        elif state is PipelineTier.VERIFICATION:
            candidates = filter_valid_titles(
                remove_duplicate_roles(run.pool), subject, self._lexicon
            )[: t.max_titles_to_verify]
            verified, rejected = await verifier.verify_many(subject, candidates)
            run.confirmed = verified
            run.rejected.extend(rejected)
            run.red_flags = detect_red_flags(verified, rejected, t)
            snapshot.confirmed_count = len(run.confirmed)
            snapshot.trigger_emergency = run.red_flags.trigger_emergency

        elif state is PipelineTier.HAIL_MARY:
            mined = await self._guarded("Hail-mary search", hail_mary.mine_titles(subject), [])
            emergency: list[CandidateRole] = []
            if snapshot.trigger_emergency:
                emergency = await self._guarded(
                    "Emergency recovery", hail_mary.emergency_recovery(subject), []
                )
            seen = {normalize(r.title) for r in run.confirmed + run.rejected}
            pool = filter_valid_titles(
                remove_duplicate_roles(emergency + mined), subject, self._lexicon
            )
            run.hail_pool = [r for r in pool if normalize(r.title) not in seen]

        elif state is PipelineTier.HAIL_MARY_VERIFICATION:
            strict = [r for r in run.hail_pool if r.source_tag is not SourceTag.EMERGENCY_RECOVERY]
            lenient = [r for r in run.hail_pool if r.source_tag is SourceTag.EMERGENCY_RECOVERY]
            verified_strict, rejected_strict = await verifier.verify_many(subject, strict)
            verified_lenient, rejected_lenient = await verifier.verify_many(
                subject, lenient, lenient=True
            )
            new_verified = verified_strict + verified_lenient
            new_rejected = rejected_strict + rejected_lenient
            run.rejected.extend(new_rejected)
            run.confirmed = (run.confirmed + new_verified)[: t.max_hail_mary_roles]
            if new_verified or new_rejected:
                run.red_flags = detect_red_flags(new_verified, new_rejected, t)
            snapshot.confirmed_count = len(run.confirmed)

        elif state is PipelineTier.DONE:
            run.roles = deduplicate(
                run.confirmed,
                thresholds=t,
                limit=t.max_final_roles,
                lexicon=self._lexicon,
            )

        elif state is PipelineTier.GENERIC_FALLBACK:
            logger.warning("No verifiable roles for %r; using generic placeholders", subject)
            run.roles = generic_fallback_roles(subject)


async def discover_roles(subject: str, config: DiscoveryConfig | None = None) -> PipelineRunResult:
    """Convenience wrapper: build an orchestrator, run once, close clients."""
    async with RoleDiscoveryOrchestrator(config) as orchestrator:
        return await orchestrator.discover_roles(subject)


def discover_roles_sync(subject: str, config: DiscoveryConfig | None = None) -> PipelineRunResult:
    return asyncio.run(discover_roles(subject, config))
