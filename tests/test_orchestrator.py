"""End-to-end tests for the escalation orchestrator with fake sources."""

from __future__ import annotations

import json

import pytest

from conftest import (
    ESCALATION_LEAD,
    SUBJECT,
    VALIDATED_LEAD,
    blog_hit,
    imdb_hit,
    make_community,
    make_judge,
    make_search,
    make_tmdb,
    make_wikipedia,
)
from rolescout.models import (
    ArticleSections,
    CandidateRole,
    PipelineTier,
    RawCredit,
    SectionEntry,
    SourceTag,
)
from rolescout.pipeline.orchestrator import (
    RoleDiscoveryOrchestrator,
    build_search_terms,
    generic_fallback_roles,
)

FILMOGRAPHY = {
    "Starship Voyager": None,
    "Harbor Lights": "Detective Lane",
    "Northern Star": "Ada",
    "Quiet Hours": "Nell",
    "Robo Rangers": "Bolt",
    "Garden Gnomes": "Pip",
    "Sky Pirates": "Captain Hook",
}


def confirming(fallback=None):
    """Search handler confirming every FILMOGRAPHY title named in a query."""

    def handler(query: str):
        for title, character in FILMOGRAPHY.items():
            if title in query:
                snippet = f"Jane Doe stars in {title}."
                if character:
                    snippet += f" Jane Doe as {character} in {title}."
                return [imdb_hit(f"{title} - IMDb", snippet)]
        return fallback(query) if fallback else []

    return handler


def orchestrator(fast_config, **sources) -> RoleDiscoveryOrchestrator:
    sources.setdefault("tmdb", make_tmdb(None))
    sources.setdefault("wikipedia", make_wikipedia())
    sources.setdefault("community", make_community())
    sources.setdefault("search", make_search(configured=False))
    sources.setdefault("judge", make_judge(configured=False))
    return RoleDiscoveryOrchestrator(fast_config, **sources)


class TestValidatedPath:
    """Primary credits that match the known-for list are returned directly."""

    async def test_validated_primary(self, fast_config, validated_credits, lexicon):
        search = make_search()
        orch = orchestrator(
            fast_config,
            tmdb=make_tmdb(validated_credits),
            wikipedia=make_wikipedia(ArticleSections(lead_text=VALIDATED_LEAD)),
            search=search,
            lexicon=lexicon,
        )
        result = await orch.discover_roles(SUBJECT)

        assert result.tier is PipelineTier.DONE
        assert result.transitions == ["primary->validated", "validated->done"]
        assert [r.title for r in result.roles] == ["Midnight City", "Harbor Lights"]
        assert result.roles[0].is_known_for
        assert result.known_for == ["Midnight City"]
        assert result.cost == 0.0
        search.search.assert_not_called()

    async def test_search_terms_filled(self, fast_config, validated_credits, lexicon):
        orch = orchestrator(
            fast_config,
            tmdb=make_tmdb(validated_credits),
            wikipedia=make_wikipedia(ArticleSections(lead_text=VALIDATED_LEAD)),
            lexicon=lexicon,
        )
        result = await orch.discover_roles(SUBJECT)
        assert result.roles[0].search_terms[0] == "Jane Doe Captain Zap Midnight City"
        json.dumps(result.to_dict())


class TestEscalationPath:
    """Wrong-person primary credits fall through to the expanded scrape."""

    @pytest.fixture
    def sources(self, escalation_sections):
        return {
            "tmdb": make_tmdb([RawCredit(title="Unrelated Sitcom", character="Bob Smith", media_type="tv", vote_count=900)]),
            "wikipedia": make_wikipedia(escalation_sections),
            "search": make_search(confirming()),
        }

    async def test_expanded_scrape_verified(self, fast_config, sources, lexicon):
        result = await orchestrator(fast_config, lexicon=lexicon, **sources).discover_roles(SUBJECT)

        assert result.tier is PipelineTier.DONE
        assert result.transitions == [
            "primary->rejected",
            "rejected->expanded_scrape",
            "expanded_scrape->verification",
            "verification->done",
        ]
        titles = [r.title for r in result.roles]
        assert titles[0] == "Starship Voyager"
        assert set(titles) == {"Starship Voyager", "Harbor Lights", "Northern Star", "Quiet Hours"}
        assert "Unrelated Sitcom" not in titles
        assert result.cost == pytest.approx(4 * fast_config.thresholds.web_search_cost)
        assert not result.red_flags.has_red_flags

    async def test_idempotent(self, fast_config, sources, lexicon):
        orch = orchestrator(fast_config, lexicon=lexicon, **sources)
        first = await orch.discover_roles(SUBJECT)
        second = await orch.discover_roles(SUBJECT)
        assert [r.title for r in first.roles] == [r.title for r in second.roles]
        assert first.tier is second.tier

    async def test_voice_signal_adds_specialty_source(self, fast_config, lexicon):
        sections = ArticleSections(
            lead_text="Jane Doe is a Canadian voice actress.",
            sections=[
                (
                    "Filmography",
                    [
                        SectionEntry(title="Harbor Lights", character="Detective Lane"),
                        SectionEntry(title="Northern Star", character="Ada"),
                    ],
                )
            ],
        )
        community = make_community(["Garden Gnomes: Pip", "Sky Pirates: Captain Hook"])
        orch = orchestrator(
            fast_config,
            wikipedia=make_wikipedia(sections),
            community=community,
            search=make_search(confirming()),
            lexicon=lexicon,
        )
        result = await orch.discover_roles(SUBJECT)

        assert "expanded_scrape->specialty_source" in result.transitions
        assert result.tier is PipelineTier.DONE
        assert {r.title for r in result.roles} == {"Harbor Lights", "Northern Star", "Garden Gnomes", "Sky Pirates"}
        community.fetch_roles.assert_awaited_once_with(SUBJECT)


class TestHailMaryPath:
    """Too few verified roles escalate to broad web mining."""

    async def test_hail_mary_adds_mined_title(self, fast_config, lexicon):
        def mined(query: str):
            return [blog_hit("Jane Doe voice roles", 'Jane Doe voices Bolt in "Robo Rangers" today.')]

        search = make_search(confirming(mined))
        orch = orchestrator(
            fast_config,
            wikipedia=make_wikipedia(ArticleSections(lead_text=ESCALATION_LEAD)),
            search=search,
            lexicon=lexicon,
        )
        result = await orch.discover_roles(SUBJECT)

        assert result.tier is PipelineTier.DONE
        assert "verification->hail_mary" in result.transitions
        assert "hail_mary->hail_mary_verification" in result.transitions
        assert result.transitions[-1] == "hail_mary_verification->done"
        assert [r.title for r in result.roles] == ["Starship Voyager", "Robo Rangers"]
        assert result.roles[1].source_tag is SourceTag.WEB_SEARCH


class TestGenericFallback:
    """Nothing verifiable ends in placeholder roles, never an empty list."""

    async def test_nothing_found(self, fast_config, lexicon):
        result = await orchestrator(fast_config, lexicon=lexicon).discover_roles(SUBJECT)
        assert result.tier is PipelineTier.GENERIC_FALLBACK
        assert result.transitions[-1] == "hail_mary_verification->generic_fallback"
        assert len(result.roles) == 3
        assert all(r.source_tag is SourceTag.GENERIC_FALLBACK for r in result.roles)
        assert all(r.search_terms for r in result.roles)

    async def test_empty_subject(self, fast_config, lexicon):
        tmdb = make_tmdb(None)
        result = await orchestrator(fast_config, tmdb=tmdb, lexicon=lexicon).discover_roles("   ")
        assert result.tier is PipelineTier.GENERIC_FALLBACK
        assert result.roles
        tmdb.search_person.assert_not_called()

    async def test_source_exceptions_degrade(self, fast_config, lexicon):
        tmdb = make_tmdb([])
        tmdb.search_person.side_effect = RuntimeError("provider down")
        wikipedia = make_wikipedia()
        wikipedia.fetch_structured_sections.side_effect = RuntimeError("encyclopedia down")
        result = await orchestrator(fast_config, tmdb=tmdb, wikipedia=wikipedia, lexicon=lexicon).discover_roles(
            SUBJECT
        )
        assert result.tier is PipelineTier.GENERIC_FALLBACK
        assert result.roles

    async def test_unexpected_error_mid_run(self, fast_config, escalation_sections, lexicon):
        def broken(query: str):
            raise RuntimeError("unexpected")

        orch = orchestrator(
            fast_config,
            wikipedia=make_wikipedia(escalation_sections),
            search=make_search(broken),
            lexicon=lexicon,
        )
        result = await orch.discover_roles(SUBJECT)
        assert result.tier is PipelineTier.GENERIC_FALLBACK
        assert result.transitions[-1] == "error"
        assert len(result.roles) == 3


class TestLifecycle:
    async def test_context_manager_closes_sources(self, fast_config, lexicon):
        sources = {
            "tmdb": make_tmdb(None),
            "wikipedia": make_wikipedia(),
            "community": make_community(),
            "search": make_search(),
        }
        async with RoleDiscoveryOrchestrator(fast_config, judge=make_judge(configured=False), lexicon=lexicon, **sources):
            pass
        for source in sources.values():
            source.close.assert_awaited_once()


class TestHelpers:
    def test_generic_fallback_roles(self):
        roles = generic_fallback_roles(SUBJECT)
        assert [r.title.split(" — ")[0] for r in roles] == [SUBJECT] * 3

    def test_build_search_terms(self):
        role = CandidateRole(title="Robo Rangers", character="Bolt")
        assert build_search_terms(SUBJECT, role) == [
            "Jane Doe Bolt Robo Rangers",
            "Bolt Robo Rangers",
            "Jane Doe Robo Rangers",
        ]
        assert build_search_terms(SUBJECT, CandidateRole(title="Robo Rangers")) == ["Jane Doe Robo Rangers"]
