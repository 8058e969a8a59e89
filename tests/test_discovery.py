"""Tests for known-for extraction, the primary source filter, the fallback
candidate pools and hail-mary title mining."""

from __future__ import annotations

import pytest

from conftest import (
    ESCALATION_LEAD,
    SUBJECT,
    VALIDATED_LEAD,
    blog_hit,
    make_judge,
    make_search,
    make_tmdb,
    make_wikipedia,
)
from rolescout.config import Thresholds
from rolescout.discovery.expanded import (
    filter_valid_titles,
    has_voice_signal,
    merge_candidates,
    roles_from_community,
    roles_from_known_for,
    roles_from_sections,
)
from rolescout.discovery.hail_mary import HailMarySearch, mine_titles_from_hits, voice_first
from rolescout.discovery.known_for import KnownForExtractor, extract_known_for
from rolescout.discovery.primary import (
    cross_validate,
    determine_medium,
    fetch_credits,
    fetch_primary,
    filter_credits,
    is_talk_show_or_guest,
)
from rolescout.models import (
    ArticleSections,
    CandidateRole,
    Medium,
    RawCredit,
    SearchHit,
    SectionEntry,
    SourceTag,
)
from rolescout.verification.verifier import CostMeter


class TestKnownFor:
    """Tests for extract_known_for and KnownForExtractor."""

    def test_role_in_title(self):
        assert extract_known_for(VALIDATED_LEAD, SUBJECT) == ["Midnight City"]

    def test_franchise_phrase(self):
        text = "Jane Doe is best known for the Starship Voyager franchise."
        assert extract_known_for(text, SUBJECT) == ["Starship Voyager"]

    def test_infobox_entries_filtered(self):
        titles = extract_known_for("", SUBJECT, infobox=["Harbor Lights", "American actress"])
        assert titles == ["Harbor Lights"]

    def test_duplicates_collapse(self):
        titles = extract_known_for(VALIDATED_LEAD, SUBJECT, infobox=["Midnight City"])
        assert titles == ["Midnight City"]

    def test_limit(self):
        infobox = ["Harbor Lights", "Northern Star", "Quiet Hours", "Robo Rangers", "Sky Pirates", "Garden Gnomes"]
        assert len(extract_known_for("", SUBJECT, infobox=infobox, limit=5)) == 5

    def test_no_anchor_no_titles(self):
        assert extract_known_for("Jane Doe is a Canadian actress.", SUBJECT) == []

    async def test_extractor_uses_article_text(self):
        wikipedia = make_wikipedia(ArticleSections(lead_text=ESCALATION_LEAD))
        extractor = KnownForExtractor(wikipedia)
        assert await extractor.extract(SUBJECT) == ["Starship Voyager"]

    async def test_extractor_empty_article(self):
        extractor = KnownForExtractor(make_wikipedia())
        assert await extractor.extract(SUBJECT) == []


class TestPrimaryFilter:
    """Tests for filter_credits and cross_validate."""

    def test_guest_credit_dropped(self, lexicon):
        credit = RawCredit(title="Unrelated Sitcom", character="Self", media_type="tv", vote_count=900)
        assert is_talk_show_or_guest(credit, lexicon)
        assert filter_credits([credit], SUBJECT, ["Starship Voyager"], lexicon=lexicon) == []

    def test_talk_show_dropped_but_acting_kept(self, validated_credits, lexicon):
        roles = filter_credits(validated_credits, SUBJECT, ["Midnight City"], lexicon=lexicon)
        titles = [r.title for r in roles]
        assert titles == ["Midnight City", "Harbor Lights"]
        assert roles[0].is_known_for
        assert roles[0].character == "Captain Zap"
        assert roles[0].source_tag is SourceTag.PRIMARY_SOURCE

    def test_documentary_about_subject_dropped(self, lexicon):
        credit = RawCredit(
            title="Being Jane Doe",
            character="Narrator",
            media_type="movie",
            vote_count=200,
            genre_ids=(99,),
        )
        assert filter_credits([credit], SUBJECT, [], lexicon=lexicon) == []

    def test_low_votes_without_character_dropped(self, lexicon):
        credit = RawCredit(title="Obscure Short", character=None, vote_count=3)
        assert filter_credits([credit], SUBJECT, [], lexicon=lexicon) == []

    def test_sorted_by_votes_and_capped(self, lexicon):
        credits = [
            RawCredit(title=f"Feature {i}", character=f"Hero {chr(65 + i)}", vote_count=100 + i)
            for i in range(20)
        ]
        roles = filter_credits(credits, SUBJECT, [], max_results=15, lexicon=lexicon)
        assert len(roles) == 15
        assert roles[0].vote_count == 119

    def test_repeat_credits_collapse(self, lexicon):
        credits = [
            RawCredit(title="Midnight City", character="Captain Zap", media_type="tv", vote_count=500),
            RawCredit(title="Midnight City", character="Captain Zap", media_type="tv", vote_count=500),
        ]
        assert len(filter_credits(credits, SUBJECT, [], lexicon=lexicon)) == 1

    def test_voice_credit_medium(self, lexicon):
        credit = RawCredit(title="Robo Rangers", character="Bolt (voice)", media_type="tv", genre_ids=(16,))
        assert determine_medium(credit, lexicon) is Medium.VOICE_CARTOON

    def test_cross_validation_fails_for_wrong_person(self):
        pool = [CandidateRole(title="Unrelated Sitcom", character="Bob Smith")]
        assert not cross_validate(pool, ["Starship Voyager"])

    def test_cross_validation_passes_on_title(self):
        pool = [CandidateRole(title="Starship Voyager: The Series", character="Ada")]
        assert cross_validate(pool, ["Starship Voyager"])

    def test_cross_validation_passes_on_character(self):
        pool = [CandidateRole(title="Some Movie", character="Captain Zap")]
        assert cross_validate(pool, ["Captain Zap Adventures"])

    def test_cross_validation_trivially_true_without_known_for(self):
        assert cross_validate([CandidateRole(title="Anything")], [])

    async def test_fetch_credits_unknown_person(self):
        tmdb = make_tmdb(None)
        assert await fetch_credits(tmdb, SUBJECT) == []
        tmdb.get_combined_credits.assert_not_called()

    async def test_fetch_primary(self, validated_credits, lexicon):
        tmdb = make_tmdb(validated_credits)
        pool = await fetch_primary(tmdb, SUBJECT, ["Midnight City"], lexicon=lexicon)
        assert [r.title for r in pool] == ["Midnight City", "Harbor Lights"]
        assert pool[0].is_known_for
        tmdb.get_combined_credits.assert_awaited_once_with(42)

    async def test_wrong_person_pool_fails_cross_validation(self, lexicon):
        tmdb = make_tmdb([RawCredit(title="Unrelated Sitcom", character="Self", media_type="tv", vote_count=900)])
        pool = await fetch_primary(tmdb, SUBJECT, ["Starship Voyager"], lexicon=lexicon)
        assert not pool
        assert not cross_validate(
            [CandidateRole(title="Unrelated Sitcom", character="Bob Smith")], ["Starship Voyager"]
        )


class TestExpandedPools:
    """Tests for the fallback candidate pools."""

    def test_known_for_roles(self):
        roles = roles_from_known_for(["Starship Voyager"])
        assert roles[0].is_known_for
        assert roles[0].source_tag is SourceTag.KNOWN_FOR

    def test_sections_roles(self, escalation_sections, lexicon):
        roles = roles_from_sections(escalation_sections, SUBJECT, lexicon)
        by_title = {r.title: r for r in roles}
        assert by_title["Harbor Lights"].character == "Detective Lane"
        assert by_title["Harbor Lights"].year == 2015
        assert all(r.source_tag is SourceTag.ENCYCLOPEDIA_EXPANDED for r in roles)

    def test_voice_heading_sets_medium(self, lexicon):
        sections = ArticleSections(
            sections=[("Voice roles", [SectionEntry(title="Robo Rangers", character="Bolt")])]
        )
        roles = roles_from_sections(sections, SUBJECT, lexicon)
        assert roles[0].medium is Medium.VOICE_CARTOON

    def test_community_roles(self, lexicon):
        roles = roles_from_community(["Robo Rangers: Bolt", "Anime Heroes (dub): Kira"], SUBJECT, lexicon)
        assert roles[0].title == "Robo Rangers"
        assert roles[0].character == "Bolt"
        assert roles[0].source_tag is SourceTag.SPECIALTY_COMMUNITY
        assert roles[1].medium is Medium.VOICE_ANIME_TV

    def test_voice_signal(self, lexicon):
        assert has_voice_signal([], "Jane Doe is a voice actress.", lexicon)
        assert not has_voice_signal(["Starship Voyager"], ESCALATION_LEAD, lexicon)

    def test_merge_keeps_first_and_fills_character(self):
        first = CandidateRole(title="Harbor Lights", source_tag=SourceTag.KNOWN_FOR, is_known_for=True)
        second = CandidateRole(title="harbor lights", character="Detective Lane")
        merged = merge_candidates([first], [second])
        assert merged == [first]
        assert first.character == "Detective Lane"
        assert first.is_known_for

    def test_filter_valid_titles(self, lexicon):
        roles = [
            CandidateRole(title="Northern Star"),
            CandidateRole(title="in Northern Star"),
            CandidateRole(title="Northern Star convention"),
        ]
        assert [r.title for r in filter_valid_titles(roles, SUBJECT, lexicon)] == ["Northern Star"]


class TestHailMary:
    """Tests for hail-mary mining and emergency recovery."""

    def test_mine_titles_from_hits(self, lexicon):
        hits = [
            SearchHit(title="Jane Doe voice roles", snippet='Jane Doe voices Bolt in "Robo Rangers" today.'),
            SearchHit(title="Fan page", snippet='"Robo Rangers" is great'),
        ]
        roles = mine_titles_from_hits(hits, SUBJECT, lexicon=lexicon)
        assert [r.title for r in roles] == ["Robo Rangers"]
        assert roles[0].source_tag is SourceTag.WEB_SEARCH
        assert roles[0].medium is Medium.VOICE_CARTOON

    def test_site_noise_rejected(self, lexicon):
        hits = [SearchHit(title="x", snippet='"Jane Doe Filmography"')]
        assert mine_titles_from_hits(hits, SUBJECT, lexicon=lexicon) == []

    def test_voice_first(self):
        roles = [
            CandidateRole(title="Harbor Lights", medium=Medium.LIVE_ACTION_MOVIE),
            CandidateRole(title="Robo Rangers", medium=Medium.VOICE_CARTOON),
        ]
        assert [r.title for r in voice_first(roles)] == ["Robo Rangers", "Harbor Lights"]

    async def test_unavailable_search_returns_nothing(self, lexicon):
        hail_mary = HailMarySearch(make_search(configured=False), lexicon=lexicon, query_delay=0)
        assert await hail_mary.mine_titles(SUBJECT) == []
        assert await hail_mary.emergency_recovery(SUBJECT) == []

    async def test_mine_titles_runs_queries_and_charges_cost(self, lexicon):
        search = make_search(
            lambda q: [blog_hit("Jane Doe voice roles", 'Jane Doe voices Bolt in "Robo Rangers" today.')]
        )
        cost = CostMeter()
        hail_mary = HailMarySearch(search, cost_meter=cost, query_delay=0, lexicon=lexicon)
        roles = await hail_mary.mine_titles(SUBJECT)
        assert [r.title for r in roles] == ["Robo Rangers"]
        assert search.search.await_count == len(lexicon.hail_mary_queries)
        assert cost.web_queries == len(lexicon.hail_mary_queries)

    async def test_budget_stops_queries(self, lexicon):
        search = make_search(lambda q: [])
        cost = CostMeter(budget=Thresholds().web_search_cost)
        hail_mary = HailMarySearch(search, cost_meter=cost, query_delay=0, lexicon=lexicon)
        await hail_mary.mine_titles(SUBJECT)
        assert search.search.await_count == 1

    async def test_emergency_recovery_tags_and_finds_character(self, lexicon):
        def handler(query: str):
            if "filmography" in query or "movies and tv shows" in query:
                return [blog_hit("Jane Doe", 'Credits include "Quiet Hours" and more.')]
            return []

        judge = make_judge("Nell")
        hail_mary = HailMarySearch(
            make_search(handler),
            judge,
            query_delay=0,
            character_query_delay=0,
            lexicon=lexicon,
        )
        roles = await hail_mary.emergency_recovery(SUBJECT)
        assert [r.title for r in roles] == ["Quiet Hours"]
        assert roles[0].source_tag is SourceTag.EMERGENCY_RECOVERY
        assert roles[0].character == "Nell"

    async def test_discover_character_from_search(self, lexicon):
        search = make_search(
            lambda q: [blog_hit("Quiet Hours cast", "Nell (played by Jane Doe) leads the story.")]
        )
        hail_mary = HailMarySearch(search, query_delay=0, lexicon=lexicon)
        assert await hail_mary.discover_character(SUBJECT, "Quiet Hours") == "Nell"

    async def test_discover_character_judge_unknown(self, lexicon):
        hail_mary = HailMarySearch(
            make_search(lambda q: []), make_judge("UNKNOWN"), query_delay=0, lexicon=lexicon
        )
        assert await hail_mary.discover_character(SUBJECT, "Quiet Hours") is None


@pytest.mark.parametrize(
    "lead, expected",
    [
        (VALIDATED_LEAD, ["Midnight City"]),
        (ESCALATION_LEAD, ["Starship Voyager"]),
    ],
)
def test_fixture_leads(lead, expected):
    assert extract_known_for(lead, SUBJECT) == expected
