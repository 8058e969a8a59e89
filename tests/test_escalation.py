"""Tests for the escalation state machine and the transition policy."""

from __future__ import annotations

import warnings

import pytest
from statemachine.exceptions import TransitionNotAllowed

from rolescout.models import PipelineTier
from rolescout.pipeline.escalation import (
    TERMINAL_TIERS,
    EscalationSnapshot,
    create_escalation_sm,
    decide,
)


class TestEscalationSM:
    """Tests for the declared tier transitions."""

    def test_initial_state(self):
        sm = create_escalation_sm()
        assert sm.current_state_value == "primary"

    def test_validated_path(self):
        sm = create_escalation_sm()
        sm.accept_primary()
        sm.finish()
        assert sm.current_state_value == "done"
        assert sm.states_map[sm.current_state_value].final

    def test_full_escalation_path(self):
        sm = create_escalation_sm()
        for event in (
            "reject_primary",
            "expand",
            "scrape_specialty",
            "verify",
            "escalate",
            "verify_hail_mary",
            "give_up",
        ):
            sm.send(event)
        assert sm.current_state_value == "generic_fallback"

    def test_expanded_scrape_can_skip_specialty(self):
        sm = create_escalation_sm("expanded_scrape")
        sm.verify()
        assert sm.current_state_value == "verification"

    def test_illegal_transition(self):
        sm = create_escalation_sm()
        with pytest.raises(TransitionNotAllowed):
            sm.finish()

    def test_no_way_back_from_validated(self):
        sm = create_escalation_sm("validated")
        with pytest.raises(TransitionNotAllowed):
            sm.expand()

    @pytest.mark.parametrize("state", ["done", "generic_fallback"])
    def test_terminal_states_are_final(self, state):
        sm = create_escalation_sm(state)
        assert sm.states_map[sm.current_state_value].final
        with pytest.raises(TransitionNotAllowed):
            sm.send("finish")

    def test_every_tier_is_a_state(self):
        sm = create_escalation_sm()
        values = {s.value for s in sm.states}
        assert values == {t.value for t in PipelineTier}
        assert {t.value for t in TERMINAL_TIERS} == {"done", "generic_fallback"}


class TestDecide:
    """Tests for the pure transition policy."""

    def test_primary_accepted_when_cross_validated(self):
        snapshot = EscalationSnapshot(primary_count=3, cross_validated=True)
        assert decide(PipelineTier.PRIMARY, snapshot) == "accept_primary"

    def test_primary_rejected_without_overlap(self):
        snapshot = EscalationSnapshot(primary_count=3, cross_validated=False)
        assert decide(PipelineTier.PRIMARY, snapshot) == "reject_primary"

    def test_primary_rejected_when_empty(self):
        assert decide(PipelineTier.PRIMARY, EscalationSnapshot()) == "reject_primary"

    def test_voice_signal_routes_to_specialty(self):
        assert decide(PipelineTier.EXPANDED_SCRAPE, EscalationSnapshot(voice_signal=True)) == "scrape_specialty"
        assert decide(PipelineTier.EXPANDED_SCRAPE, EscalationSnapshot()) == "verify"

    def test_verification_finishes_with_enough_roles(self):
        snapshot = EscalationSnapshot(confirmed_count=4)
        assert decide(PipelineTier.VERIFICATION, snapshot) == "finish"

    def test_verification_escalates_with_few_roles(self):
        snapshot = EscalationSnapshot(confirmed_count=3)
        assert decide(PipelineTier.VERIFICATION, snapshot) == "escalate"

    def test_red_flags_force_escalation(self):
        snapshot = EscalationSnapshot(confirmed_count=6, trigger_emergency=True)
        assert decide(PipelineTier.VERIFICATION, snapshot) == "escalate"

    def test_hail_mary_outcome(self):
        assert decide(PipelineTier.HAIL_MARY, EscalationSnapshot()) == "verify_hail_mary"
        assert decide(PipelineTier.HAIL_MARY_VERIFICATION, EscalationSnapshot(confirmed_count=1)) == "finish"
        assert decide(PipelineTier.HAIL_MARY_VERIFICATION, EscalationSnapshot()) == "give_up"

    @pytest.mark.parametrize("state", sorted(TERMINAL_TIERS, key=lambda t: t.value))
    def test_terminal_state_raises(self, state):
        with pytest.raises(ValueError):
            decide(state, EscalationSnapshot())

    def test_decisions_are_legal_events(self):
        snapshot = EscalationSnapshot(primary_count=0)
        sm = create_escalation_sm()
        state = PipelineTier.PRIMARY
        while state not in TERMINAL_TIERS:
            sm.send(decide(state, snapshot))
            state = PipelineTier(sm.current_state_value)
        assert state is PipelineTier.GENERIC_FALLBACK

    def test_decide_loop_emits_no_deprecation_warnings(self):
        snapshot = EscalationSnapshot(confirmed_count=4)
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            sm = create_escalation_sm("expanded_scrape")
            state = PipelineTier.EXPANDED_SCRAPE
            while state not in TERMINAL_TIERS:
                sm.send(decide(state, snapshot))
                state = PipelineTier(sm.current_state_value)
        assert state is PipelineTier.DONE
