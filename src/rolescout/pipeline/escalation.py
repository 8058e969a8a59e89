"""Escalation state machine for one discovery run.

Two parts:

- :class:`EscalationSM` declares the legal tier transitions. It is purely
  a validation tool: it holds no data and has no callbacks. An illegal
  event raises ``TransitionNotAllowed``.
- :func:`decide` is a pure function choosing the next event from the
  current state and an :class:`EscalationSnapshot` of the run so far.

``done`` and ``generic_fallback`` are final states: no transition leaves
them, and every other state has a path to one of them.
"""

from __future__ import annotations

from dataclasses import dataclass

from statemachine import State, StateMachine

from rolescout.config import Thresholds
from rolescout.models import PipelineTier


class EscalationSM(StateMachine):
    """Ten-state escalation ladder.

    States:
        primary                -- structured metadata source fetched.
        validated              -- primary pool passed cross-validation.
        rejected               -- primary pool empty or wrong person.
        expanded_scrape        -- known-for + encyclopedia filmography pool.
        specialty_source       -- voice-actor community pool added.
        verification           -- fallback pool verified.
        hail_mary              -- broad web mining (+ emergency recovery).
        hail_mary_verification -- hail-mary pool verified.
        done                   -- terminal, roles found.
        generic_fallback       -- terminal, placeholder roles.
    """

    primary = State("primary", initial=True, value="primary")
    validated = State("validated", value="validated")
    rejected = State("rejected", value="rejected")
    expanded_scrape = State("expanded_scrape", value="expanded_scrape")
    specialty_source = State("specialty_source", value="specialty_source")
    verification = State("verification", value="verification")
    hail_mary = State("hail_mary", value="hail_mary")
    hail_mary_verification = State("hail_mary_verification", value="hail_mary_verification")
    done = State("done", value="done", final=True)
    generic_fallback = State("generic_fallback", value="generic_fallback", final=True)

    accept_primary = primary.to(validated)
    reject_primary = primary.to(rejected)
    expand = rejected.to(expanded_scrape)
    scrape_specialty = expanded_scrape.to(specialty_source)
    verify = expanded_scrape.to(verification) | specialty_source.to(verification)
    escalate = verification.to(hail_mary)
    verify_hail_mary = hail_mary.to(hail_mary_verification)
    finish = (
        validated.to(done)
        | verification.to(done)
        | hail_mary_verification.to(done)
    )
    give_up = hail_mary_verification.to(generic_fallback)


TERMINAL_TIERS = frozenset({PipelineTier.DONE, PipelineTier.GENERIC_FALLBACK})


def create_escalation_sm(current_state: str = "primary") -> EscalationSM:
    """Create a state machine positioned at *current_state*."""
    return EscalationSM(start_value=current_state)


@dataclass
class EscalationSnapshot:
    """What the orchestrator knows when choosing the next transition."""

    primary_count: int = 0
    cross_validated: bool = False
    voice_signal: bool = False
    confirmed_count: int = 0
    trigger_emergency: bool = False


def decide(
    state: PipelineTier,
    snapshot: EscalationSnapshot,
    thresholds: Thresholds | None = None,
) -> str:
    """Return the event name to send from *state*.

    Raises:
        ValueError: If *state* is terminal.
    """
    t = thresholds or Thresholds()
    if state is PipelineTier.PRIMARY:
        if snapshot.primary_count > 0 and snapshot.cross_validated:
            return "accept_primary"
        return "reject_primary"
    elif state is PipelineTier.VALIDATED:
        return "finish"
    elif state is PipelineTier.REJECTED:
        return "expand"
    elif state is PipelineTier.EXPANDED_SCRAPE:
        return "scrape_specialty" if snapshot.voice_signal else "verify"
    elif state is PipelineTier.SPECIALTY_SOURCE:
        return "verify"
    elif state is PipelineTier.VERIFICATION:
        if snapshot.confirmed_count < t.min_confirmed_roles or snapshot.trigger_emergency:
            return "escalate"
        return "finish"
    elif state is PipelineTier.HAIL_MARY:
        return "verify_hail_mary"
    elif state is PipelineTier.HAIL_MARY_VERIFICATION:
        return "finish" if snapshot.confirmed_count > 0 else "give_up"
    raise ValueError(f"no transition out of terminal state {state.value!r}")
