"""Red-flag detection over one verification batch.

Looks at aggregate failure patterns in the verified/rejected split to spot
an upstream generator that is inventing roles for this subject.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from rolescout.config import Thresholds
from rolescout.models import (
    CandidateRole,
    RedFlag,
    RedFlagReport,
    RedFlagType,
    Severity,
    VerificationReason,
)
from rolescout.text.normalizer import normalize

logger = logging.getLogger(__name__)


def _code(role: CandidateRole) -> VerificationReason | None:
    return role.verification.code if role.verification else None


def detect_red_flags(
    verified: list[CandidateRole],
    rejected: list[CandidateRole],
    thresholds: Thresholds | None = None,
) -> RedFlagReport:
    """Analyse a verification outcome; pure, no I/O."""
    t = thresholds or Thresholds()
    total = len(verified) + len(rejected)
    success_rate = len(verified) / total if total else 1.0
    flags: list[RedFlag] = []

    fake_characters = [r for r in rejected if _code(r) is VerificationReason.NOT_THIS_CHARACTER]
    if len(fake_characters) >= t.fake_character_limit:
        flags.append(
            RedFlag(
                type=RedFlagType.HALLUCINATED_CHARACTER,
                severity=Severity.HIGH,
                description=(
                    f"{len(fake_characters)} roles name the right work but the wrong character"
                ),
            )
        )

    no_results = [r for r in rejected if _code(r) is VerificationReason.NO_SEARCH_RESULTS]
    if len(no_results) >= t.no_results_limit:
        flags.append(
            RedFlag(
                type=RedFlagType.HALLUCINATED_TITLE,
                severity=Severity.HIGH,
                description=f"{len(no_results)} roles returned no search results at all",
            )
        )
    elif total <= t.small_filmography_size and len(rejected) >= 2:
        flags.append(
            RedFlag(
                type=RedFlagType.HALLUCINATED_TITLE,
                severity=Severity.HIGH,
                description=(
                    f"{len(rejected)} of only {total} candidate roles failed verification"
                ),
            )
        )

    if total >= t.min_attempts_for_rate and success_rate < t.min_success_rate:
        flags.append(
            RedFlag(
                type=RedFlagType.LOW_SUCCESS_RATE,
                severity=Severity.HIGH,
                description=f"Only {success_rate:.0%} of {total} roles verified",
            )
        )

    characters_by_title: dict[str, set[str]] = defaultdict(set)
    for role in rejected:
        characters_by_title[normalize(role.title)].add(normalize(role.character or ""))
    repeated = [
        title
        for title, characters in characters_by_title.items()
        if len(characters) >= t.repeated_title_limit
    ]
    if repeated:
        flags.append(
            RedFlag(
                type=RedFlagType.REPEATED_FAKE_TITLES,
                severity=Severity.HIGH,
                description=(
                    f"Rejected titles proposed with several different characters: "
                    f"{', '.join(sorted(repeated))}"
                ),
            )
        )

    trigger = len(flags) >= t.emergency_flag_count or any(
        f.severity is Severity.HIGH for f in flags
    )
    report = RedFlagReport(
        has_red_flags=bool(flags),
        trigger_emergency=trigger,
        flags=flags,
        total=total,
        verified=len(verified),
        rejected=len(rejected),
        success_rate=success_rate,
    )
    if flags:
        logger.warning(
            "Red flags (%d, emergency=%s): %s",
            len(flags),
            trigger,
            "; ".join(f.description for f in flags),
        )
    return report
