"""Parser for judge answers of the form ``CONFIDENCE|YES/NO|REASON``.

Parsing is strict-first with a loose fallback:

  Phase 1: first line containing a ``|`` split into three fields.
  Phase 2: keyword search anywhere in the text (``HIGH ... YES``).
  Phase 3: nothing recognisable -> ``UNPARSEABLE``.

The result is a tagged :class:`JudgeVerdict`; the verifier decides what
each kind means.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rolescout.models import Confidence

_LOOSE = re.compile(r"\b(HIGH|MEDIUM|LOW)\b.*?\b(YES|NO)\b", re.IGNORECASE | re.DOTALL)
_ANSWER_ONLY = re.compile(r"^\s*(YES|NO)\b", re.IGNORECASE)


class VerdictKind(str, Enum):
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    UNCERTAIN = "uncertain"
    UNPARSEABLE = "unparseable"


class JudgeVerdict(BaseModel):
    """A parsed judge answer."""

    kind: VerdictKind
    confidence: Confidence = Confidence.UNKNOWN
    reason: str = Field(default="", max_length=200)
    raw: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: object) -> object:
        """Map free-form confidence words onto :class:`Confidence`."""
        if isinstance(v, str):
            upper = v.strip().upper()
            if upper in Confidence.__members__:
                return Confidence[upper]
            return Confidence.UNKNOWN
        return v

    @field_validator("reason", mode="before")
    @classmethod
    def trim_reason(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()[:200]
        return v


def _kind_for(answer: str) -> VerdictKind:
    m = _ANSWER_ONLY.match(answer)
    if m is None:
        return VerdictKind.UNCERTAIN
    if m.group(1).upper() == "YES":
        return VerdictKind.CONFIRMED
    return VerdictKind.REJECTED


def parse_verdict(text: str | None) -> JudgeVerdict:
    raw = (text or "").strip()
    if not raw:
        return JudgeVerdict(kind=VerdictKind.UNPARSEABLE, raw=raw)

    # Phase 1: pipe-delimited line
    for line in raw.splitlines():
        if "|" not in line:
            continue
        parts = [p.strip().strip("*`\"'") for p in line.split("|")]
        if len(parts) < 2:
            continue
        confidence, answer = parts[0], parts[1]
        reason = "|".join(parts[2:]).strip()
        kind = _kind_for(answer)
        if kind is VerdictKind.UNCERTAIN and _kind_for(confidence) is not VerdictKind.UNCERTAIN:
            # tolerate swapped fields: "YES|HIGH|..."
            confidence, answer = answer, confidence
            kind = _kind_for(answer)
        return JudgeVerdict(kind=kind, confidence=confidence, reason=reason, raw=raw)

    # Phase 2: keywords anywhere
    m = _LOOSE.search(raw)
    if m:
        return JudgeVerdict(
            kind=_kind_for(m.group(2)),
            confidence=m.group(1),
            reason=raw[m.end():].strip(" |:-.\n"),
            raw=raw,
        )
    m = _ANSWER_ONLY.match(raw)
    if m:
        return JudgeVerdict(
            kind=_kind_for(m.group(1)),
            confidence=Confidence.LOW,
            reason=raw[m.end():].strip(" |:-.\n"),
            raw=raw,
        )

    # Phase 3
    return JudgeVerdict(kind=VerdictKind.UNPARSEABLE, raw=raw)


def parse_character_answer(text: str | None) -> str | None:
    """Character name from a :data:`CHARACTER_TEMPLATE` answer, or None."""
    if not text:
        return None
    first = text.strip().splitlines()[0].strip().strip(".\"'*`")
    if not first or first.upper().startswith("UNKNOWN"):
        return None
    first = re.sub(r"^(?:character|answer)\s*:\s*", "", first, flags=re.IGNORECASE)
    return first or None
