"""Evidence analysis over web search hits for one candidate role.

Pure functions: :func:`summarize_evidence` scans accumulated hits with the
named evidence rules below, :func:`decisive_result` answers whether the
evidence so far already settles the role, and :func:`final_result` turns
the summary into a verdict once every query has run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from rolescout.lexicon import Lexicon, load_lexicon
from rolescout.models import Confidence, SearchHit, VerificationReason, VerificationResult
from rolescout.text.normalizer import contains_phrase, is_character_name, normalize
from rolescout.text.rules import CHARACTER_RULES, apply_rules, literal

_ROLE_WORDS = r"(?:plays?|played|playing|portrays?|portrayed|voices?|voiced|stars?|starring|as|cast|role)"
_ACTOR = r"(?P<actor>[A-Z][\w.'’\-]*(?:\s+[A-Z][\w.'’\-]*){0,3})"


@dataclass(frozen=True)
class EvidenceRule:
    """Named pattern over a single hit; templates use {subject} {character} {title}."""

    name: str
    template: str

    def search(self, text: str, subject: str, character: str = "", title: str = "") -> re.Match[str] | None:
        pattern = self.template
        for key, value in (("subject", subject), ("character", character), ("title", title)):
            token = "{" + key + "}"
            if token in pattern:
                if not value:
                    return None
                pattern = pattern.replace(token, literal(value))
        return re.search(pattern, text, re.DOTALL)


POSITIVE_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        "subject_plays_character",
        r"{subject}[^.]{0,80}?\b(?i:" + _ROLE_WORDS + r")\b[^.]{0,40}?{character}",
    ),
    EvidenceRule(
        "character_played_by_subject",
        r"{character}[^.]{0,80}?\b(?i:played|portrayed|voiced)\s+(?i:by)\s+{subject}",
    ),
    EvidenceRule("cast_listing", r"{subject}\s*(?:\.\.\.|…|-|–|:)\s*{character}"),
    EvidenceRule("character_parenthetical", r"{character}\s*\({subject}\)"),
    EvidenceRule("subject_then_character", r"{subject}.*{character}"),
    EvidenceRule("character_then_subject", r"{character}.*{subject}"),
)

# Positive evidence for roles that have no character yet.
TITLE_ONLY_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        "subject_role_in_title",
        r"{subject}[^.]{0,80}?\b(?i:" + _ROLE_WORDS + r")\b[^.]{0,80}?{title}",
    ),
    EvidenceRule(
        "title_role_subject",
        r"{title}[^.]{0,80}?\b(?i:" + _ROLE_WORDS + r")\b[^.]{0,80}?{subject}",
    ),
)

NEGATIVE_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule(
        "character_played_by_other",
        r"{character}[,\s]+(?i:is\s+|was\s+)?(?i:played|portrayed|voiced)\s+(?i:by)\s+" + _ACTOR,
    ),
)


def is_authoritative(link: str, lexicon: Lexicon | None = None) -> bool:
    lex = lexicon or load_lexicon()
    host = urlparse(link).netloc.lower() if link else ""
    return any(host == d or host.endswith("." + d) for d in lex.authoritative_domains)


@dataclass
class EvidenceSummary:
    total_hits: int = 0
    positive: bool = False
    positive_authoritative: bool = False
    positive_rule: str | None = None
    negative_authoritative: bool = False
    negative_actor: str | None = None
    subject_title_cooccur: bool = False
    character_seen: bool = False
    discovered_character: str | None = None


def _is_multi_actor(character: str, lexicon: Lexicon) -> bool:
    lower = normalize(character)
    for name, aliases in lexicon.multi_actor_characters.items():
        if contains_phrase(lower, name) or any(lower == normalize(a) for a in aliases):
            return True
    return False


def summarize_evidence(
    hits: list[SearchHit],
    subject: str,
    title: str,
    character: str | None,
    lexicon: Lexicon | None = None,
) -> EvidenceSummary:
    """Scan *hits* for positive, negative and co-occurrence evidence."""
    lex = lexicon or load_lexicon()
    summary = EvidenceSummary(total_hits=len(hits))
    subject_norm = normalize(subject)
    title_norm = normalize(title)
    char_norm = normalize(character) if character else ""
    needs_title = bool(character) and _is_multi_actor(character, lex)

    for hit in hits:
        text = hit.text
        text_norm = normalize(text)
        has_subject = subject_norm in text_norm
        has_title = bool(title_norm) and title_norm in text_norm
        authoritative = is_authoritative(hit.link, lex)

        if has_subject and has_title:
            summary.subject_title_cooccur = True
        if char_norm and contains_phrase(text_norm, char_norm):
            summary.character_seen = True

        if character:
            if needs_title and not has_title:
                positive_rule = None
            else:
                positive_rule = next(
                    (r.name for r in POSITIVE_RULES if r.search(text, subject, character, title)),
                    None,
                )
            if positive_rule:
                summary.positive = True
                summary.positive_rule = summary.positive_rule or positive_rule
                if authoritative:
                    summary.positive_authoritative = True
                continue

            for rule in NEGATIVE_RULES:
                m = rule.search(text, subject, character, title)
                if m is None:
                    continue
                actor = m.group("actor")
                if normalize(actor) and normalize(actor) not in subject_norm and subject_norm not in normalize(actor):
                    summary.negative_actor = summary.negative_actor or actor
                    if authoritative:
                        summary.negative_authoritative = True
        else:
            positive_rule = next(
                (r.name for r in TITLE_ONLY_RULES if r.search(text, subject, "", title)),
                None,
            )
            if positive_rule:
                summary.positive = True
                summary.positive_rule = summary.positive_rule or positive_rule
                if authoritative:
                    summary.positive_authoritative = True
            if summary.discovered_character is None and has_subject:
                summary.discovered_character = discover_character(text, subject, title, lex)

    return summary


def discover_character(text: str, subject: str, title: str, lexicon: Lexicon | None = None) -> str | None:
    """First plausible character name the subject is credited with in *text*."""
    for match in apply_rules(CHARACTER_RULES, text, subject=subject, title=title):
        if match.character and is_character_name(match.character, subject, title, lexicon):
            return match.character
    return None


def decisive_result(summary: EvidenceSummary) -> VerificationResult | None:
    """Verdict if the evidence so far settles the role, else None."""
    if summary.positive_authoritative:
        return VerificationResult(
            is_valid=True,
            confidence=Confidence.HIGH,
            reason="Confirmed by authoritative source",
            code=VerificationReason.CONFIRMED_AUTHORITATIVE,
            discovered_character=summary.discovered_character,
        )
    if summary.negative_authoritative:
        return VerificationResult(
            is_valid=False,
            confidence=Confidence.HIGH,
            reason=f"Contradicted by authoritative source (credited to {summary.negative_actor})",
            code=VerificationReason.CONTRADICTED,
        )
    if summary.positive:
        return VerificationResult(
            is_valid=True,
            confidence=Confidence.MEDIUM,
            reason="Confirmed by web search",
            code=VerificationReason.CONFIRMED_WEB,
            discovered_character=summary.discovered_character,
        )
    return None


def final_result(
    summary: EvidenceSummary,
    has_character: bool,
    lenient: bool = False,
) -> VerificationResult:
    """Verdict once all queries have run and nothing was decisive.

    Lenient mode (emergency-recovery roles) accepts bare subject/title
    co-occurrence and treats an empty result set as weak support.
    """
    decided = decisive_result(summary)
    if decided is not None:
        return decided

    if summary.total_hits == 0:
        if lenient:
            return VerificationResult(
                is_valid=True,
                confidence=Confidence.LOW,
                reason="No search results; kept as emergency recovery candidate",
                code=VerificationReason.LENIENT_NO_RESULTS,
            )
        return VerificationResult(
            is_valid=False,
            confidence=Confidence.MEDIUM,
            reason="No search results found",
            code=VerificationReason.NO_SEARCH_RESULTS,
        )

    if lenient and summary.subject_title_cooccur:
        return VerificationResult(
            is_valid=True,
            confidence=Confidence.MEDIUM,
            reason="Subject and title appear together in search results",
            code=VerificationReason.CONFIRMED_WEB,
            discovered_character=summary.discovered_character,
        )

    if has_character and summary.subject_title_cooccur and not summary.character_seen:
        return VerificationResult(
            is_valid=False,
            confidence=Confidence.MEDIUM,
            reason="Celebrity in title but not this character",
            code=VerificationReason.NOT_THIS_CHARACTER,
        )

    return VerificationResult(
        is_valid=True,
        confidence=Confidence.UNKNOWN,
        reason="Inconclusive search results",
        code=VerificationReason.INCONCLUSIVE,
        discovered_character=summary.discovered_character,
    )
