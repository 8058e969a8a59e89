"""Named extraction rules for mining titles and characters from free text.

Each rule is a small regular-expression template with ``title`` and/or
``character`` named groups. Templates may reference ``{subject}`` and
``{title}``; those are escaped and made whitespace/case tolerant when the
rule is compiled, so one rule works for any subject.

Rule lists are ordered: callers apply them first to last and usually keep
every match, but the order decides which capture wins when two rules
produce the same title.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

# Capitalised word run used for character names: "Captain Zap", "Dr. Who"
_CHAR = r"(?P<character>[A-Z][\w.'’\-]*(?:\s+[A-Z][\w.'’\-]*){0,3})"
# A title fragment that stops at punctuation or parentheses
_TITLE = r"(?P<title>[A-Z][^,.\n()\"“”]{2,30}?)"
_END = r"(?=\s*[,.;(]|\s*$)"
_KNOWN = r"(?i:best\s+known\s+for|known\s+for|famous\s+for)"


@dataclass(frozen=True)
class RuleMatch:
    rule: str
    title: str | None = None
    character: str | None = None
    year: int | None = None


@dataclass(frozen=True)
class ExtractionRule:
    """A named regex template producing :class:`RuleMatch` objects."""

    name: str
    template: str

    def compile(self, subject: str = "", title: str = "") -> re.Pattern[str]:
        return _compile(self.template, subject, title)

    def apply(self, text: str, subject: str = "", title: str = "") -> list[RuleMatch]:
        if not text:
            return []
        if ("{subject}" in self.template and not subject) or (
            "{title}" in self.template and not title
        ):
            return []
        matches: list[RuleMatch] = []
        for m in self.compile(subject, title).finditer(text):
            groups = m.groupdict()
            found_title = (groups.get("title") or "").strip() or None
            found_char = (groups.get("character") or "").strip() or None
            year = groups.get("year")
            if found_title is None and found_char is None:
                continue
            matches.append(
                RuleMatch(
                    rule=self.name,
                    title=found_title,
                    character=found_char,
                    year=int(year) if year else None,
                )
            )
        return matches


def literal(value: str) -> str:
    """Regex for *value* as whole words, case-insensitive with flexible spacing."""
    parts = [re.escape(p) for p in value.split()]
    return r"(?<!\w)(?i:" + r"\s+".join(parts) + r")(?!\w)"


@lru_cache(maxsize=512)
def _compile(template: str, subject: str, title: str) -> re.Pattern[str]:
    pattern = template.replace("{subject}", literal(subject) if subject else "")
    pattern = pattern.replace("{title}", literal(title) if title else "")
    return re.compile(pattern)


def apply_rules(
    rules: list[ExtractionRule] | tuple[ExtractionRule, ...],
    text: str,
    subject: str = "",
    title: str = "",
) -> list[RuleMatch]:
    """Apply *rules* in order and concatenate their matches."""
    out: list[RuleMatch] = []
    for rule in rules:
        out.extend(rule.apply(text, subject=subject, title=title))
    return out


# Known-for phrases in an encyclopedia lead.
KNOWN_FOR_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        "portrayal_of_character_in_title",
        _KNOWN
        + r"[^.]*?(?i:portrayals?|roles?|playing)\s+(?i:of|as)\s+"
        + _CHAR
        + r"\s+(?i:in|on)\s+(?:(?i:the)\s+)?(?P<title>[A-Z][^,.;\n(]+)",
    ),
    ExtractionRule(
        "playing_character",
        _KNOWN
        + r"[^.]*?(?i:playing|portraying|voicing)\s+"
        + _CHAR
        + r"(?:\s+(?i:in|on)\s+(?:(?i:the)\s+)?(?P<title>[A-Z][^,.;\n(]+))?",
    ),
    ExtractionRule(
        "franchise_phrase",
        _KNOWN
        + r"[^.]*?(?P<title>[A-Z][\w'’:&\-]*(?:\s+[A-Z0-9][\w'’:&\-]*)*)\s+"
        r"(?i:film\s+series|franchise|series|trilogy|saga|films)\b",
    ),
    ExtractionRule(
        "direct_title",
        _KNOWN
        + r"\s+(?:(?i:the|his|her|their)\s+)?(?:(?i:roles?|work)\s+(?i:in|on)\s+)?"
        r"(?:(?i:the)\s+)?(?P<title>[A-Z][A-Za-z0-9:'’&\- ]{2,40}?)"
        r"(?=\s+(?i:franchise|series)|\s*[,(.;]|\s+(?i:and)\s|\s*$)",
    ),
)

# Fallback: capitalised runs inside a known-for clause ("Foo, Bar and Baz").
CAPITALIZED_RUN = ExtractionRule(
    "capitalized_run",
    r"(?P<title>[A-Z][\w'’&\-]*(?:\s+(?:(?:of|the|and|in|on|a|an|to|&)\s+)*[A-Z0-9][\w'’&:\-]*)*)",
)

# Intro phrases used by the expanded encyclopedia scrape.
NOTABLE_WORK_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        "notable_work_phrase",
        r"(?i:known\s+for|appeared\s+in|voiced|starred\s+in)[^.]*?"
        r"(?P<title>[A-Z][^,.(]*?)(?=\s+(?i:and)\s|\s*[,(.])",
    ),
)

# Titles mentioned in web search titles/snippets.
SEARCH_TITLE_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("quoted_title", r"[\"“](?P<title>[A-Z][^\"”]{2,40})[\"”]"),
    ExtractionRule("title_with_year", _TITLE + r"\s*\((?P<year>(?:19|20)\d{2})\)"),
    ExtractionRule("in_title", r"\b(?i:in)\s+" + _TITLE + _END),
    ExtractionRule("starring_in", r"(?i:starring\s+in)\s+" + _TITLE + _END),
    ExtractionRule("title_starring", r"(?:^|\s)" + _TITLE + r"\s+(?i:starring)\b"),
    ExtractionRule("cast_of", r"(?i:cast\s+of)\s+" + _TITLE + _END),
    ExtractionRule("title_cast", _TITLE + r"\s+(?i:cast)\b"),
    ExtractionRule("known_for_title", r"(?i:known\s+for)\s+" + _TITLE + _END),
)

# Character named next to the subject, optionally anchored on a title.
CHARACTER_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        "subject_plays_character_in_title",
        r"{subject}\s+(?i:voices?|voiced|plays?|played|portrays?|portrayed)\s+"
        + _CHAR
        + r"\s+(?i:in|on)\s+(?:(?i:the)\s+)?{title}",
    ),
    ExtractionRule(
        "character_voiced_by_subject_parenthetical",
        _CHAR + r"\s*\((?i:voiced|played|portrayed)\s+(?i:by)\s+{subject}\)",
    ),
    ExtractionRule(
        "subject_as_character",
        r"{subject}\s+(?i:as)\s+" + _CHAR + r"(?=\s*[,.;(]|\s+(?i:in|on|and)\s|\s*$)",
    ),
    ExtractionRule(
        "character_played_by_subject",
        _CHAR + r"\s+(?i:is\s+)?(?i:played|voiced|portrayed)\s+(?i:by)\s+{subject}",
    ),
    ExtractionRule("character_subject_parenthetical", _CHAR + r"\s*\({subject}\)"),
    ExtractionRule("character_dash_subject", _CHAR + r"\s+[-–]\s+{subject}"),
    ExtractionRule(
        "subject_plays_character",
        r"{subject}\s+(?i:voices|plays|played|portrays|portrayed)\s+" + _CHAR + _END,
    ),
    ExtractionRule("voice_of_character", r"(?i:voice\s+of)\s+" + _CHAR + _END),
)
