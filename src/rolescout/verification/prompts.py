"""Prompt templates for the language-model judge.

The judge answers in a single pipe-delimited line so the response can be
parsed without JSON mode: ``CONFIDENCE|YES/NO|short reason``.
"""

from __future__ import annotations

PROMPT_VERSION = "1.1.0"

JUDGE_SYSTEM_PROMPT = (
    "You are a film and television credits fact-checker. "
    "Answer only from well-documented credits. If you are not sure, say LOW."
)

VERIFY_TEMPLATE = """Did {subject} play the character "{character}" in "{title}"?

Answer in exactly this format on one line:
CONFIDENCE|ANSWER|REASON

CONFIDENCE is HIGH, MEDIUM or LOW.
ANSWER is YES or NO.
REASON is at most ten words.

Example: HIGH|YES|Lead role, credited in the main cast"""

VERIFY_TITLE_TEMPLATE = """Did {subject} appear in "{title}" as a performer (acting or voice acting)?

Answer in exactly this format on one line:
CONFIDENCE|ANSWER|REASON

CONFIDENCE is HIGH, MEDIUM or LOW.
ANSWER is YES or NO.
REASON is at most ten words.

Example: MEDIUM|YES|Recurring voice role"""

CHARACTER_TEMPLATE = """Which character did {subject} play or voice in "{title}"?

Reply with only the character name. If you do not know, reply UNKNOWN."""


def build_verify_prompt(subject: str, title: str, character: str | None) -> str:
    if character:
        return VERIFY_TEMPLATE.format(subject=subject, title=title, character=character)
    return VERIFY_TITLE_TEMPLATE.format(subject=subject, title=title)


def build_character_prompt(subject: str, title: str) -> str:
    return CHARACTER_TEMPLATE.format(subject=subject, title=title)
