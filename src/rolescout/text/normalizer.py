"""Title and text normalization helpers.

Pure functions over strings. Word lists come from :mod:`rolescout.lexicon`;
every function accepts an explicit ``lexicon`` for tests and falls back to
the cached default.
"""

from __future__ import annotations

import re
import string
import unicodedata

from rolescout.constants import TITLE_OVERLAP_RATIO
from rolescout.lexicon import Lexicon, load_lexicon

_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_TRAILING_CLAUSE = re.compile(r"\s*(?:\s(?:and|or)\s|,).*$", re.IGNORECASE)
_WORD = re.compile(r"[a-z0-9']+")
_PUNCT_TABLE = str.maketrans({c: " " for c in string.punctuation if c != "'"})

_SMALL_WORDS = frozenset(
    {"a", "an", "and", "as", "at", "but", "by", "for", "in", "of", "on", "or", "the", "to", "vs"}
)


def normalize(text: str | None) -> str:
    """Casefold, strip accents and punctuation, collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = ascii_text.casefold().translate(_PUNCT_TABLE)
    return _WHITESPACE.sub(" ", cleaned).strip()


def clean_title(title: str | None) -> str:
    """Strip a leading article and any trailing ``and ...`` / ``, ...`` clause."""
    if not title:
        return ""
    cleaned = _WHITESPACE.sub(" ", title).strip().strip("\"'“”‘’")
    cleaned = _LEADING_ARTICLE.sub("", cleaned)
    cleaned = _TRAILING_CLAUSE.sub("", cleaned)
    return cleaned.strip(" .;:-")


def title_case(text: str) -> str:
    """Title-case *text*, leaving small words lowercase after the first word.

    Words that already contain an uppercase letter (``"McDonald"``,
    ``"SpongeBob"``) are kept as written.
    """
    words = _WHITESPACE.split(text.strip())
    out: list[str] = []
    for i, word in enumerate(words):
        if any(c.isupper() for c in word):
            out.append(word)
        elif i > 0 and word.lower() in _SMALL_WORDS:
            out.append(word.lower())
        else:
            out.append(word[:1].upper() + word[1:])
    return " ".join(out)


def words(text: str | None) -> list[str]:
    return _WORD.findall(normalize(text))


def contains_phrase(text: str | None, phrase: str | None) -> bool:
    """True when *phrase* occurs in *text* as a run of whole words."""
    needle = words(phrase)
    if not needle:
        return False
    haystack = words(text)
    size = len(needle)
    return any(haystack[i : i + size] == needle for i in range(len(haystack) - size + 1))


def strip_stop_words(text: str, lexicon: Lexicon | None = None) -> str:
    lex = lexicon or load_lexicon()
    stop = set(lex.leading_stop_words) | _SMALL_WORDS
    return " ".join(w for w in words(text) if w not in stop)


def word_overlap(a: str | None, b: str | None) -> float:
    """Share of words in common, measured against the shorter word set."""
    words_a = set(words(a))
    words_b = set(words(b))
    if not words_a or not words_b:
        return 0.0
    common = words_a & words_b
    return len(common) / min(len(words_a), len(words_b))


def titles_match(a: str | None, b: str | None, ratio: float = TITLE_OVERLAP_RATIO) -> bool:
    """Exact, substring (either direction) or sufficient word overlap."""
    norm_a = normalize(a)
    norm_b = normalize(b)
    if not norm_a or not norm_b:
        return False
    if norm_a == norm_b or norm_a in norm_b or norm_b in norm_a:
        return True
    return word_overlap(norm_a, norm_b) >= ratio


def is_valid_title(title: str | None, lexicon: Lexicon | None = None) -> bool:
    """Loose filter for text that might name a work.

    Rejects bare occupation / nationality / medium nouns and phrases that
    end in one (``"American actor"``, ``"animated series"``), except for
    protected titles like ``"Star Trek"``.
    """
    if not title or len(title.strip()) < 3:
        return False
    lex = lexicon or load_lexicon()
    lower = title.lower().strip()
    if lower in lex.protected_titles:
        return True
    for word in lex.title_exclude_words:
        if lower == word or lower.endswith(f" {word}"):
            return False
    return True


def is_valid_extracted_title(
    title: str | None,
    subject: str,
    lexicon: Lexicon | None = None,
) -> bool:
    """Strict filter applied to every raw title before it is verified.

    Rejects sentence fragments (``"in Midnight City"``), generic phrases
    (``"voice actor"``), trailing junk (``"Cartoon Network's animated"``)
    and anything containing the subject's own name.
    """
    if not title:
        return False
    raw = title.strip()
    if len(raw) < 3 or len(raw) > 50:
        return False

    lex = lexicon or load_lexicon()
    lower = raw.lower()

    if any(lower.startswith(f"{prefix} ") for prefix in lex.leading_stop_words):
        return False
    if any(lower.endswith(suffix) for suffix in lex.trailing_junk):
        return False

    substantial = [w for w in raw.split() if len(w) > 2]
    if not substantial:
        return False
    if len(substantial) == 1 and len(substantial[0]) < 4:
        return False

    if lower in lex.title_exclude_words:
        return False
    if subject and subject.lower().strip() in lower:
        return False
    if not re.search(r"[a-zA-Z]", raw) or len(raw) < 4:
        return False
    if lower in lex.generic_phrases:
        return False
    return True


def has_content_red_flags(title: str | None, lexicon: Lexicon | None = None) -> bool:
    """True for convention, podcast, fan-art and similar non-production text."""
    if not title:
        return False
    lex = lexicon or load_lexicon()
    lower = f" {title.lower()} "
    return any(flag in lower for flag in lex.content_red_flags)


def is_character_name(
    name: str | None,
    subject: str = "",
    title: str = "",
    lexicon: Lexicon | None = None,
) -> bool:
    """Heuristic check that *name* reads like a character, not prose.

    Length 2-25, not the subject or the work, no generic role words, and
    mostly letters.
    """
    if not name:
        return False
    candidate = name.strip()
    if len(candidate) < 2 or len(candidate) > 25:
        return False
    lower = candidate.lower()
    if subject and (lower == subject.lower() or lower in subject.lower()):
        return False
    if title and lower == title.lower():
        return False
    lex = lexicon or load_lexicon()
    if lex.is_generic_character(candidate) or lex.is_guest_character(candidate):
        return False
    if any(w in lex.title_exclude_words for w in lower.split()):
        return False
    letters = sum(1 for c in candidate if c.isalpha())
    return letters / len(candidate) >= 0.6
