"""Data models and enums for the role discovery pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class Medium(str, Enum):
    """Kind of production a role belongs to."""

    LIVE_ACTION_MOVIE = "live_action_movie"
    LIVE_ACTION_TV = "live_action_tv"
    VOICE_CARTOON = "voice_cartoon"
    VOICE_ANIME_TV = "voice_anime_tv"
    UNKNOWN = "unknown"


class SourceTag(str, Enum):
    """Which discovery tier produced a candidate role."""

    PRIMARY_SOURCE = "primary_source"
    KNOWN_FOR = "known_for"
    ENCYCLOPEDIA_EXPANDED = "encyclopedia_expanded"
    SPECIALTY_COMMUNITY = "specialty_community"
    WEB_SEARCH = "web_search"
    EMERGENCY_RECOVERY = "emergency_recovery"
    GENERIC_FALLBACK = "generic_fallback"


class Confidence(str, Enum):
    """Confidence grade attached to a verification outcome."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


class VerificationReason(str, Enum):
    """Machine-readable reason code for a verification outcome."""

    CONFIRMED_AUTHORITATIVE = "confirmed_authoritative"
    CONFIRMED_WEB = "confirmed_web"
    CONTRADICTED = "contradicted"
    NOT_THIS_CHARACTER = "not_this_character"
    NO_SEARCH_RESULTS = "no_search_results"
    LENIENT_NO_RESULTS = "lenient_no_results"
    INCONCLUSIVE = "inconclusive"
    JUDGE_CONFIRMED = "judge_confirmed"
    JUDGE_REJECTED = "judge_rejected"
    JUDGE_UNCERTAIN = "judge_uncertain"
    UNVERIFIED = "unverified"
    BUDGET_EXHAUSTED = "budget_exhausted"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RedFlagType(str, Enum):
    """Aggregate failure patterns that indicate unreliable role generation."""

    HALLUCINATED_CHARACTER = "hallucinated_character"
    HALLUCINATED_TITLE = "hallucinated_title"
    LOW_SUCCESS_RATE = "low_success_rate"
    REPEATED_FAKE_TITLES = "repeated_fake_titles"


class PipelineTier(str, Enum):
    """Escalation state; the terminal value is reported on the run result."""

    PRIMARY = "primary"
    VALIDATED = "validated"
    REJECTED = "rejected"
    EXPANDED_SCRAPE = "expanded_scrape"
    SPECIALTY_SOURCE = "specialty_source"
    VERIFICATION = "verification"
    HAIL_MARY = "hail_mary"
    HAIL_MARY_VERIFICATION = "hail_mary_verification"
    DONE = "done"
    GENERIC_FALLBACK = "generic_fallback"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying a single candidate role."""

    is_valid: bool
    confidence: Confidence
    reason: str
    code: VerificationReason = VerificationReason.UNVERIFIED
    discovered_character: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "confidence": self.confidence.value,
            "reason": self.reason,
            "code": self.code.value,
            "discovered_character": self.discovered_character,
        }


@dataclass
class CandidateRole:
    """A (character, title) pair proposed by one of the discovery tiers.

    ``franchise_name`` is write-once: :meth:`assign_franchise` refuses to
    overwrite a name that is already set.
    """

    title: str
    character: str | None = None
    medium: Medium = Medium.UNKNOWN
    year: int | None = None
    popularity: float = 0.0
    vote_count: int = 0
    source_tag: SourceTag = SourceTag.PRIMARY_SOURCE
    franchise_name: str | None = None
    is_known_for: bool = False
    verification: VerificationResult | None = None
    search_terms: list[str] = field(default_factory=list)

    def assign_franchise(self, name: str) -> None:
        """Set the franchise name once; a second, different name is an error."""
        if self.franchise_name is not None and self.franchise_name != name:
            raise ValueError(
                f"franchise already assigned for {self.title!r}: "
                f"{self.franchise_name!r} (attempted {name!r})"
            )
        self.franchise_name = name

    @property
    def is_valid(self) -> bool:
        """Unverified roles count as valid."""
        return self.verification is None or self.verification.is_valid

    @property
    def label(self) -> str:
        if self.character:
            return f"{self.character} ({self.title})"
        return self.title

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary with enum values as strings."""
        d = asdict(self)
        d["medium"] = self.medium.value
        d["source_tag"] = self.source_tag.value
        d["verification"] = (
            self.verification.to_dict() if self.verification else None
        )
        return d


@dataclass(frozen=True)
class RedFlag:
    type: RedFlagType
    severity: Severity
    description: str


@dataclass
class RedFlagReport:
    """Result of red-flag analysis over one verification batch."""

    has_red_flags: bool = False
    trigger_emergency: bool = False
    flags: list[RedFlag] = field(default_factory=list)
    total: int = 0
    verified: int = 0
    rejected: int = 0
    success_rate: float = 1.0

    def to_dict(self) -> dict[str, object]:
        return {
            "has_red_flags": self.has_red_flags,
            "trigger_emergency": self.trigger_emergency,
            "flags": [
                {
                    "type": f.type.value,
                    "severity": f.severity.value,
                    "description": f.description,
                }
                for f in self.flags
            ],
            "total": self.total,
            "verified": self.verified,
            "rejected": self.rejected,
            "success_rate": round(self.success_rate, 3),
        }


@dataclass(frozen=True)
class RawCredit:
    """One entry of the metadata provider's combined credits list."""

    title: str | None
    character: str | None = None
    media_type: str = "movie"
    vote_count: int = 0
    popularity: float = 0.0
    release_date: str | None = None
    genre_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class SearchHit:
    """A single organic web search result."""

    title: str
    snippet: str = ""
    link: str = ""

    @property
    def text(self) -> str:
        return f"{self.title} {self.snippet}"


@dataclass(frozen=True)
class SectionEntry:
    """A work listed under a filmography-like heading."""

    title: str
    character: str | None = None
    year: int | None = None


@dataclass
class ArticleSections:
    """Structured pieces of an encyclopedia article."""

    lead_text: str = ""
    # (heading, entries) in document order
    sections: list[tuple[str, list[SectionEntry]]] = field(default_factory=list)
    infobox_known_for: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.lead_text or self.sections or self.infobox_known_for)


@dataclass
class PipelineRunResult:
    """Final output of one discovery run for a subject."""

    subject: str
    roles: list[CandidateRole]
    tier: PipelineTier
    cost: float = 0.0
    red_flags: RedFlagReport | None = None
    rejected: list[CandidateRole] = field(default_factory=list)
    known_for: list[str] = field(default_factory=list)
    transitions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "subject": self.subject,
            "tier": self.tier.value,
            "cost": round(self.cost, 6),
            "known_for": list(self.known_for),
            "roles": [r.to_dict() for r in self.roles],
            "rejected": [r.to_dict() for r in self.rejected],
            "red_flags": self.red_flags.to_dict() if self.red_flags else None,
            "transitions": list(self.transitions),
        }
