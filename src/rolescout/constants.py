"""Project-wide named constants.

Thresholds used by the discovery pipeline. Every value here is a default;
``rolescout.config.Thresholds`` carries the per-run copy that callers may
override from ``config/discovery_config.json``.
"""

# Primary source: credits with more votes than this are kept even when the
# character field is empty or generic.
MIN_VOTE_COUNT: int = 50
MAX_PRIMARY_RESULTS: int = 15

# Share of words two titles must have in common (measured against the
# shorter title) to count as the same work.
TITLE_OVERLAP_RATIO: float = 0.6

MAX_KNOWN_FOR: int = 5

# Escalation
MIN_CONFIRMED_ROLES: int = 4
MAX_HAIL_MARY_ROLES: int = 6
MAX_TITLES_TO_VERIFY: int = 10
MAX_FINAL_ROLES: int = 5
HAIL_MARY_TARGET_CANDIDATES: int = 12
MAX_HAIL_MARY_TITLES: int = 8
MAX_EMERGENCY_TITLES: int = 8

# Red-flag detection
FAKE_CHARACTER_LIMIT: int = 2
NO_RESULTS_LIMIT: int = 2
MIN_SUCCESS_RATE: float = 0.5
MIN_ATTEMPTS_FOR_RATE: int = 3
SMALL_FILMOGRAPHY_SIZE: int = 3
REPEATED_TITLE_LIMIT: int = 2
EMERGENCY_FLAG_COUNT: int = 2

# Franchise deduplication
FRANCHISE_MIN_SIZE: int = 3
LARGE_FRANCHISE_SIZE: int = 5
LARGE_FRANCHISE_SLOTS: int = 2
SMALL_FRANCHISE_SLOTS: int = 1

# Verification cost units, charged per external call
WEB_SEARCH_COST: float = 0.002
JUDGE_COST: float = 0.0002

VERIFY_BATCH_SIZE: int = 5

# Seconds between sequential search queries / between verification batches
QUERY_DELAY_SECONDS: float = 0.2
BATCH_DELAY_SECONDS: float = 1.0
HAIL_MARY_QUERY_DELAY_SECONDS: float = 0.8

HTTP_TIMEOUT_SECONDS: float = 10.0
JUDGE_TIMEOUT_SECONDS: float = 20.0

GENERIC_FALLBACK_LABELS: tuple[str, ...] = (
    "Professional Photos",
    "Red Carpet",
    "Portrait",
)
