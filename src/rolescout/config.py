"""Configuration loading for the discovery pipeline.

API keys come from the system keyring (service ``rolescout``) with an
environment-variable fallback. Everything else is read from
``config/discovery_config.json`` when that file exists.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from rolescout import constants

logger = logging.getLogger(__name__)

SERVICE_NAME = "rolescout"

# provider -> (keyring key name, environment variable)
KEY_NAMES: dict[str, tuple[str, str]] = {
    "tmdb": ("tmdb_api_key", "TMDB_API_KEY"),
    "serp": ("serp_api_key", "SERP_API_KEY"),
    "mistral": ("mistral_api_key", "MISTRAL_API_KEY"),
}

DEFAULT_CONFIG_PATH = Path("config/discovery_config.json")


class ConfigurationError(RuntimeError):
    """Raised when a configuration file cannot be used."""


def lookup_api_key(provider: str) -> str | None:
    """Return the key for *provider* from keyring, then env, else None."""
    key_name, env_var = KEY_NAMES[provider]
    try:
        api_key = keyring.get_password(SERVICE_NAME, key_name)
    except KeyringError:
        logger.debug("Keyring unavailable for %s", key_name, exc_info=True)
        api_key = None
    if api_key:
        return api_key
    return os.environ.get(env_var) or None


def get_api_key(provider: str) -> str:
    """Get an API key: system keyring first, then environment variable.

    Raises:
        RuntimeError: If no key found anywhere, with actionable instructions.
    """
    api_key = lookup_api_key(provider)
    if api_key:
        return api_key

    _, env_var = KEY_NAMES[provider]
    raise RuntimeError(
        f"{provider} API key not found.\n"
        f"Set it with: rolescout config set-key {provider} YOUR_KEY\n"
        f"Or: export {env_var}=your-key"
    )


def set_api_key(provider: str, value: str) -> None:
    key_name, _ = KEY_NAMES[provider]
    keyring.set_password(SERVICE_NAME, key_name, value)


@dataclass
class Thresholds:
    """Tunable decision thresholds (defaults from ``rolescout.constants``)."""

    min_vote_count: int = constants.MIN_VOTE_COUNT
    title_overlap_ratio: float = constants.TITLE_OVERLAP_RATIO
    max_known_for: int = constants.MAX_KNOWN_FOR
    min_confirmed_roles: int = constants.MIN_CONFIRMED_ROLES
    max_hail_mary_roles: int = constants.MAX_HAIL_MARY_ROLES
    max_titles_to_verify: int = constants.MAX_TITLES_TO_VERIFY
    max_final_roles: int = constants.MAX_FINAL_ROLES
    hail_mary_target_candidates: int = constants.HAIL_MARY_TARGET_CANDIDATES
    max_hail_mary_titles: int = constants.MAX_HAIL_MARY_TITLES
    max_emergency_titles: int = constants.MAX_EMERGENCY_TITLES
    fake_character_limit: int = constants.FAKE_CHARACTER_LIMIT
    no_results_limit: int = constants.NO_RESULTS_LIMIT
    min_success_rate: float = constants.MIN_SUCCESS_RATE
    min_attempts_for_rate: int = constants.MIN_ATTEMPTS_FOR_RATE
    small_filmography_size: int = constants.SMALL_FILMOGRAPHY_SIZE
    repeated_title_limit: int = constants.REPEATED_TITLE_LIMIT
    emergency_flag_count: int = constants.EMERGENCY_FLAG_COUNT
    franchise_min_size: int = constants.FRANCHISE_MIN_SIZE
    large_franchise_size: int = constants.LARGE_FRANCHISE_SIZE
    large_franchise_slots: int = constants.LARGE_FRANCHISE_SLOTS
    small_franchise_slots: int = constants.SMALL_FRANCHISE_SLOTS
    web_search_cost: float = constants.WEB_SEARCH_COST
    judge_cost: float = constants.JUDGE_COST


@dataclass
class DiscoveryConfig:
    """Runtime configuration for one or more discovery runs."""

    tmdb_api_key: str | None = None
    serp_api_key: str | None = None
    mistral_api_key: str | None = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    wikipedia_base_url: str = "https://en.wikipedia.org/wiki"
    community_base_url: str = "https://www.behindthevoiceactors.com/voice-actors"
    serp_base_url: str = "https://serpapi.com/search"
    judge_model: str = "mistral-small-latest"
    http_timeout: float = constants.HTTP_TIMEOUT_SECONDS
    judge_timeout: float = constants.JUDGE_TIMEOUT_SECONDS
    max_primary_results: int = constants.MAX_PRIMARY_RESULTS
    verify_batch_size: int = constants.VERIFY_BATCH_SIZE
    verify_concurrency: int = 3
    query_delay: float = constants.QUERY_DELAY_SECONDS
    batch_delay: float = constants.BATCH_DELAY_SECONDS
    hail_mary_query_delay: float = constants.HAIL_MARY_QUERY_DELAY_SECONDS
    search_rate_limit: int = 5  # requests per second
    cost_budget: float | None = None
    user_agent: str = (
        "Mozilla/5.0 (compatible; rolescout/0.3; +https://github.com/rolescout)"
    )
    thresholds: Thresholds = field(default_factory=Thresholds)


def load_discovery_config(config_path: Path | None = None) -> DiscoveryConfig:
    """Load discovery configuration from JSON, falling back to defaults.

    Reads from ``config/discovery_config.json`` when *config_path* is
    ``None``. Missing file means defaults. API keys not present in the file
    are looked up in the keyring and then the environment.

    Raises:
        ConfigurationError: If the file exists but is not a JSON object.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a JSON object")

    # Build kwargs from JSON data, only including recognised fields
    field_names = {f.name for f in fields(DiscoveryConfig)} - {"thresholds"}
    kwargs = {k: v for k, v in data.items() if k in field_names}

    threshold_data = data.get("thresholds") or {}
    threshold_names = {f.name for f in fields(Thresholds)}
    unknown = set(threshold_data) - threshold_names
    if unknown:
        logger.warning("Ignoring unknown thresholds: %s", ", ".join(sorted(unknown)))
    kwargs["thresholds"] = Thresholds(
        **{k: v for k, v in threshold_data.items() if k in threshold_names}
    )

    config = DiscoveryConfig(**kwargs)

    if config.tmdb_api_key is None:
        config.tmdb_api_key = lookup_api_key("tmdb")
    if config.serp_api_key is None:
        config.serp_api_key = lookup_api_key("serp")
    if config.mistral_api_key is None:
        config.mistral_api_key = lookup_api_key("mistral")

    return config
