"""Tests for configuration loading, API key lookup, the lexicon and the CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

import rolescout.cli as cli
import rolescout.config as config_module
from rolescout.config import (
    ConfigurationError,
    DiscoveryConfig,
    Thresholds,
    get_api_key,
    load_discovery_config,
    lookup_api_key,
)
from rolescout.lexicon import load_lexicon

runner = CliRunner()


@pytest.fixture
def no_keyring(monkeypatch):
    """Empty keyring and no key environment variables."""
    monkeypatch.setattr(config_module.keyring, "get_password", lambda service, name: None)
    for _, env_var in config_module.KEY_NAMES.values():
        monkeypatch.delenv(env_var, raising=False)


class TestLoadDiscoveryConfig:
    """Tests for load_discovery_config."""

    def test_missing_file_gives_defaults(self, tmp_path, no_keyring):
        config = load_discovery_config(tmp_path / "absent.json")
        assert config == DiscoveryConfig()

    def test_fields_and_thresholds(self, tmp_path, no_keyring):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "judge_model": "mistral-large-latest",
                    "cost_budget": 0.05,
                    "not_a_field": 1,
                    "thresholds": {"min_confirmed_roles": 2, "bogus": 9},
                }
            )
        )
        config = load_discovery_config(path)
        assert config.judge_model == "mistral-large-latest"
        assert config.cost_budget == 0.05
        assert config.thresholds.min_confirmed_roles == 2
        assert config.thresholds.max_final_roles == Thresholds().max_final_roles

    def test_invalid_json(self, tmp_path, no_keyring):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_discovery_config(path)

    def test_non_object_json(self, tmp_path, no_keyring):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            load_discovery_config(path)

    def test_keys_from_environment(self, tmp_path, no_keyring, monkeypatch):
        monkeypatch.setenv("SERP_API_KEY", "serp-from-env")
        config = load_discovery_config(tmp_path / "absent.json")
        assert config.serp_api_key == "serp-from-env"
        assert config.tmdb_api_key is None

    def test_key_in_file_wins(self, tmp_path, no_keyring, monkeypatch):
        monkeypatch.setenv("TMDB_API_KEY", "env-key")
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"tmdb_api_key": "file-key"}))
        assert load_discovery_config(path).tmdb_api_key == "file-key"


class TestApiKeys:
    """Tests for keyring-then-environment key lookup."""

    def test_keyring_first(self, monkeypatch):
        monkeypatch.setattr(config_module.keyring, "get_password", lambda service, name: "from-keyring")
        monkeypatch.setenv("MISTRAL_API_KEY", "from-env")
        assert lookup_api_key("mistral") == "from-keyring"

    def test_environment_fallback(self, no_keyring, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "from-env")
        assert lookup_api_key("mistral") == "from-env"

    def test_missing_key_raises_with_instructions(self, no_keyring):
        with pytest.raises(RuntimeError, match="rolescout config set-key tmdb"):
            get_api_key("tmdb")


class TestLexicon:
    """Tests for the curated word lists."""

    def test_default_is_cached(self):
        assert load_lexicon() is load_lexicon()

    def test_talk_shows(self, lexicon):
        assert lexicon.is_talk_show("The Tonight Show Starring Jimmy Fallon")
        assert not lexicon.is_talk_show("Midnight City")

    def test_guest_characters(self, lexicon):
        assert lexicon.is_guest_character("Herself")
        assert lexicon.is_guest_character("Self - Guest")
        assert lexicon.is_guest_character("Jane Doe (self)")
        assert not lexicon.is_guest_character("Captain Zap")

    def test_franchise_table_loaded(self, lexicon):
        assert "star trek" in lexicon.franchises["Star Trek"]

    def test_custom_file(self, tmp_path):
        path = tmp_path / "lexicon.yml"
        path.write_text("talk_shows:\n  local:\n    - Morning Coffee\nguest_characters: [Self]\n")
        lex = load_lexicon(path)
        assert lex.is_talk_show("morning coffee with Jane")
        assert lex.guest_characters == ("self",)
        assert lex.franchises == {}


class TestCli:
    """Tests for the typer commands that need no network."""

    def test_config_show(self, monkeypatch):
        keys = {"tmdb": "abcdefghijkl"}
        monkeypatch.setattr(cli, "lookup_api_key", lambda provider: keys.get(provider))
        result = runner.invoke(cli.app, ["config", "show"])
        assert result.exit_code == 0
        assert "abcdefgh" in result.output
        assert "ijkl" not in result.output
        assert "not set" in result.output

    def test_set_key_unknown_provider(self):
        result = runner.invoke(cli.app, ["config", "set-key", "imdb", "secret"])
        assert result.exit_code == 1

    def test_set_key_stores(self, monkeypatch):
        stored = {}
        monkeypatch.setattr(cli, "set_api_key", lambda provider, value: stored.update({provider: value}))
        result = runner.invoke(cli.app, ["config", "set-key", "serp", "  secret  "])
        assert result.exit_code == 0
        assert stored == {"serp": "secret"}

    def test_verify_without_keys_is_unverified(self, tmp_path, no_keyring):
        result = runner.invoke(
            cli.app,
            ["verify", "Jane Doe", "--title", "Midnight City", "--config", str(tmp_path / "absent.json")],
        )
        assert result.exit_code == 0
        assert "VALID" in result.output
        assert "unverified" in result.output

    def test_verify_require_search_without_key_exits(self, tmp_path, no_keyring):
        result = runner.invoke(
            cli.app,
            [
                "verify",
                "Jane Doe",
                "--title",
                "Midnight City",
                "--require-search",
                "--config",
                str(tmp_path / "absent.json"),
            ],
        )
        assert result.exit_code == 1
        assert "serp API key not found" in result.output

    def test_bad_config_exits(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        result = runner.invoke(cli.app, ["discover", "Jane Doe", "--config", str(path)])
        assert result.exit_code == 1

    def test_mask(self):
        assert cli._mask("abcdefghijkl") == "abcdefgh****"
        assert cli._mask("abc") == "ab*"
