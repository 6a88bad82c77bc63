"""Tests for configuration loading and validation."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prmetrics.config import DEFAULT_CACHE_TTL_SECONDS, load_config, validate_states
from prmetrics.errors import AuthenticationError, ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("GITHUB_TOKEN", "GHE_HOSTNAME", "PRMETRICS_CACHE_TTL_SECONDS"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_reads_token_and_defaults(monkeypatch):
    """Verify configuration reads the token and applies defaults."""
    monkeypatch.setenv("GITHUB_TOKEN", " token ")

    config = load_config(owner="octo", repo_name="repo")

    assert config.token == "token"
    assert config.states == ("OPEN", "MERGED", "CLOSED")
    assert config.cache_ttl_seconds == DEFAULT_CACHE_TTL_SECONDS
    assert config.api_url == "https://api.github.com/graphql"


def test_load_config_enterprise_host_and_ttl_override(monkeypatch):
    """Verify the enterprise host and TTL override come from the environment."""
    monkeypatch.setenv("GITHUB_TOKEN", "token")
    monkeypatch.setenv("GHE_HOSTNAME", "github.example.com")
    monkeypatch.setenv("PRMETRICS_CACHE_TTL_SECONDS", "60")

    config = load_config(owner="octo", repo_name="repo", states=["merged"])

    assert config.api_url == "https://github.example.com/api/graphql"
    assert config.cache_ttl_seconds == 60
    assert config.states == ("MERGED",)


def test_load_config_missing_token_raises_authentication_error():
    """Verify a missing token raises AuthenticationError."""
    with pytest.raises(AuthenticationError):
        load_config(owner="octo", repo_name="repo")


def test_load_config_invalid_ttl_raises_configuration_error(monkeypatch):
    """Verify a non-positive TTL override is rejected."""
    monkeypatch.setenv("GITHUB_TOKEN", "token")
    monkeypatch.setenv("PRMETRICS_CACHE_TTL_SECONDS", "0")

    with pytest.raises(ConfigurationError):
        load_config(owner="octo", repo_name="repo")


def test_load_config_blank_repository_raises_configuration_error(monkeypatch):
    """Verify blank owner or repository names are rejected."""
    monkeypatch.setenv("GITHUB_TOKEN", "token")

    with pytest.raises(ConfigurationError):
        load_config(owner=" ", repo_name="repo")


def test_validate_states_normalizes_and_deduplicates():
    """Verify states are upper-cased and duplicates removed in order."""
    assert validate_states(["open", "MERGED", "Open"]) == ("OPEN", "MERGED")


def test_validate_states_rejects_empty_and_unknown():
    """Verify empty and unknown state sets are rejected."""
    with pytest.raises(ConfigurationError):
        validate_states([])
    with pytest.raises(ConfigurationError):
        validate_states(["OPEN", "DRAFT"])
