"""Configuration parsing and validation for the GitHub PR metrics engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

DEFAULT_STATES: Tuple[str, ...] = ("OPEN", "MERGED", "CLOSED")
VALID_STATES = frozenset(DEFAULT_STATES)

DEFAULT_CACHE_TTL_SECONDS = 15 * 60
DEFAULT_PAGINATION_TIMEOUT_SECONDS = 300


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics engine."""

    owner: str
    repo_name: str
    token: str
    states: Tuple[str, ...] = DEFAULT_STATES
    ghe_hostname: Optional[str] = None
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    pagination_timeout_seconds: int = DEFAULT_PAGINATION_TIMEOUT_SECONDS

    @property
    def api_url(self) -> str:
        """GraphQL endpoint for github.com or a GitHub Enterprise host."""
        if self.ghe_hostname:
            return f"https://{self.ghe_hostname}/api/graphql"
        return "https://api.github.com/graphql"


def validate_states(states: Iterable[str]) -> Tuple[str, ...]:
    """Normalize requested PR states to upper case and reject unknown values.

    Raises:
        ConfigurationError: If the set is empty or contains an unknown state.
    """
    normalized = tuple(dict.fromkeys(state.strip().upper() for state in states))
    if not normalized:
        raise ConfigurationError("At least one pull request state must be requested.")

    unknown = [state for state in normalized if state not in VALID_STATES]
    if unknown:
        raise ConfigurationError(
            f"Invalid pull request state(s): {', '.join(unknown)}. "
            f"Expected any of: {', '.join(sorted(VALID_STATES))}."
        )

    return normalized


def _read_positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer.") from exc

    if value <= 0:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer greater than 0.")
    return value


def load_config(owner: str, repo_name: str, states: Optional[Iterable[str]] = None) -> Config:
    """Build and validate application configuration.

    Args:
        owner: GitHub repository owner (user or organization login).
        repo_name: GitHub repository name.
        states: Pull request states to fetch; defaults to all states.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If owner/repository are blank, states are invalid,
            or the cache TTL override is not a positive integer.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    if not owner.strip() or not repo_name.strip():
        raise ConfigurationError("Repository owner and name must both be provided.")

    validated_states = validate_states(states if states is not None else DEFAULT_STATES)

    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable before running the metrics engine."
        )

    ghe_hostname = os.getenv("GHE_HOSTNAME", "").strip() or None

    return Config(
        owner=owner.strip(),
        repo_name=repo_name.strip(),
        token=token,
        states=validated_states,
        ghe_hostname=ghe_hostname,
        cache_ttl_seconds=_read_positive_int_env(
            "PRMETRICS_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS
        ),
    )
