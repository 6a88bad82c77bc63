"""Command-line argument parsing for the GitHub PR metrics engine."""

from __future__ import annotations

import argparse
from datetime import date

from .config import DEFAULT_STATES, VALID_STATES


def _iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not an ISO calendar date.
    """
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date in YYYY-MM-DD format") from exc


def _state(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in VALID_STATES:
        raise argparse.ArgumentTypeError(
            f"must be one of {', '.join(sorted(VALID_STATES))}"
        )
    return normalized


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for metrics generation.

    Returns:
        Parsed CLI arguments containing the repository, the states to fetch,
        cache behaviour and the optional pull request filters.
    """
    parser = argparse.ArgumentParser(
        prog="github-pr-metrics",
        description=(
            "Generate GitHub pull-request lifecycle metrics for a repository "
            "(draft time, review latency, cycle time, merge time, size and "
            "reviewer contribution)."
        ),
    )

    parser.add_argument("--owner", required=True, help="GitHub repository owner.")
    parser.add_argument("--repo", required=True, help="GitHub repository name.")
    parser.add_argument(
        "--states",
        type=_state,
        action="append",
        default=None,
        help="Pull request state to fetch (repeatable; default: OPEN, MERGED and CLOSED).",
    )
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Bypass cached pull request data.",
    )

    filters = parser.add_argument_group("filters")
    filters.add_argument("--author", help="Only include PRs opened by this login.")
    filters.add_argument("--approver", help="Only include PRs approved by this login.")
    filters.add_argument("--target-branch", help="Only include PRs targeting this branch.")
    filters.add_argument("--status", type=_state, help="Only include PRs in this state.")
    filters.add_argument("--exclude-author", help="Exclude PRs opened by this login.")
    filters.add_argument(
        "--exclude-branch-pattern",
        help="Exclude PRs targeting this branch, or any branch under 'prefix/**'.",
    )
    filters.add_argument("--start-date", type=_iso_date, help="Earliest creation date (YYYY-MM-DD).")
    filters.add_argument("--end-date", type=_iso_date, help="Latest creation date, inclusive (YYYY-MM-DD).")
    filters.add_argument(
        "--list-filter-options",
        action="store_true",
        help="Print the authors, target branches and approvers available to filter on, then exit.",
    )

    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args()
    if args.states is None:
        args.states = list(DEFAULT_STATES)
    if args.start_date and args.end_date and args.start_date > args.end_date:
        parser.error("--start-date must not be after --end-date")

    return args
