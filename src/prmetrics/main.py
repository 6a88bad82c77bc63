"""Application entry point for the GitHub PR metrics engine."""

from __future__ import annotations

import logging
import sys

from .cache import CacheStore
from .cli import parse_args
from .config import load_config
from .errors import ApiError, AuthenticationError, ConfigurationError
from .filters import PullRequestFilter, filter_options, filter_pull_requests
from .github_client import GitHubClient
from .metrics import compute_metrics
from .repository import PullRequestRepository
from .stats import generate_filter_options_report, generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4


def orchestrate_metrics_generation() -> int:
    """Fetch pull requests, compute metrics and print the report.

    Returns:
        Process exit code.
    """
    try:
        args = parse_args()
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        config = load_config(owner=args.owner, repo_name=args.repo, states=args.states)
        client = GitHubClient(config=config)
        repository = PullRequestRepository(
            client=client,
            cache=CacheStore(),
            owner=config.owner,
            name=config.repo_name,
            cache_ttl_seconds=config.cache_ttl_seconds,
            pagination_timeout_seconds=config.pagination_timeout_seconds,
        )

        print(f"Fetching {', '.join(config.states)} PRs for {config.owner}/{config.repo_name}...")
        prs = repository.fetch_all(force_refresh=args.force_refresh, states=config.states)
        if prs is None:
            raise ApiError(
                f"Could not fetch any pull requests for {config.owner}/{config.repo_name}."
            )

        repo_name = f"{config.owner}/{config.repo_name}"
        if args.list_filter_options:
            print(generate_filter_options_report(repo_name=repo_name, options=filter_options(prs)))
            return EXIT_OK

        criteria = PullRequestFilter(
            author=args.author,
            approver=args.approver,
            target_branch=args.target_branch,
            status=args.status,
            exclude_author=args.exclude_author,
            exclude_branch_pattern=args.exclude_branch_pattern,
            start_date=args.start_date,
            end_date=args.end_date,
        )
        report = compute_metrics(filter_pull_requests(prs, criteria))
        print(generate_report(repo_name=repo_name, report=report))
        return EXIT_OK
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except AuthenticationError as exc:
        print(f"Authentication error: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION
    except ApiError as exc:
        print(f"GitHub API error: {exc}", file=sys.stderr)
        return EXIT_API
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error while generating metrics")
        return EXIT_UNEXPECTED


def main() -> None:
    sys.exit(orchestrate_metrics_generation())


if __name__ == "__main__":
    main()
