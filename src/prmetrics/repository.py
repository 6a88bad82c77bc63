"""Cache-backed, cursor-paginated access to a repository's pull requests."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, List, Optional

from .cache import CacheStore
from .config import DEFAULT_STATES, validate_states
from .errors import ApiError
from .github_client import GitHubClient
from .models import PullRequest

logger = logging.getLogger(__name__)


class PullRequestRepository:
    """Assembles the full pull request set for one GitHub repository.

    Pages are fetched sequentially because each request needs the previous
    page's cursor. A failure mid-pagination keeps what was already fetched and
    caches it with a shorter TTL; only a failure before any pull request was
    fetched is reported as ``None``.
    """

    PR_PAGE_SIZE = 50

    def __init__(
        self,
        client: GitHubClient,
        cache: CacheStore,
        owner: str,
        name: str,
        cache_ttl_seconds: float = 15 * 60,
        pagination_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._cache = cache
        self._owner = owner
        self._name = name
        self._cache_ttl_seconds = cache_ttl_seconds
        self._pagination_timeout_seconds = pagination_timeout_seconds
        self._clock = clock

    def cache_key(self, states: Iterable[str]) -> str:
        """Stable cache key for this repository and an unordered set of states."""
        return f"prs_{self._owner}_{self._name}_{'_'.join(sorted(set(states)))}"

    def fetch_all(
        self,
        force_refresh: bool = False,
        states: Iterable[str] = DEFAULT_STATES,
    ) -> Optional[List[PullRequest]]:
        """Return every pull request in the requested states.

        Args:
            force_refresh: Skip the cache read and always query GitHub.
            states: Any subset of ``OPEN``, ``MERGED`` and ``CLOSED``.

        Returns:
            The pull requests in API order (possibly empty), or ``None`` when
            the very first page could not be fetched.

        Raises:
            ConfigurationError: If ``states`` contains an unknown state.
        """
        requested_states = validate_states(states)
        key = self.cache_key(requested_states)
        repo = f"{self._owner}/{self._name}"

        if not force_refresh:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Returning cached pull requests", extra={"repo": repo, "count": len(cached)})
                return list(cached)
        else:
            logger.info("Force refresh requested, bypassing cache", extra={"repo": repo})

        pull_requests: List[PullRequest] = []
        after_cursor: Optional[str] = None
        page_number = 0
        complete = False
        deadline = (
            self._clock() + self._pagination_timeout_seconds
            if self._pagination_timeout_seconds is not None
            else None
        )

        while True:
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Pagination deadline exceeded",
                    extra={"repo": repo, "pages": page_number, "count": len(pull_requests)},
                )
                break

            page_number += 1
            logger.debug(
                "Fetching pull request page",
                extra={"repo": repo, "page": page_number, "after": after_cursor or "start"},
            )

            time_budget = deadline - self._clock() if deadline is not None else None
            try:
                page = self._client.fetch_pull_request_page(
                    owner=self._owner,
                    name=self._name,
                    page_size=self.PR_PAGE_SIZE,
                    after=after_cursor,
                    states=requested_states,
                    time_budget_seconds=time_budget,
                )
            except ApiError as exc:
                logger.error(
                    "Failed to fetch pull request page",
                    extra={"repo": repo, "page": page_number, "count": len(pull_requests), "error": str(exc)},
                )
                break

            pull_requests.extend(page.nodes)
            logger.debug(
                "Fetched pull request page",
                extra={
                    "repo": repo,
                    "page": page_number,
                    "page_count": len(page.nodes),
                    "count": len(pull_requests),
                    "has_next_page": page.has_next_page,
                },
            )

            if not page.has_next_page:
                complete = True
                break

            if not page.end_cursor:
                logger.warning(
                    "Page reported more results without a cursor",
                    extra={"repo": repo, "page": page_number},
                )
                break

            after_cursor = page.end_cursor

        if complete:
            self._cache.set(key, tuple(pull_requests), self._cache_ttl_seconds)
            logger.info("Fetched all pull requests", extra={"repo": repo, "count": len(pull_requests)})
            return pull_requests

        if not pull_requests:
            logger.error("No pull requests could be fetched", extra={"repo": repo})
            return None

        logger.warning(
            "Caching incomplete pull request list with reduced TTL",
            extra={"repo": repo, "count": len(pull_requests)},
        )
        self._cache.set(key, tuple(pull_requests), self._cache_ttl_seconds / 2)
        return pull_requests
