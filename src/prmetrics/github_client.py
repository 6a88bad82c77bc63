"""GitHub GraphQL API client for pull request metrics data retrieval."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import requests

from .config import Config
from .errors import ApiError, DataValidationError
from .models import (
    Actor,
    Commit,
    ConvertToDraftEvent,
    PullRequest,
    PullRequestPage,
    PullRequestReviewEvent,
    ReadyForReviewEvent,
    Review,
    TimelineItem,
)

logger = logging.getLogger(__name__)

PULL_REQUEST_QUERY = """
query GetPullRequests($owner: String!, $name: String!, $first: Int!, $after: String, $states: [PullRequestState!]) {
  repository(owner: $owner, name: $name) {
    pullRequests(first: $first, after: $after, states: $states, orderBy: {field: CREATED_AT, direction: DESC}) {
      pageInfo {
        endCursor
        hasNextPage
      }
      nodes {
        id
        number
        title
        state
        url
        createdAt
        closedAt
        mergedAt
        isDraft
        author { login ... on User { name } }
        baseRefName
        headRefName
        reviews(first: 50) {
          nodes {
            author { login ... on User { name } }
            createdAt
            state
            comments { totalCount }
          }
        }
        reviewRequests(first: 10) {
          nodes {
            requestedReviewer { ... on User { login } }
          }
        }
        comments(first: 1) { totalCount }
        firstCommits: commits(first: 1) {
          nodes { commit { authoredDate committedDate } }
        }
        lastCommits: commits(last: 1) {
          nodes { commit { authoredDate committedDate } }
        }
        timelineItems(last: 50, itemTypes: [READY_FOR_REVIEW_EVENT, CONVERT_TO_DRAFT_EVENT, PULL_REQUEST_REVIEW]) {
          nodes {
            __typename
            ... on ReadyForReviewEvent { createdAt }
            ... on ConvertToDraftEvent { createdAt }
            ... on PullRequestReview {
              author { login ... on User { name } }
              createdAt
              state
            }
          }
        }
        additions
        deletions
        changedFiles
      }
    }
  }
}
"""


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse GitHub ISO8601 timestamps into timezone-aware UTC datetimes.

    Missing or unparseable values yield ``None`` so that the affected metric is
    omitted rather than failing the whole record.
    """
    if not value or not isinstance(value, str):
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        logger.debug("Ignoring unparseable timestamp", extra={"raw_timestamp": value})
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _nodes(connection: Any) -> List[Dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    nodes = connection.get("nodes")
    if not isinstance(nodes, list):
        return []
    return [node for node in nodes if isinstance(node, dict)]


def _total_count(connection: Any) -> int:
    if not isinstance(connection, dict):
        return 0
    return int(connection.get("totalCount") or 0)


def _parse_actor(payload: Any) -> Optional[Actor]:
    if not isinstance(payload, dict):
        return None
    return Actor(login=payload.get("login"), name=payload.get("name"))


def _parse_timeline_item(node: Dict[str, Any]) -> Optional[TimelineItem]:
    typename = node.get("__typename")
    created_at = parse_datetime(node.get("createdAt"))

    if typename == "ReadyForReviewEvent":
        return ReadyForReviewEvent(createdAt=created_at)
    if typename == "ConvertToDraftEvent":
        return ConvertToDraftEvent(createdAt=created_at)
    if typename == "PullRequestReview":
        return PullRequestReviewEvent(
            author=_parse_actor(node.get("author")),
            createdAt=created_at,
            state=str(node.get("state") or ""),
        )

    logger.debug("Skipping unrecognized timeline item", extra={"typename": typename})
    return None


def _parse_commits(node: Dict[str, Any]) -> List[Commit]:
    commits: List[Commit] = []
    seen = set()
    for key in ("firstCommits", "lastCommits", "commits"):
        for commit_node in _nodes(node.get(key)):
            commit = commit_node.get("commit")
            if not isinstance(commit, dict):
                continue
            authored = parse_datetime(commit.get("authoredDate"))
            committed = parse_datetime(commit.get("committedDate"))
            if (authored, committed) in seen:
                continue
            seen.add((authored, committed))
            commits.append(Commit(authoredDate=authored, committedDate=committed))
    return commits


def parse_pull_request(node: Dict[str, Any]) -> PullRequest:
    """Convert one GraphQL pull request node into a ``PullRequest`` snapshot.

    Raises:
        DataValidationError: If ``number`` or a parseable ``createdAt`` is missing.
    """
    number = node.get("number")
    created_at = parse_datetime(node.get("createdAt"))
    if number is None or created_at is None:
        raise DataValidationError(
            "GitHub pull request payload is missing required fields: "
            f"number={number!r}, createdAt={node.get('createdAt')!r}"
        )

    reviews = tuple(
        Review(
            author=_parse_actor(review.get("author")),
            state=str(review.get("state") or ""),
            createdAt=parse_datetime(review.get("createdAt")),
            commentCount=_total_count(review.get("comments")),
        )
        for review in _nodes(node.get("reviews"))
    )

    timeline_items = tuple(
        item
        for item in (_parse_timeline_item(raw) for raw in _nodes(node.get("timelineItems")))
        if item is not None
    )

    review_requests = tuple(
        str(reviewer["login"])
        for reviewer in (
            request.get("requestedReviewer") for request in _nodes(node.get("reviewRequests"))
        )
        if isinstance(reviewer, dict) and reviewer.get("login")
    )

    return PullRequest(
        id=str(node.get("id") or ""),
        number=int(number),
        title=str(node.get("title") or ""),
        state=str(node.get("state") or "").upper(),
        isDraft=bool(node.get("isDraft")),
        createdAt=created_at,
        closedAt=parse_datetime(node.get("closedAt")),
        mergedAt=parse_datetime(node.get("mergedAt")),
        author=_parse_actor(node.get("author")),
        baseRefName=node.get("baseRefName"),
        headRefName=node.get("headRefName"),
        url=node.get("url"),
        additions=int(node.get("additions") or 0),
        deletions=int(node.get("deletions") or 0),
        changedFiles=int(node.get("changedFiles") or 0),
        totalCommentCount=_total_count(node.get("comments")),
        reviews=reviews,
        timelineItems=timeline_items,
        commits=tuple(_parse_commits(node)),
        reviewRequests=review_requests,
    )


class GitHubClient:
    """Small, typed client for the GitHub GraphQL pull request API."""

    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated GitHub GraphQL client.

        Args:
            config: Validated runtime configuration including token and host.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._api_url = config.api_url

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"bearer {config.token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _error_detail(self, response: requests.Response) -> str:
        """Prefer the ``message`` field of a JSON error body over the raw text."""
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text

    def _remaining_seconds(self, deadline: Optional[float]) -> Optional[float]:
        """Return the seconds left before ``deadline``, or ``None`` without one.

        Raises:
            ApiError: If the deadline has already passed.
        """
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ApiError(f"GitHub request exceeded its time budget: POST {self._api_url}")
        return remaining

    def _sleep_before_retry(self, backoff_seconds: float, deadline: Optional[float]) -> None:
        remaining = self._remaining_seconds(deadline)
        if remaining is not None and backoff_seconds >= remaining:
            raise ApiError(
                f"GitHub request retry would exceed its time budget: POST {self._api_url}"
            )
        time.sleep(backoff_seconds)

    def _post_graphql(
        self,
        query: str,
        variables: Dict[str, Any],
        time_budget_seconds: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Execute a GraphQL POST with retry logic for 429/5xx responses.

        Args:
            query: GraphQL document.
            variables: GraphQL variables.
            time_budget_seconds: Optional wall-clock budget for all attempts,
                including backoff. Each attempt's timeout is capped to what
                remains of it.

        Raises:
            ApiError: If the request repeatedly fails, runs out of time budget,
                returns HTTP >= 400, does not return valid JSON, or reports
                GraphQL errors.
        """
        body = {"query": query, "variables": variables}
        deadline = None
        if time_budget_seconds is not None:
            deadline = time.monotonic() + time_budget_seconds
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            remaining = self._remaining_seconds(deadline)
            timeout = (
                self._timeout_seconds if remaining is None else min(self._timeout_seconds, remaining)
            )
            try:
                response = self._session.post(self._api_url, json=body, timeout=timeout)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(
                        f"GitHub request failed after retries: POST {self._api_url}"
                    ) from exc
                self._sleep_before_retry(
                    min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)), deadline
                )
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying GitHub request",
                    extra={"status_code": status_code, "attempt": attempt},
                )
                self._sleep_before_retry(self._extract_backoff_seconds(response, attempt), deadline)
                continue

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"POST {self._api_url} returned {status_code} - {self._error_detail(response)}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: POST {self._api_url}") from exc

            if not isinstance(payload, dict):
                raise ApiError(f"GitHub API returned unexpected payload shape: POST {self._api_url}")

            errors = payload.get("errors")
            if errors:
                messages = "; ".join(
                    str(error.get("message", error)) if isinstance(error, dict) else str(error)
                    for error in errors
                )
                raise ApiError(f"GitHub API returned errors: {messages}")

            return payload

        raise ApiError(f"GitHub request failed after retries: POST {self._api_url}") from last_error

    def fetch_pull_request_page(
        self,
        owner: str,
        name: str,
        page_size: int,
        after: Optional[str],
        states: Iterable[str],
        time_budget_seconds: Optional[float] = None,
    ) -> PullRequestPage:
        """Fetch one cursor page of pull requests.

        Nodes that lack the fields every metric depends on are skipped with a
        warning instead of failing the page.

        Raises:
            ApiError: If the request fails or exceeds ``time_budget_seconds``.
            DataValidationError: If the response has no pull request connection
                or its ``nodes`` is not a list.
        """
        payload = self._post_graphql(
            PULL_REQUEST_QUERY,
            {
                "owner": owner,
                "name": name,
                "first": page_size,
                "after": after,
                "states": list(states),
            },
            time_budget_seconds=time_budget_seconds,
        )

        data = payload.get("data")
        repository = data.get("repository") if isinstance(data, dict) else None
        connection = repository.get("pullRequests") if isinstance(repository, dict) else None
        if not isinstance(connection, dict):
            raise DataValidationError(
                f"GitHub API response has no pull request connection for {owner}/{name}"
            )

        page_info = connection.get("pageInfo")
        if not isinstance(page_info, dict):
            raise DataValidationError(
                f"GitHub API response has no pageInfo for {owner}/{name}"
            )

        raw_nodes = connection.get("nodes")
        if raw_nodes is not None and not isinstance(raw_nodes, list):
            raise DataValidationError(
                f"GitHub API response has non-list pull request nodes for {owner}/{name}"
            )

        pull_requests: List[PullRequest] = []
        for node in _nodes(connection):
            try:
                pull_requests.append(parse_pull_request(node))
            except (DataValidationError, AttributeError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed pull request node",
                    extra={"repo": f"{owner}/{name}", "error": str(exc)},
                )

        return PullRequestPage(
            nodes=pull_requests,
            end_cursor=page_info.get("endCursor"),
            has_next_page=bool(page_info.get("hasNextPage")),
        )
