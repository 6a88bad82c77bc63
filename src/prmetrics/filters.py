"""Pull request filtering applied before metrics are computed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Sequence

from .models import APPROVED, PullRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequestFilter:
    """Criteria a pull request must satisfy to be included in metrics.

    Login comparisons are case-insensitive. ``end_date`` includes the whole
    day. ``exclude_branch_pattern`` ending in ``/**`` excludes every target
    branch with that prefix; any other value excludes an exact branch name.
    """

    author: Optional[str] = None
    approver: Optional[str] = None
    target_branch: Optional[str] = None
    status: Optional[str] = None
    exclude_author: Optional[str] = None
    exclude_branch_pattern: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class FilterOptions:
    """Distinct values available for the login and branch filters."""

    authors: List[str]
    branches: List[str]
    approvers: List[str]


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _author_login(pr: PullRequest) -> Optional[str]:
    return pr.author.login if pr.author is not None else None


def _approver_logins(pr: PullRequest) -> List[str]:
    return [
        review.author.login
        for review in pr.reviews
        if review.state == APPROVED and review.author is not None and review.author.login
    ]


def _branch_excluded(branch: Optional[str], pattern: str) -> bool:
    if not branch:
        return False
    if pattern.endswith("/**"):
        return branch.startswith(pattern[:-3])
    return branch == pattern


def matches(pr: PullRequest, criteria: PullRequestFilter) -> bool:
    """Return ``True`` when ``pr`` satisfies every criterion that is set."""
    if criteria.start_date is not None and pr.createdAt < _start_of_day(criteria.start_date):
        return False

    if criteria.end_date is not None:
        if pr.createdAt >= _start_of_day(criteria.end_date + timedelta(days=1)):
            return False

    author = (_author_login(pr) or "").lower()

    if criteria.author and author != criteria.author.lower():
        return False

    if criteria.status and pr.state != criteria.status.upper():
        return False

    if criteria.target_branch and pr.baseRefName != criteria.target_branch:
        return False

    if criteria.approver:
        approver = criteria.approver.lower()
        if not any(login.lower() == approver for login in _approver_logins(pr)):
            return False

    if criteria.exclude_author and author == criteria.exclude_author.lower():
        return False

    if criteria.exclude_branch_pattern and _branch_excluded(
        pr.baseRefName, criteria.exclude_branch_pattern
    ):
        return False

    return True


def filter_pull_requests(
    prs: Sequence[PullRequest], criteria: Optional[PullRequestFilter] = None
) -> List[PullRequest]:
    """Return the pull requests matching ``criteria``, preserving order."""
    if criteria is None:
        return list(prs)

    filtered = [pr for pr in prs if matches(pr, criteria)]
    logger.info(
        "Filtered pull requests",
        extra={"prs_total": len(prs), "prs_matched": len(filtered)},
    )
    return filtered


def filter_options(prs: Sequence[PullRequest]) -> FilterOptions:
    """Collect sorted distinct authors, target branches and approvers."""
    authors = {login for login in (_author_login(pr) for pr in prs) if login}
    branches = {pr.baseRefName for pr in prs if pr.baseRefName}
    approvers = {login for pr in prs for login in _approver_logins(pr)}
    return FilterOptions(
        authors=sorted(authors),
        branches=sorted(branches),
        approvers=sorted(approvers),
    )
