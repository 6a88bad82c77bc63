"""Canonical lifecycle timestamps for a pull request.

GitHub exposes the same review events twice: as the explicit review list and
as entries of the (tail-truncated) timeline. Each resolution step below names
its source and fallback so the precedence stays auditable:

- ready for review: last ready event vs. last draft event, else creation time
  when the PR was never a draft
- first review: explicit verdict reviews, else timeline verdict reviews
- last approval: explicit approvals only
- first commit: earliest commit date in the window, else creation time
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .models import (
    APPROVED,
    REVIEW_VERDICT_STATES,
    CanonicalTimeline,
    ConvertToDraftEvent,
    PullRequest,
    PullRequestReviewEvent,
    ReadyForReviewEvent,
)


def _latest(timestamps: Iterable[Optional[datetime]]) -> Optional[datetime]:
    return max((value for value in timestamps if value is not None), default=None)


def _earliest(timestamps: Iterable[Optional[datetime]]) -> Optional[datetime]:
    return min((value for value in timestamps if value is not None), default=None)


def find_ready_for_review_time(pr: PullRequest) -> Optional[datetime]:
    """Return when the PR last became reviewable, or ``None`` if it is not."""
    last_ready = _latest(
        item.createdAt for item in pr.timelineItems if isinstance(item, ReadyForReviewEvent)
    )
    last_draft = _latest(
        item.createdAt for item in pr.timelineItems if isinstance(item, ConvertToDraftEvent)
    )

    if last_ready is not None and (last_draft is None or last_ready > last_draft):
        return last_ready

    if last_ready is None and not pr.isDraft:
        return pr.createdAt

    return None


def find_first_review_time(pr: PullRequest) -> Optional[datetime]:
    """Return the earliest review verdict; ``COMMENTED`` reviews do not count."""
    from_reviews = _earliest(
        review.createdAt for review in pr.reviews if review.state in REVIEW_VERDICT_STATES
    )
    if from_reviews is not None:
        return from_reviews

    return _earliest(
        item.createdAt
        for item in pr.timelineItems
        if isinstance(item, PullRequestReviewEvent) and item.state in REVIEW_VERDICT_STATES
    )


def find_last_approval_time(pr: PullRequest) -> Optional[datetime]:
    """Return the latest approval from the explicit review list."""
    return _latest(review.createdAt for review in pr.reviews if review.state == APPROVED)


def find_first_commit_time(pr: PullRequest) -> datetime:
    first_commit = _earliest(
        timestamp
        for commit in pr.commits
        for timestamp in (commit.authoredDate, commit.committedDate)
    )
    return first_commit if first_commit is not None else pr.createdAt


def resolve_timeline(pr: PullRequest) -> CanonicalTimeline:
    """Resolve all canonical lifecycle timestamps of ``pr``."""
    return CanonicalTimeline(
        ready_at=find_ready_for_review_time(pr),
        first_review_at=find_first_review_time(pr),
        last_approval_at=find_last_approval_time(pr),
        first_commit_at=find_first_commit_time(pr),
    )
