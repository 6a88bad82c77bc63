"""Domain models for GitHub pull request lifecycle metrics.

Snapshot models mirror the GraphQL payload field names and are frozen: they are
created once at fetch time and never mutated. Derived records (timelines and
metrics) are recomputed on every metrics request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

APPROVED = "APPROVED"
CHANGES_REQUESTED = "CHANGES_REQUESTED"
COMMENTED = "COMMENTED"
DISMISSED = "DISMISSED"

REVIEW_VERDICT_STATES = frozenset({APPROVED, CHANGES_REQUESTED, DISMISSED})


@dataclass(frozen=True, slots=True)
class Actor:
    """Represents a GitHub user attached to a pull request, review or event."""

    login: Optional[str] = None
    name: Optional[str] = None

    @property
    def identifier(self) -> Optional[str]:
        """Display name when available, otherwise the login."""
        return self.name or self.login or None


@dataclass(frozen=True, slots=True)
class Review:
    """Represents one submitted review from the explicit review list."""

    author: Optional[Actor]
    state: str
    createdAt: Optional[datetime]
    commentCount: int = 0


@dataclass(frozen=True, slots=True)
class ReadyForReviewEvent:
    """Timeline event: the pull request left draft mode."""

    createdAt: Optional[datetime]


@dataclass(frozen=True, slots=True)
class ConvertToDraftEvent:
    """Timeline event: the pull request was converted back to a draft."""

    createdAt: Optional[datetime]


@dataclass(frozen=True, slots=True)
class PullRequestReviewEvent:
    """Timeline view of a review; redundant with ``PullRequest.reviews``."""

    author: Optional[Actor]
    createdAt: Optional[datetime]
    state: str


TimelineItem = Union[ReadyForReviewEvent, ConvertToDraftEvent, PullRequestReviewEvent]


@dataclass(frozen=True, slots=True)
class Commit:
    """Represents the dates of one commit from the bounded commit window."""

    authoredDate: Optional[datetime]
    committedDate: Optional[datetime]


@dataclass(frozen=True, slots=True)
class PullRequest:
    """Represents the pull request snapshot required for metric calculations."""

    id: str
    number: int
    title: str
    state: str
    isDraft: bool
    createdAt: datetime
    closedAt: Optional[datetime] = None
    mergedAt: Optional[datetime] = None
    author: Optional[Actor] = None
    baseRefName: Optional[str] = None
    headRefName: Optional[str] = None
    url: Optional[str] = None
    additions: int = 0
    deletions: int = 0
    changedFiles: int = 0
    totalCommentCount: int = 0
    reviews: Tuple[Review, ...] = ()
    timelineItems: Tuple[TimelineItem, ...] = ()
    commits: Tuple[Commit, ...] = ()
    reviewRequests: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PullRequestPage:
    """Represents one cursor page of pull requests."""

    nodes: List[PullRequest]
    end_cursor: Optional[str]
    has_next_page: bool


@dataclass(frozen=True, slots=True)
class CanonicalTimeline:
    """Canonical lifecycle timestamps resolved from a pull request's history."""

    ready_at: Optional[datetime]
    first_review_at: Optional[datetime]
    last_approval_at: Optional[datetime]
    first_commit_at: datetime


@dataclass(frozen=True, slots=True)
class PullRequestSize:
    """Represents the size of a change set."""

    lines_changed: int
    files_changed: int


@dataclass(frozen=True, slots=True)
class MetricRecord:
    """Represents the metrics derived for one pull request; durations are hours."""

    pr_number: int
    timeline: CanonicalTimeline
    size: PullRequestSize
    review_depth: int
    approvals: Tuple[str, ...] = ()
    requested_reviewers: Tuple[str, ...] = ()
    time_in_draft: Optional[float] = None
    time_to_first_review: Optional[float] = None
    cycle_time: Optional[float] = None
    review_time: Optional[float] = None
    merge_time: Optional[float] = None

    @property
    def approvers(self) -> Tuple[str, ...]:
        """Distinct approver identifiers in first-approval order."""
        return tuple(dict.fromkeys(self.approvals))


@dataclass(frozen=True, slots=True)
class MetricError:
    """Represents a pull request that could not be processed."""

    pr_number: Any
    message: str


@dataclass(frozen=True, slots=True)
class StateSummary:
    """Partition of a pull request set into open, merged and closed-not-merged."""

    count: int = 0
    open: int = 0
    merged: int = 0
    closed: int = 0


@dataclass(slots=True)
class MetricsReport:
    """Represents the output of one metrics computation over a PR batch."""

    per_pr: List[MetricRecord] = field(default_factory=list)
    summary: StateSummary = field(default_factory=StateSummary)
    reviewer_contribution: List[Tuple[str, int]] = field(default_factory=list)
    pending_review_requests: List[Tuple[str, int]] = field(default_factory=list)
    errors: List[MetricError] = field(default_factory=list)
