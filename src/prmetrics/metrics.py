"""Metrics derivation for GitHub pull request lifecycles.

This module turns each pull request snapshot into a ``MetricRecord`` with
hour-based durations:

- time in draft (creation to ready for review)
- time to first review (ready for review to first review verdict)
- cycle time (creation to merge)
- review time (first review verdict to last approval, or to merge)
- merge time (last approval to merge)

plus change size, review depth and outstanding review requests, and folds a
batch of records into a state summary, a reviewer contribution ranking and a
count of pending review requests per reviewer on open pull requests. A metric
whose inputs are missing or inconsistent is omitted (``None``), never zeroed.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .models import (
    APPROVED,
    Actor,
    MetricError,
    MetricRecord,
    MetricsReport,
    PullRequest,
    PullRequestSize,
    StateSummary,
)
from .timeline import resolve_timeline

logger = logging.getLogger(__name__)

MetricResult = Union[MetricRecord, MetricError]


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Return ``end - start`` in hours, or ``None`` when it cannot be computed.

    The result may be negative; callers apply their own ordering guard.
    """
    if start is None or end is None:
        return None

    try:
        hours = (end - start).total_seconds() / 3600
    except TypeError:
        logger.debug("Skipping duration due to incompatible datetime types")
        return None

    if not math.isfinite(hours):
        return None
    return hours


def reviewer_identifier(author: Optional[Actor]) -> Optional[str]:
    """Identify a reviewer by display name, falling back to login."""
    if author is None:
        return None
    return author.identifier


def approval_identifiers(pr: PullRequest) -> Tuple[str, ...]:
    """Return the reviewer identifier of every approval, duplicates included."""
    identifiers = []
    for review in pr.reviews:
        if review.state != APPROVED:
            continue
        identifier = reviewer_identifier(review.author)
        if identifier:
            identifiers.append(identifier)
    return tuple(identifiers)


def compute_pull_request_metrics(pr: PullRequest) -> MetricRecord:
    """Compute every metric for a single pull request.

    Raises whatever the underlying data access raises; batch callers should
    use :func:`evaluate_pull_request` instead.
    """
    timeline = resolve_timeline(pr)
    ready_at = timeline.ready_at
    first_review_at = timeline.first_review_at
    last_approval_at = timeline.last_approval_at
    merged_at = pr.mergedAt

    time_in_draft = None
    if ready_at is not None and ready_at > pr.createdAt:
        time_in_draft = hours_between(pr.createdAt, ready_at)

    time_to_first_review = None
    if ready_at is not None and first_review_at is not None and first_review_at >= ready_at:
        time_to_first_review = hours_between(ready_at, first_review_at)

    cycle_time = hours_between(pr.createdAt, merged_at)
    if cycle_time is not None and cycle_time < 0:
        logger.debug(
            "Skipping cycle time due to negative duration",
            extra={"pr_number": pr.number, "duration_hours": cycle_time},
        )
        cycle_time = None

    review_end_at = last_approval_at
    if review_end_at is None and merged_at is not None and first_review_at is not None:
        if merged_at >= first_review_at:
            review_end_at = merged_at

    review_time = None
    if first_review_at is not None and review_end_at is not None:
        review_time = hours_between(first_review_at, review_end_at)
        if review_time is not None and review_time < 0:
            review_time = None

    merge_time = hours_between(last_approval_at, merged_at)
    if merge_time is not None and merge_time < 0:
        merge_time = None

    review_comment_count = sum(review.commentCount for review in pr.reviews)

    return MetricRecord(
        pr_number=pr.number,
        timeline=timeline,
        size=PullRequestSize(
            lines_changed=pr.additions + pr.deletions,
            files_changed=pr.changedFiles,
        ),
        review_depth=pr.totalCommentCount + review_comment_count,
        approvals=approval_identifiers(pr),
        requested_reviewers=tuple(pr.reviewRequests),
        time_in_draft=time_in_draft,
        time_to_first_review=time_to_first_review,
        cycle_time=cycle_time,
        review_time=review_time,
        merge_time=merge_time,
    )


def evaluate_pull_request(pr: PullRequest) -> MetricResult:
    """Compute metrics for one pull request, converting any failure to a ``MetricError``."""
    try:
        return compute_pull_request_metrics(pr)
    except Exception as exc:  # noqa: BLE001
        pr_number = getattr(pr, "number", None)
        if pr_number is None:
            pr_number = "unknown"
        logger.error(
            "Error processing pull request",
            extra={"pr_number": pr_number, "error": str(exc)},
        )
        return MetricError(pr_number=pr_number, message=str(exc) or type(exc).__name__)


def summarize_states(prs: Sequence[PullRequest]) -> StateSummary:
    """Partition pull requests into open, merged and closed-not-merged counts."""
    open_count = merged_count = closed_count = 0
    for pr in prs:
        state = str(getattr(pr, "state", "") or "").upper()
        if state == "MERGED" or getattr(pr, "mergedAt", None) is not None:
            merged_count += 1
        elif state == "OPEN":
            open_count += 1
        else:
            closed_count += 1

    return StateSummary(
        count=len(prs),
        open=open_count,
        merged=merged_count,
        closed=closed_count,
    )


def rank_reviewers(identifiers: Iterable[str]) -> List[Tuple[str, int]]:
    """Count occurrences per reviewer, such as approvals, highest count first.

    Ties keep the order in which reviewers were first seen.
    """
    counts = Counter(identifiers)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def compute_metrics(prs: Optional[Sequence[PullRequest]]) -> MetricsReport:
    """Compute per-PR metrics and batch aggregates.

    Returns a ``MetricsReport`` whose ``errors`` list holds one entry per pull
    request that could not be processed; all other pull requests still
    contribute to the per-PR records, the reviewer ranking and the pending
    review requests of open pull requests. The state summary always covers
    the whole input.
    """
    if not prs:
        return MetricsReport()

    records: List[MetricRecord] = []
    errors: List[MetricError] = []
    pending_requests: List[str] = []

    for pr in prs:
        result = evaluate_pull_request(pr)
        if isinstance(result, MetricError):
            errors.append(result)
            continue
        records.append(result)
        if pr.state == "OPEN":
            pending_requests.extend(result.requested_reviewers)

    report = MetricsReport(
        per_pr=records,
        summary=summarize_states(prs),
        reviewer_contribution=rank_reviewers(
            identifier for record in records for identifier in record.approvals
        ),
        pending_review_requests=rank_reviewers(pending_requests),
        errors=errors,
    )

    logger.info(
        "Computed pull request metrics",
        extra={
            "prs_total": len(prs),
            "records": len(records),
            "errors": len(errors),
        },
    )
    return report
