"""Statistics and formatting helpers for pull request metric reporting.

This module provides utilities for:
- Computing linear-interpolation percentiles from pre-sorted samples.
- Aggregating P50/P75/P90 and sample counts for each duration metric.
- Formatting hour-based durations as ``HH:MM:SS``.
- Building a human-readable report from a ``MetricsReport``.
- Listing the values available to the pull request filters.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

from .filters import FilterOptions
from .models import MetricsReport

DURATION_METRICS: Tuple[Tuple[str, str], ...] = (
    ("time_in_draft", "Time in Draft (Creation to Ready for Review)"),
    ("time_to_first_review", "Time to First Review (Ready to First Verdict)"),
    ("review_time", "Review Time (First Verdict to Approval or Merge)"),
    ("merge_time", "Merge Time (Last Approval to Merge)"),
    ("cycle_time", "Cycle Time (Creation to Merge)"),
)

TOP_REVIEWERS = 10


def calculate_percentile(sorted_values: List[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    Empty input returns ``None``; ``p`` of 0 and 100 return the first and last
    values.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def compute_statistics(samples: Iterable[Optional[float]]) -> Dict[str, Optional[float]]:
    """Compute P50, P75, P90 and sample count for duration samples in hours.

    ``None``, NaN and negative samples are ignored.
    """
    clean_samples = sorted(
        sample
        for sample in samples
        if sample is not None and not math.isnan(sample) and sample >= 0
    )

    return {
        "p50": calculate_percentile(clean_samples, 50),
        "p75": calculate_percentile(clean_samples, 75),
        "p90": calculate_percentile(clean_samples, 90),
        "count": len(clean_samples),
    }


def summarize_report(report: MetricsReport) -> Dict[str, Dict[str, Optional[float]]]:
    """Compute statistics for every duration metric of a report."""
    return {
        metric: compute_statistics(getattr(record, metric) for record in report.per_pr)
        for metric, _ in DURATION_METRICS
    }


def format_hours(hours: Optional[float]) -> str:
    """Format a duration in hours as ``HH:MM:SS``, or ``"n/a"`` when missing."""
    if hours is None:
        return "n/a"

    total_seconds = int(round(hours * 3600))
    hh = total_seconds // 3600
    mm = (total_seconds % 3600) // 60
    ss = total_seconds % 60
    return f"{hh:02d}:{mm:02d}:{ss:02d}"


def generate_report(repo_name: str, report: MetricsReport) -> str:
    """Generate a human-readable metrics report for a repository."""
    summary = report.summary
    statistics = summarize_report(report)

    lines = [
        f"Repository: {repo_name}",
        "PR Lifecycle Metrics Report",
        "",
        f"Pull requests: {summary.count} "
        f"(open: {summary.open}, merged: {summary.merged}, closed: {summary.closed})",
    ]

    for index, (metric, title) in enumerate(DURATION_METRICS, start=1):
        stats = statistics[metric]
        lines.extend(
            [
                "",
                f"{index}) {title}",
                f"   Samples: {stats['count']}",
                f"   P50: {format_hours(stats['p50'])}",
                f"   P75: {format_hours(stats['p75'])}",
                f"   P90: {format_hours(stats['p90'])}",
            ]
        )

    sizes = [record.size.lines_changed for record in report.per_pr]
    depths = [record.review_depth for record in report.per_pr]
    size_stats = compute_statistics(sizes)
    depth_stats = compute_statistics(depths)
    lines.extend(
        [
            "",
            "Size and Review Depth (P50)",
            f"   Lines changed: {_format_count(size_stats['p50'])}",
            f"   Comments: {_format_count(depth_stats['p50'])}",
            "",
            "Top Reviewers (approvals)",
        ]
    )

    if report.reviewer_contribution:
        for reviewer, count in report.reviewer_contribution[:TOP_REVIEWERS]:
            lines.append(f"   {reviewer}: {count}")
    else:
        lines.append("   none")

    lines.extend(["", "Pending Review Requests (open PRs)"])
    if report.pending_review_requests:
        for reviewer, count in report.pending_review_requests[:TOP_REVIEWERS]:
            lines.append(f"   {reviewer}: {count}")
    else:
        lines.append("   none")

    if report.errors:
        lines.extend(["", f"Errors: {len(report.errors)} pull request(s) could not be processed"])
        for error in report.errors:
            lines.append(f"   #{error.pr_number}: {error.message}")

    return "\n".join(lines)


def _format_count(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:g}"


def generate_filter_options_report(repo_name: str, options: FilterOptions) -> str:
    """List the values available to the author, branch and approver filters."""
    lines = [f"Repository: {repo_name}", "Filter Options"]
    for title, values in (
        ("Authors", options.authors),
        ("Target branches", options.branches),
        ("Approvers", options.approvers),
    ):
        lines.extend(["", f"{title} ({len(values)})"])
        lines.extend(f"   {value}" for value in values)
        if not values:
            lines.append("   none")
    return "\n".join(lines)
