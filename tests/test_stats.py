"""Tests for statistical calculations and report rendering."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from prmetrics.filters import FilterOptions
from prmetrics.models import (
    CanonicalTimeline,
    MetricError,
    MetricRecord,
    MetricsReport,
    PullRequestSize,
    StateSummary,
)
from prmetrics.stats import (
    calculate_percentile,
    compute_statistics,
    format_hours,
    generate_filter_options_report,
    generate_report,
    summarize_report,
)

_TIMELINE = CanonicalTimeline(
    ready_at=None,
    first_review_at=None,
    last_approval_at=None,
    first_commit_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


def _record(pr_number: int, cycle_time=None, review_time=None, lines: int = 10, depth: int = 1) -> MetricRecord:
    return MetricRecord(
        pr_number=pr_number,
        timeline=_TIMELINE,
        size=PullRequestSize(lines_changed=lines, files_changed=1),
        review_depth=depth,
        cycle_time=cycle_time,
        review_time=review_time,
    )


def test_calculate_percentile_empty_returns_none():
    """Verify percentile calculation returns None when sample list is empty."""
    assert calculate_percentile([], 50) is None


def test_calculate_percentile_multiple_values_p50_p75_p90():
    """Verify linear interpolation percentile values for a multi-value sorted sample."""
    values = [10.0, 20.0, 30.0, 40.0]
    assert calculate_percentile(values, 50) == pytest.approx(25.0)
    assert calculate_percentile(values, 75) == pytest.approx(32.5)
    assert calculate_percentile(values, 90) == pytest.approx(37.0)


def test_calculate_percentile_out_of_range_raises():
    """Verify percentiles outside [0, 100] are rejected."""
    with pytest.raises(ValueError):
        calculate_percentile([1.0], 101)


def test_compute_statistics_filters_missing_and_invalid_samples():
    """Verify omitted metrics, NaN and negative values are ignored."""
    stats = compute_statistics([1.0, None, 2.0, float("nan"), -3.0, 3.0])

    assert stats["count"] == 3
    assert stats["p50"] == pytest.approx(2.0)


def test_format_hours_handles_none_and_fractions():
    """Verify hour durations are rendered as HH:MM:SS."""
    assert format_hours(None) == "n/a"
    assert format_hours(0) == "00:00:00"
    assert format_hours(1.5) == "01:30:00"
    assert format_hours(30 + 1 / 3600) == "30:00:01"


def test_summarize_report_collects_each_duration_metric():
    """Verify per-metric statistics skip records where the metric was omitted."""
    report = MetricsReport(per_pr=[_record(1, cycle_time=10.0), _record(2, cycle_time=20.0, review_time=4.0)])

    statistics = summarize_report(report)

    assert statistics["cycle_time"]["count"] == 2
    assert statistics["cycle_time"]["p50"] == pytest.approx(15.0)
    assert statistics["review_time"]["count"] == 1
    assert statistics["time_in_draft"]["count"] == 0
    assert statistics["time_in_draft"]["p50"] is None


def test_generate_report_contains_sections_reviewers_and_errors():
    """Verify the report lists the summary, metric sections, reviewers and errors."""
    report = MetricsReport(
        per_pr=[_record(1, cycle_time=2.0, lines=100, depth=4), _record(2, cycle_time=4.0, lines=50, depth=2)],
        summary=StateSummary(count=3, open=1, merged=2, closed=0),
        reviewer_contribution=[("Amy Z.", 3), ("bob", 1)],
        errors=[MetricError(pr_number=9, message="bad timestamp")],
    )

    text = generate_report("octo/repo", report)

    assert "Repository: octo/repo" in text
    assert "Pull requests: 3 (open: 1, merged: 2, closed: 0)" in text
    assert "Cycle Time (Creation to Merge)" in text
    assert "P50: 03:00:00" in text
    assert "Lines changed: 75" in text
    assert "Comments: 3" in text
    assert "Amy Z.: 3" in text
    assert "#9: bad timestamp" in text


def test_generate_report_without_data():
    """Verify an empty report renders placeholders."""
    text = generate_report("octo/repo", MetricsReport())

    assert "Samples: 0" in text
    assert "P50: n/a" in text
    assert "none" in text
    assert "Errors" not in text


def test_generate_report_lists_pending_review_requests():
    """Verify reviewers with outstanding requests are listed in their own section."""
    report = MetricsReport(pending_review_requests=[("erin", 2), ("dana", 1)])

    text = generate_report("octo/repo", report)

    section = text.split("Pending Review Requests (open PRs)")[1]
    assert "erin: 2" in section
    assert "dana: 1" in section


def test_generate_filter_options_report_lists_each_value():
    """Verify filter options are printed per category with placeholders when empty."""
    options = FilterOptions(authors=["alice", "bob"], branches=["main"], approvers=[])

    text = generate_filter_options_report("octo/repo", options)

    assert text.splitlines()[:2] == ["Repository: octo/repo", "Filter Options"]
    assert "Authors (2)\n   alice\n   bob" in text
    assert "Target branches (1)\n   main" in text
    assert "Approvers (0)\n   none" in text
