"""Tests for the churn summary text."""

from deploykit.churn.compare import compare_manifests
from deploykit.churn.format import (
    build_header,
    format_bytes,
    format_churn_metrics,
    format_percent,
)


def test_format_percent_rounds_half_up() -> None:
    assert format_percent(0.05) == "0.1"
    assert format_percent(66.666) == "66.7"
    assert format_percent(33.333) == "33.3"
    assert format_percent(0) == "0.0"
    assert format_percent(100) == "100.0"


def test_format_bytes() -> None:
    assert format_bytes(0) == "0.0 KB"
    assert format_bytes(-5) == "0.0 KB"
    assert format_bytes(512) == "0.5 KB"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(5 * 1024 * 1024) == "5.0 MB"


def test_headers() -> None:
    first = compare_manifests({}, {"a": 1})
    later = compare_manifests({"a": 1}, {"a": 1})
    assert build_header(first) == "Client cache impact (no previous baseline)"
    assert build_header(first, dry_run=True) == (
        "Client cache impact (no previous baseline, dry run; baseline not updated)"
    )
    assert build_header(later) == "Client cache impact"
    assert build_header(later, dry_run=True) == (
        "Client cache impact (dry run; baseline not updated)"
    )


def test_full_summary() -> None:
    metrics = compare_manifests(
        {"a.js": 1024, "b.js": 2048, "d.js": 512},
        {"a.js": 1024, "b.js": 4096, "c.js": 1024},
    )
    assert format_churn_metrics(metrics).split("\n") == [
        "Client cache impact",
        "  Files: 66.7% new/changed, 33.3% reused "
        "(1 changed, 1 added, 1 removed; 3 -> 3 files)",
        "  Bytes: 83.3% new/changed, 16.7% reused "
        "(4.0 KB changed, 1.0 KB added, 0.5 KB removed; 3.5 KB -> 6.0 KB)",
    ]
