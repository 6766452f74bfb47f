"""Render churn metrics as the three line deploy summary."""

import math

from deploykit.churn.compare import ChurnMetrics


def format_percent(value: float) -> str:
    # Round half up, so 0.05 renders as 0.1 rather than banker's 0.0.
    return f"{math.floor(value * 10 + 0.5) / 10:.1f}"


def format_bytes(size: float) -> str:
    if size <= 0:
        return "0.0 KB"
    kb = size / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    return f"{kb / 1024:.1f} MB"


def build_header(metrics: ChurnMetrics, *, dry_run: bool = False) -> str:
    if not metrics.has_baseline and dry_run:
        return "Client cache impact (no previous baseline, dry run; baseline not updated)"
    if not metrics.has_baseline:
        return "Client cache impact (no previous baseline)"
    if dry_run:
        return "Client cache impact (dry run; baseline not updated)"
    return "Client cache impact"


def _files_line(m: ChurnMetrics) -> str:
    details = (
        f"{m.changed_files} changed, {m.added_files} added, {m.removed_files} removed; "
        f"{m.total_old_files} -> {m.total_new_files} files"
    )
    return (
        f"  Files: {format_percent(m.download_impact_files_percent)}% new/changed, "
        f"{format_percent(m.cache_reuse_files_percent)}% reused ({details})"
    )


def _bytes_line(m: ChurnMetrics) -> str:
    details = (
        f"{format_bytes(m.changed_bytes)} changed, {format_bytes(m.added_bytes)} added, "
        f"{format_bytes(m.removed_bytes)} removed; "
        f"{format_bytes(m.total_old_bytes)} -> {format_bytes(m.total_new_bytes)}"
    )
    return (
        f"  Bytes: {format_percent(m.download_impact_bytes_percent)}% new/changed, "
        f"{format_percent(m.cache_reuse_bytes_percent)}% reused ({details})"
    )


def format_churn_metrics(metrics: ChurnMetrics, *, dry_run: bool = False) -> str:
    return "\n".join(
        [build_header(metrics, dry_run=dry_run), _files_line(metrics), _bytes_line(metrics)]
    )
