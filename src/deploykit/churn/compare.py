"""Diff two manifests into cache-impact metrics."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from deploykit.churn.codec import Manifest, parse_manifest
from deploykit.churn.store import BaselineResult
from deploykit.errors import ChurnError


@dataclass(slots=True, frozen=True)
class ChurnMetrics:
    """Cache impact of a new client bundle versus the previous deploy.

    A path present in both manifests with the same size is *stable*; with a
    different size it is *changed* and counted with its new size, since a
    returning client must download the whole new asset. Percentages are
    relative to the new bundle and are 0 when it is empty.
    """

    total_old_files: int
    total_new_files: int
    stable_files: int
    changed_files: int
    added_files: int
    removed_files: int

    total_old_bytes: int
    total_new_bytes: int
    stable_bytes: int
    changed_bytes: int
    added_bytes: int
    removed_bytes: int

    download_impact_files_percent: float
    cache_reuse_files_percent: float
    download_impact_bytes_percent: float
    cache_reuse_bytes_percent: float

    @property
    def has_baseline(self) -> bool:
        return self.total_old_files > 0 or self.total_old_bytes > 0

    def to_dict(self) -> dict[str, float]:
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _percent(part: int, total: int) -> float:
    return part * 100 / total if total > 0 else 0.0


def compare_manifests(old: Manifest, new: Manifest) -> ChurnMetrics:
    stable_files = changed_files = added_files = removed_files = 0
    stable_bytes = changed_bytes = added_bytes = removed_bytes = 0

    for path, new_size in new.items():
        old_size = old.get(path)
        if old_size is None:
            added_files += 1
            added_bytes += new_size
        elif old_size == new_size:
            stable_files += 1
            stable_bytes += new_size
        else:
            changed_files += 1
            changed_bytes += new_size

    for path, old_size in old.items():
        if path not in new:
            removed_files += 1
            removed_bytes += old_size

    total_new_files = len(new)
    total_new_bytes = sum(new.values())
    return ChurnMetrics(
        total_old_files=len(old),
        total_new_files=total_new_files,
        stable_files=stable_files,
        changed_files=changed_files,
        added_files=added_files,
        removed_files=removed_files,
        total_old_bytes=sum(old.values()),
        total_new_bytes=total_new_bytes,
        stable_bytes=stable_bytes,
        changed_bytes=changed_bytes,
        added_bytes=added_bytes,
        removed_bytes=removed_bytes,
        download_impact_files_percent=_percent(changed_files + added_files, total_new_files),
        cache_reuse_files_percent=_percent(stable_files, total_new_files),
        download_impact_bytes_percent=_percent(changed_bytes + added_bytes, total_new_bytes),
        cache_reuse_bytes_percent=_percent(stable_bytes, total_new_bytes),
    )


def compute_churn_from_manifests(baseline: BaselineResult, local_content: str) -> ChurnMetrics:
    """Compare a fetched baseline with the local manifest text.

    ``baseline`` must not be an error result; a missing baseline compares as
    an empty manifest, so every local file counts as added.
    """
    if baseline.kind == "error":
        raise ChurnError(baseline.reason, code="CHURN_REMOTE_MANIFEST_FETCH_FAILED")
    try:
        old = parse_manifest(baseline.content if baseline.kind == "ok" else "")
        return compare_manifests(old, parse_manifest(local_content))
    except Exception as exc:
        raise ChurnError(str(exc), code="CHURN_COMPUTE_FAILED") from exc
