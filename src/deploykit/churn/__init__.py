"""Client bundle churn: manifest building, diffing and remote baselines."""

from deploykit.churn.codec import Manifest, parse_manifest, serialize_manifest
from deploykit.churn.compare import ChurnMetrics, compare_manifests
from deploykit.churn.format import format_churn_metrics
from deploykit.churn.local import build_local_manifest, client_asset_root
from deploykit.churn.service import RemoteTarget, compute_client_churn
from deploykit.churn.store import BaselineResult, RemoteManifestStore, remote_manifest_path

__all__ = [
    "BaselineResult",
    "ChurnMetrics",
    "Manifest",
    "RemoteManifestStore",
    "RemoteTarget",
    "build_local_manifest",
    "client_asset_root",
    "compare_manifests",
    "compute_client_churn",
    "format_churn_metrics",
    "parse_manifest",
    "remote_manifest_path",
    "serialize_manifest",
]
