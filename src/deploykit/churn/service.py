"""Client churn workflow: local manifest, remote baseline, compare, store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from deploykit.churn.compare import ChurnMetrics, compute_churn_from_manifests
from deploykit.churn.local import build_local_manifest
from deploykit.churn.store import RemoteManifestStore, remote_manifest_path
from deploykit.errors import ChurnError
from deploykit.remote.files import RemoteFiles, ShellRemoteFiles
from deploykit.remote.transport import SshTransport

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RemoteTarget:
    ssh_connection_string: str
    remote_dir: str

    @property
    def manifest_path(self) -> str:
        return remote_manifest_path(self.remote_dir)


def compute_client_churn(
    asset_root: Path,
    target: RemoteTarget,
    *,
    upload_baseline: bool,
    files: RemoteFiles | None = None,
) -> ChurnMetrics:
    """Compare *asset_root* against the baseline stored on *target*.

    Runs strictly in order and aborts on the first failure. When
    ``upload_baseline`` is false (dry run) the remote host is only read.
    """
    local_content = build_local_manifest(asset_root)

    if files is None:
        files = ShellRemoteFiles(SshTransport(target.ssh_connection_string))
    store = RemoteManifestStore(files=files, path=target.manifest_path)

    baseline = store.fetch_baseline()
    if baseline.kind == "error":
        raise ChurnError(baseline.reason, code="CHURN_REMOTE_MANIFEST_FETCH_FAILED")

    metrics = compute_churn_from_manifests(baseline, local_content)
    logger.info(
        "churn for %s: %d stable, %d changed, %d added, %d removed",
        asset_root,
        metrics.stable_files,
        metrics.changed_files,
        metrics.added_files,
        metrics.removed_files,
    )

    if upload_baseline:
        store.upload_baseline(local_content)
    return metrics
