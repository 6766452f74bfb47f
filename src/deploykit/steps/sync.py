"""Mirror the local build output into ``{remote_dir}/.output`` with rsync."""

from __future__ import annotations

import logging
import os
import posixpath
import stat
from dataclasses import dataclass, field
from pathlib import Path

from deploykit.errors import SyncError, TransportError
from deploykit.process import OutputOptions, run_process
from deploykit.remote.files import ShellRemoteFiles
from deploykit.remote.transport import SshTransport

logger = logging.getLogger(__name__)

REMOTE_OUTPUT_DIR = ".output"
RSYNC_BASE_ARGS: tuple[str, ...] = ("-a", "-z", "--delete", "--timeout=60", "-e", "ssh")


@dataclass(slots=True)
class SyncOptions:
    ssh_connection_string: str
    remote_dir: str
    local_output_dir: str | Path = REMOTE_OUTPUT_DIR
    dry_run: bool = False
    output: OutputOptions = field(default_factory=OutputOptions)


def _ensure_local_output_dir(local_dir: Path) -> None:
    try:
        mode = local_dir.stat().st_mode
    except FileNotFoundError as exc:
        raise SyncError(
            f"Local output directory does not exist: {local_dir}",
            code="SYNC_NO_LOCAL_OUTPUT_DIR",
        ) from exc
    except OSError as exc:
        raise SyncError(str(exc), code="SYNC_NO_LOCAL_OUTPUT_DIR") from exc
    if not stat.S_ISDIR(mode):
        raise SyncError(
            f"Local output directory is not a directory: {local_dir}",
            code="SYNC_NO_LOCAL_OUTPUT_DIR",
        )


def _ensure_remote_dir(options: SyncOptions, remote_target: str) -> None:
    files = ShellRemoteFiles(SshTransport(options.ssh_connection_string, output=options.output))
    try:
        result = files.mkdir(remote_target)
    except TransportError as exc:
        raise SyncError(str(exc), code="SYNC_SSH_FAILED") from exc
    if not result.ok:
        raise SyncError(result.failure_reason("creating remote directory"), code="SYNC_SSH_FAILED")


def rsync_argv(
    local_dir: Path, connection_string: str, remote_target: str, dry_run: bool
) -> list[str]:
    source = str(local_dir)
    if not source.endswith(os.sep):
        source += os.sep
    target = remote_target if remote_target.endswith("/") else f"{remote_target}/"
    args = ["rsync", *RSYNC_BASE_ARGS]
    if dry_run:
        args.append("--dry-run")
    return [*args, source, f"{connection_string}:{target}"]


def sync_build(options: SyncOptions) -> None:
    local_dir = Path(options.local_output_dir)
    if not local_dir.is_absolute():
        local_dir = Path.cwd() / local_dir
    _ensure_local_output_dir(local_dir)

    remote_target = posixpath.join(options.remote_dir, REMOTE_OUTPUT_DIR)
    if not options.dry_run:
        _ensure_remote_dir(options, remote_target)

    argv = rsync_argv(local_dir, options.ssh_connection_string, remote_target, options.dry_run)
    try:
        result = run_process(argv, output=options.output, capture=True)
    except OSError as exc:
        raise SyncError(str(exc), code="SYNC_RSYNC_FAILED") from exc
    if not result.ok:
        raise SyncError(
            result.stderr or f"rsync exited with code {result.returncode}",
            code="SYNC_RSYNC_FAILED",
        )
    logger.info("synced %s to %s:%s", local_dir, options.ssh_connection_string, remote_target)
