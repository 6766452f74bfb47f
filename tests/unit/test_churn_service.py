"""Tests for the end-to-end client churn workflow against a fake remote."""

import base64
import os
import sys
from pathlib import Path

import pytest

from deploykit.churn.service import RemoteTarget, compute_client_churn
from deploykit.errors import ChurnError

TARGET = RemoteTarget(ssh_connection_string="deploy@example.com", remote_dir="/srv/app")


@pytest.fixture
def bundle(tmp_path: Path, asset) -> Path:
    root = tmp_path / "public" / "_nuxt"
    asset(root, "entry.js", 100)
    asset(root, "app.css", 40)
    asset(root, "chunks/page.js", 60)
    return root


def test_first_deploy_reports_all_files_added(bundle: Path, remote_files) -> None:
    metrics = compute_client_churn(bundle, TARGET, upload_baseline=True, files=remote_files)

    assert metrics.added_files == 3
    assert metrics.stable_files == metrics.changed_files == metrics.removed_files == 0
    assert metrics.added_bytes == 200
    assert remote_files.writes == [
        ("/srv/app/.deploy/manifest", "100  ./entry.js\n40  ./app.css\n60  ./chunks/page.js\n")
    ]


def test_second_deploy_compares_against_stored_baseline(
    bundle: Path, remote_files, asset
) -> None:
    compute_client_churn(bundle, TARGET, upload_baseline=True, files=remote_files)
    asset(bundle, "entry.js", 120)
    asset(bundle, "chunks/other.js", 5)
    (bundle / "chunks" / "page.js").unlink()

    metrics = compute_client_churn(bundle, TARGET, upload_baseline=True, files=remote_files)

    assert metrics.stable_files == 1
    assert metrics.changed_files == 1
    assert metrics.added_files == 1
    assert metrics.removed_files == 1
    assert metrics.changed_bytes == 120
    assert len(remote_files.writes) == 2


def test_dry_run_never_writes(bundle: Path, remote_files) -> None:
    remote_files.files[TARGET.manifest_path] = "100  ./entry.js\n"

    metrics = compute_client_churn(bundle, TARGET, upload_baseline=False, files=remote_files)

    assert metrics.stable_files == 1
    assert remote_files.writes == []


def test_missing_bundle_fails_before_touching_remote(tmp_path: Path, remote_files) -> None:
    remote_files.transport_down = True
    with pytest.raises(ChurnError) as exc_info:
        compute_client_churn(
            tmp_path / "nope", TARGET, upload_baseline=True, files=remote_files
        )
    assert exc_info.value.code == "CHURN_NO_CLIENT_DIR"


def test_fetch_failure_aborts_without_upload(bundle: Path, remote_files) -> None:
    remote_files.exists_failure = "Host key verification failed."
    with pytest.raises(ChurnError) as exc_info:
        compute_client_churn(bundle, TARGET, upload_baseline=True, files=remote_files)
    assert exc_info.value.code == "CHURN_REMOTE_MANIFEST_FETCH_FAILED"
    assert remote_files.writes == []


def test_transport_failure_maps_to_fetch_failed(bundle: Path, remote_files) -> None:
    remote_files.transport_down = True
    with pytest.raises(ChurnError) as exc_info:
        compute_client_churn(bundle, TARGET, upload_baseline=False, files=remote_files)
    assert exc_info.value.code == "CHURN_REMOTE_MANIFEST_FETCH_FAILED"
    assert "ssh transport failed" in str(exc_info.value)


def test_upload_failure_is_reported(bundle: Path, remote_files) -> None:
    remote_files.write_failure = "Read-only file system"
    with pytest.raises(ChurnError) as exc_info:
        compute_client_churn(bundle, TARGET, upload_baseline=True, files=remote_files)
    assert exc_info.value.code == "CHURN_REMOTE_MANIFEST_UPLOAD_FAILED"


def test_default_remote_goes_through_ssh(bundle: Path, scripted_runner, monkeypatch) -> None:
    from deploykit.remote.transport import CommandResult

    runner = scripted_runner({"test -f": [CommandResult(1, "", "")]})
    monkeypatch.setattr("deploykit.churn.service.SshTransport", lambda _conn: runner)

    metrics = compute_client_churn(bundle, TARGET, upload_baseline=True)

    assert metrics.added_files == 3
    assert runner.commands[0] == "test -f '/srv/app/.deploy/manifest'"
    assert runner.commands[1].startswith("mkdir -p '/srv/app/.deploy'\nbase64 -d > ")


@pytest.mark.skipif(
    sys.platform == "darwin" or sys.getfilesystemencoding() != "utf-8",
    reason="needs a filesystem that stores arbitrary byte names",
)
def test_non_utf8_file_name_survives_upload_and_read_back(
    tmp_path: Path, scripted_runner
) -> None:
    from deploykit.process import decode_output
    from deploykit.remote.files import ShellRemoteFiles
    from deploykit.remote.transport import CommandResult

    root = tmp_path / "_nuxt"
    root.mkdir()
    with open(os.path.join(os.fsencode(root), b"bad\xff.js"), "wb") as handle:
        handle.write(b"x" * 4)

    runner = scripted_runner({"test -f": [CommandResult(1, "", "")]})
    first = compute_client_churn(
        root, TARGET, upload_baseline=True, files=ShellRemoteFiles(runner)
    )
    assert first.added_files == 1

    uploaded = base64.b64decode(runner.commands[-1].split("\n")[2])
    assert uploaded == b"4  ./bad\xff.js\n"

    runner = scripted_runner(
        {
            "test -f": [CommandResult(0, "", "")],
            "cat": [CommandResult(0, decode_output(uploaded), "")],
        }
    )
    second = compute_client_churn(
        root, TARGET, upload_baseline=False, files=ShellRemoteFiles(runner)
    )
    assert second.stable_files == 1
    assert second.changed_files == second.added_files == second.removed_files == 0
