"""Previous-deploy manifest ("baseline") kept on the remote host."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Literal

from deploykit.errors import ChurnError, TransportError
from deploykit.remote.files import RemoteFiles

logger = logging.getLogger(__name__)

MANIFEST_DIR = ".deploy"
MANIFEST_NAME = "manifest"


def remote_manifest_path(remote_dir: str) -> str:
    # Outside the rsync'd .output tree, which is mirrored with --delete.
    return posixpath.join(remote_dir, MANIFEST_DIR, MANIFEST_NAME)


@dataclass(slots=True, frozen=True)
class BaselineResult:
    """Outcome of fetching the baseline: ``none``, ``ok`` or ``error``.

    ``none`` means no deploy has stored a baseline yet, which is a normal
    state and not a failure.
    """

    kind: Literal["none", "ok", "error"]
    content: str = ""
    reason: str = ""
    transport_failure: bool = False

    @classmethod
    def none(cls) -> BaselineResult:
        return cls("none")

    @classmethod
    def ok(cls, content: str) -> BaselineResult:
        return cls("ok", content=content)

    @classmethod
    def error(cls, reason: str, *, transport_failure: bool = False) -> BaselineResult:
        return cls("error", reason=reason, transport_failure=transport_failure)


@dataclass(slots=True)
class RemoteManifestStore:
    files: RemoteFiles
    path: str

    def fetch_baseline(self) -> BaselineResult:
        try:
            exists = self.files.exists(self.path)
            if exists.state == "absent":
                logger.info("no remote baseline at %s", self.path)
                return BaselineResult.none()
            if exists.state == "failed":
                return BaselineResult.error(exists.reason)
            result = self.files.read(self.path)
        except TransportError as exc:
            return BaselineResult.error(
                f"ssh transport failed: {exc}", transport_failure=True
            )
        if not result.ok:
            return BaselineResult.error(result.failure_reason("reading manifest"))
        return BaselineResult.ok(result.stdout)

    def upload_baseline(self, content: str) -> None:
        try:
            result = self.files.write(self.path, content)
        except (TransportError, UnicodeError) as exc:
            raise ChurnError(str(exc), code="CHURN_REMOTE_MANIFEST_UPLOAD_FAILED") from exc
        if not result.ok:
            raise ChurnError(
                result.failure_reason("uploading manifest"),
                code="CHURN_REMOTE_MANIFEST_UPLOAD_FAILED",
            )
        logger.info("stored remote baseline at %s", self.path)
