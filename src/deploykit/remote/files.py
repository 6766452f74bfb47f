"""Closed set of remote file operations used by the deploy steps.

``ShellRemoteFiles`` implements them as shell commands over an
``SshTransport``; tests substitute an in-memory implementation of the same
protocol. Transport failures surface as ``TransportError`` from every method.
"""

from __future__ import annotations

import base64
import posixpath
from dataclasses import dataclass
from typing import Literal, Protocol

from deploykit.remote.transport import CommandResult, CommandRunner, shell_quote

ExistsState = Literal["present", "absent", "failed"]

# `test -f` exits 1 for a missing file; anything else is a real failure.
TEST_MISSING_STATUS = 1


@dataclass(slots=True, frozen=True)
class ExistsResult:
    state: ExistsState
    reason: str = ""

    @classmethod
    def present(cls) -> ExistsResult:
        return cls("present")

    @classmethod
    def absent(cls) -> ExistsResult:
        return cls("absent")

    @classmethod
    def failed(cls, reason: str) -> ExistsResult:
        return cls("failed", reason)


class RemoteFiles(Protocol):
    def exists(self, path: str) -> ExistsResult: ...

    def read(self, path: str) -> CommandResult: ...

    def write(self, path: str, content: str) -> CommandResult: ...

    def mkdir(self, path: str) -> CommandResult: ...


def write_script(path: str, content: str) -> str:
    """Build the remote script that writes *content* to *path*.

    Content travels base64-encoded inside a quoted heredoc so newlines and
    arbitrary bytes survive the line-oriented shell channel. Surrogate escapes
    (undecodable file names from ``os.walk``) are written back as raw bytes.
    """
    raw = content.encode("utf-8", errors="surrogateescape")
    encoded = base64.b64encode(raw).decode("ascii")
    return "\n".join(
        [
            f"mkdir -p {shell_quote(posixpath.dirname(path) or '.')}",
            f"base64 -d > {shell_quote(path)} <<'EOF'",
            encoded,
            "EOF",
        ]
    )


@dataclass(slots=True)
class ShellRemoteFiles:
    transport: CommandRunner

    def exists(self, path: str) -> ExistsResult:
        result = self.transport.run(f"test -f {shell_quote(path)}")
        if result.ok:
            return ExistsResult.present()
        if result.exit_code == TEST_MISSING_STATUS and not result.stderr.strip():
            return ExistsResult.absent()
        return ExistsResult.failed(result.failure_reason(f"checking {path}"))

    def read(self, path: str) -> CommandResult:
        return self.transport.run(f"cat {shell_quote(path)}")

    def write(self, path: str, content: str) -> CommandResult:
        return self.transport.run(write_script(path, content))

    def mkdir(self, path: str) -> CommandResult:
        return self.transport.run(f"mkdir -p {shell_quote(path)}")
