"""Run single shell commands on a remote host through the ssh client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from deploykit.errors import TransportError
from deploykit.process import OutputOptions, run_process

logger = logging.getLogger(__name__)

# Applied to every remote invocation; not configurable per call.
SSH_OPTIONS: tuple[str, ...] = (
    "-4",
    "-o",
    "ServerAliveInterval=30",
    "-o",
    "ServerAliveCountMax=6",
    "-o",
    "TCPKeepAlive=yes",
    "-o",
    "ConnectTimeout=20",
)


def shell_quote(value: str) -> str:
    """Quote *value* as one POSIX shell word, safe against injection."""
    return "'" + value.replace("'", "'\"'\"'") + "'"


@dataclass(slots=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def failure_reason(self, action: str) -> str:
        if self.stderr:
            return self.stderr
        return f"ssh exited with code {self.exit_code} {action}"


class CommandRunner(Protocol):
    def run(self, command: str) -> CommandResult: ...


@dataclass(slots=True)
class SshTransport:
    """Executes commands on ``connection_string`` (e.g. ``deploy@host``).

    The default output mode is ``silent``: results are captured but nothing
    is shown. The PM2 step passes its own options to stream remote output.
    """

    connection_string: str
    output: OutputOptions = field(default_factory=lambda: OutputOptions(mode="silent"))
    options: tuple[str, ...] = SSH_OPTIONS

    def argv(self, command: str) -> list[str]:
        return ["ssh", *self.options, self.connection_string, command]

    def run(self, command: str) -> CommandResult:
        """Run *command* remotely; raise TransportError if ssh cannot start."""
        summary = command.splitlines()[0] if command else ""
        logger.debug("ssh %s: %s", self.connection_string, summary)
        try:
            result = run_process(self.argv(command), output=self.output, capture=True)
        except OSError as exc:
            raise TransportError(f"failed to start ssh: {exc}") from exc
        return CommandResult(
            exit_code=result.returncode, stdout=result.stdout, stderr=result.stderr
        )
