"""Remote host access over ssh."""

from deploykit.remote.files import ExistsResult, RemoteFiles, ShellRemoteFiles
from deploykit.remote.transport import CommandResult, CommandRunner, SshTransport, shell_quote

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ExistsResult",
    "RemoteFiles",
    "ShellRemoteFiles",
    "SshTransport",
    "shell_quote",
]
