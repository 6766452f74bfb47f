from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from deploykit.cli import reporting
from deploykit.config import get_settings
from deploykit.errors import TransportError
from deploykit.logging import clear_context
from deploykit.remote.files import ExistsResult
from deploykit.remote.transport import CommandResult

SETTINGS_ENV = ("APP_ENV", "LOG_LEVEL", "LOG_JSON", "DEPLOY_PROFILES_PATH")


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    reporting.set_sink(None)
    clear_context()
    yield
    get_settings.cache_clear()
    reporting.set_sink(None)
    clear_context()


@dataclass
class CapturedOutput:
    info: list[str] = field(default_factory=list)
    error: list[str] = field(default_factory=list)


@pytest.fixture
def captured() -> CapturedOutput:
    output = CapturedOutput()
    reporting.set_sink(reporting.Sink(info=output.info.append, error=output.error.append))
    return output


class ScriptedRunner:
    """CommandRunner that answers by command prefix and records every call.

    Each prefix maps to a list of responses consumed in order; the last one
    repeats. A response may be an exception instance, which is raised.
    """

    def __init__(self, script: dict[str, list[object]] | None = None) -> None:
        self.script = {prefix: list(responses) for prefix, responses in (script or {}).items()}
        self.commands: list[str] = []

    def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        for prefix, responses in self.script.items():
            if command.startswith(prefix):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, BaseException):
                    raise response
                assert isinstance(response, CommandResult)
                return response
        return CommandResult(exit_code=0, stdout="", stderr="")


class FakeRemoteFiles:
    """In-memory RemoteFiles with switchable failure modes."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files = dict(files or {})
        self.writes: list[tuple[str, str]] = []
        self.reads: list[str] = []
        self.exists_failure: str | None = None
        self.read_failure: str | None = None
        self.write_failure: str | None = None
        self.transport_down = False

    def _check_transport(self) -> None:
        if self.transport_down:
            raise TransportError("failed to start ssh: [Errno 2] No such file or directory")

    def exists(self, path: str) -> ExistsResult:
        self._check_transport()
        if self.exists_failure is not None:
            return ExistsResult.failed(self.exists_failure)
        return ExistsResult.present() if path in self.files else ExistsResult.absent()

    def read(self, path: str) -> CommandResult:
        self._check_transport()
        self.reads.append(path)
        if self.read_failure is not None:
            return CommandResult(exit_code=1, stdout="", stderr=self.read_failure)
        return CommandResult(exit_code=0, stdout=self.files[path], stderr="")

    def write(self, path: str, content: str) -> CommandResult:
        self._check_transport()
        if self.write_failure is not None:
            return CommandResult(exit_code=1, stdout="", stderr=self.write_failure)
        self.writes.append((path, content))
        self.files[path] = content
        return CommandResult(exit_code=0, stdout="", stderr="")

    def mkdir(self, path: str) -> CommandResult:
        self._check_transport()
        return CommandResult(exit_code=0, stdout="", stderr="")


@pytest.fixture
def remote_files() -> FakeRemoteFiles:
    return FakeRemoteFiles()


def write_asset(root: Path, relative: str, size: int) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


def make_profile(**overrides: object) -> dict[str, object]:
    profile: dict[str, object] = {
        "name": "prod",
        "sshConnectionString": "deploy@example.com",
        "remoteDir": "/srv/app",
        "env": "production",
        "pm2AppName": "web",
        "buildCommand": "npm",
        "buildArgs": ["run", "build"],
    }
    profile.update(overrides)
    return profile


@pytest.fixture
def profiles_file(tmp_path: Path) -> Path:
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps([make_profile(), make_profile(name="staging", remoteDir="/srv/staging")]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def scripted_runner() -> type[ScriptedRunner]:
    return ScriptedRunner


@pytest.fixture
def asset() -> object:
    return write_asset


@pytest.fixture
def profile_entry() -> object:
    return make_profile
