"""Update the remote PM2 app: sync ecosystem config, restart, health check."""

from __future__ import annotations

import json
import logging
import posixpath
import time
from dataclasses import dataclass, field
from pathlib import Path

from deploykit.config import RestartMode
from deploykit.errors import Pm2Error, TransportError
from deploykit.process import OutputOptions
from deploykit.remote.files import RemoteFiles, ShellRemoteFiles
from deploykit.remote.transport import CommandResult, CommandRunner, SshTransport, shell_quote

logger = logging.getLogger(__name__)

ECOSYSTEM_FILE = "ecosystem.config.js"
HEALTHCHECK_ATTEMPTS = 3
HEALTHCHECK_DELAY_S = 1.0


@dataclass(slots=True)
class Pm2Options:
    ssh_connection_string: str
    remote_dir: str
    app_name: str
    local_ecosystem_path: str | Path | None = None
    env: str = "production"
    restart_mode: RestartMode = "startOrReload"
    output: OutputOptions = field(default_factory=OutputOptions)


@dataclass(slots=True, frozen=True)
class Pm2Result:
    config_changed: bool
    instance_count: int


@dataclass(slots=True, frozen=True)
class Pm2Status:
    online: int
    statuses: str


def _run(runner: CommandRunner, command: str) -> CommandResult:
    try:
        return runner.run(command)
    except TransportError as exc:
        raise Pm2Error(str(exc), code="PM2_SSH_FAILED") from exc


def _read_local_config(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise Pm2Error(
            f"Failed to read local ecosystem config at {path}: {exc}",
            code="PM2_CONFIG_COMPARE_FAILED",
        ) from exc


def _read_remote_config(files: RemoteFiles, path: str) -> str | None:
    try:
        exists = files.exists(path)
        if exists.state == "absent":
            return None
        if exists.state == "failed":
            raise Pm2Error(exists.reason, code="PM2_CONFIG_COMPARE_FAILED")
        result = files.read(path)
    except TransportError as exc:
        raise Pm2Error(str(exc), code="PM2_SSH_FAILED") from exc
    if not result.ok:
        raise Pm2Error(
            result.failure_reason("reading config"), code="PM2_CONFIG_COMPARE_FAILED"
        )
    return result.stdout


def _upload_config(files: RemoteFiles, path: str, content: str) -> None:
    try:
        result = files.write(path, content)
    except TransportError as exc:
        raise Pm2Error(str(exc), code="PM2_CONFIG_UPLOAD_FAILED") from exc
    if not result.ok:
        raise Pm2Error(
            result.failure_reason("uploading config"), code="PM2_CONFIG_UPLOAD_FAILED"
        )


def _process_name(proc: object) -> str | None:
    if not isinstance(proc, dict):
        return None
    name = proc.get("name")
    if isinstance(name, str) and name:
        return name
    pm2_env = proc.get("pm2_env")
    if isinstance(pm2_env, dict) and isinstance(pm2_env.get("name"), str):
        return str(pm2_env["name"])
    return None


def _describe_process(proc: object) -> str:
    pm2_env = proc.get("pm2_env") if isinstance(proc, dict) else None
    env = pm2_env if isinstance(pm2_env, dict) else {}
    parts: list[str] = []
    pm_id = env.get("pm_id")
    if isinstance(pm_id, (int, str)) and not isinstance(pm_id, bool):
        parts.append(f"pm_id={pm_id}")
    status = env.get("status")
    parts.append(f"status={status if isinstance(status, str) else 'unknown'}")
    restarts = env.get("restart_time", env.get("restartCount"))
    if isinstance(restarts, (int, float)) and not isinstance(restarts, bool):
        parts.append(f"restarts={restarts}")
    return " ".join(parts)


def parse_pm2_status(jlist_output: str, app_name: str) -> Pm2Status:
    """Count online instances of *app_name* in ``pm2 jlist`` output.

    Raises ValueError when the output is not a JSON array.
    """
    procs = json.loads(jlist_output)
    if not isinstance(procs, list):
        raise ValueError("pm2 jlist output was not an array")

    matching = [proc for proc in procs if _process_name(proc) == app_name]
    online = 0
    for proc in matching:
        pm2_env = proc.get("pm2_env") if isinstance(proc, dict) else None
        if isinstance(pm2_env, dict) and pm2_env.get("status") == "online":
            online += 1
    statuses = "; ".join(_describe_process(proc) for proc in matching)
    return Pm2Status(online=online, statuses=statuses)


def _ensure_app_exists(runner: CommandRunner, app_name: str) -> None:
    # Only a parsable jlist that lacks the app is conclusive; other
    # outcomes are left to the restart and health check to report.
    try:
        result = runner.run("pm2 jlist")
    except TransportError as exc:
        logger.debug("skipping pm2 app lookup: %s", exc)
        return
    if not result.ok:
        return
    try:
        procs = json.loads(result.stdout)
    except ValueError:
        logger.debug("skipping pm2 app lookup: unparsable jlist output")
        return
    if not isinstance(procs, list):
        return
    if not any(_process_name(proc) == app_name for proc in procs):
        raise Pm2Error(
            f"No existing PM2 app named {app_name} was found in pm2 jlist. "
            "Check pm2AppName in profiles.json and your ecosystem.config.js.",
            code="PM2_APP_NAME_NOT_FOUND",
        )


def _restart(runner: CommandRunner, options: Pm2Options) -> None:
    cd = f"cd {shell_quote(options.remote_dir)}"
    env = shell_quote(options.env)
    if options.restart_mode == "startOrReload":
        result = _run(runner, f"{cd} && pm2 startOrReload {ECOSYSTEM_FILE} --env {env}")
        if not result.ok:
            raise Pm2Error(
                result.stderr or f"pm2 startOrReload exited with code {result.exit_code}",
                code="PM2_COMMAND_FAILED",
            )
        return

    # A missing app on delete is fine; start recreates it.
    _run(runner, f"pm2 delete {shell_quote(options.app_name)}")
    result = _run(runner, f"{cd} && pm2 start {ECOSYSTEM_FILE} --env {env}")
    if not result.ok:
        raise Pm2Error(
            result.stderr or f"pm2 start exited with code {result.exit_code}",
            code="PM2_COMMAND_FAILED",
        )


def verify_pm2_health(
    runner: CommandRunner,
    app_name: str,
    *,
    attempts: int = HEALTHCHECK_ATTEMPTS,
    delay_s: float = HEALTHCHECK_DELAY_S,
) -> int:
    last: Pm2Status | None = None
    for attempt in range(1, attempts + 1):
        result = _run(runner, "pm2 jlist")
        if not result.ok:
            raise Pm2Error(
                result.stderr or f"pm2 jlist exited with code {result.exit_code}",
                code="PM2_STATUS_QUERY_FAILED",
            )
        try:
            last = parse_pm2_status(result.stdout, app_name)
        except ValueError as exc:
            raise Pm2Error(
                f"Failed to parse pm2 jlist output: {exc}", code="PM2_STATUS_QUERY_FAILED"
            ) from exc
        if last.online > 0:
            return last.online
        if attempt < attempts:
            logger.info("pm2 reports no online %s instances yet (attempt %d)", app_name, attempt)
            time.sleep(delay_s)

    suffix = f"; statuses: {last.statuses}" if last is not None and last.statuses else ""
    raise Pm2Error(
        f"PM2 reports no online instances for {app_name} after retries{suffix}",
        code="PM2_HEALTHCHECK_FAILED",
    )


def update_pm2_app(options: Pm2Options, *, runner: CommandRunner | None = None) -> Pm2Result:
    if runner is None:
        runner = SshTransport(options.ssh_connection_string, output=options.output)
    files = ShellRemoteFiles(runner)

    local_path = Path(options.local_ecosystem_path or Path.cwd() / ECOSYSTEM_FILE)
    local_content = _read_local_config(local_path)
    remote_path = posixpath.join(options.remote_dir, ECOSYSTEM_FILE)

    remote_content = _read_remote_config(files, remote_path)
    config_changed = remote_content is None or remote_content != local_content
    if config_changed:
        logger.info("uploading changed %s to %s", ECOSYSTEM_FILE, remote_path)
        _upload_config(files, remote_path, local_content)

    _ensure_app_exists(runner, options.app_name)
    _restart(runner, options)
    instance_count = verify_pm2_health(runner, options.app_name)
    return Pm2Result(config_changed=config_changed, instance_count=instance_count)
