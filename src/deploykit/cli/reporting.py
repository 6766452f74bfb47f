"""Operator-facing deploy progress and error lines."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import click

from deploykit.churn.compare import ChurnMetrics
from deploykit.churn.format import format_churn_metrics
from deploykit.errors import DeployError


@dataclass(slots=True)
class Sink:
    info: Callable[[str], None]
    error: Callable[[str], None]


def _echo_err(line: str) -> None:
    click.echo(line, err=True)


CONSOLE_SINK = Sink(info=click.echo, error=_echo_err)

_sink = CONSOLE_SINK


def set_sink(sink: Sink | None) -> None:
    global _sink
    _sink = sink or CONSOLE_SINK


def extract_error_code(err: BaseException) -> str | None:
    if isinstance(err, DeployError):
        return err.code
    return None


def _qualifiers(code: str | None, profile_name: str | None) -> str:
    parts = []
    if code:
        parts.append(f" [{code}]")
    if profile_name:
        parts.append(f' (profile="{profile_name}")')
    return "".join(parts)


def format_fatal_error(
    label: str, code: str | None, message: str, profile_name: str | None = None
) -> str:
    return f"{label} error{_qualifiers(code, profile_name)}: {message}"


def format_non_fatal_error(
    label: str, code: str | None, message: str, profile_name: str | None = None
) -> str:
    return f"Deploy succeeded, but {label} step failed{_qualifiers(code, profile_name)}: {message}"


def _for_profile(profile_name: str | None) -> str:
    return f' for profile "{profile_name}"' if profile_name else ""


def deploy_start(profile_name: str | None) -> None:
    _sink.info(f"[deploy] Starting deploy{_for_profile(profile_name)}...")


def deploy_success(profile_name: str | None) -> None:
    _sink.info(f"[deploy] Deploy completed successfully{_for_profile(profile_name)}.")


def churn_only_start(profile_name: str | None) -> None:
    _sink.info(f"[deploy] Starting churn-only run{_for_profile(profile_name)}...")


def churn_only_success(profile_name: str | None) -> None:
    _sink.info(f"[deploy] Churn-only run completed successfully{_for_profile(profile_name)}.")


def phase_start(name: str) -> None:
    _sink.info(f"[deploy] {name}...")


def phase_success(message: str) -> None:
    _sink.info(f"[deploy] {message}")


def pm2_success(app_name: str, restart_mode: str, instance_count: int) -> None:
    _sink.info(
        f'[deploy] PM2 update complete for "{app_name}": '
        f"{instance_count} instances online (mode: {restart_mode})."
    )


def churn_summary(metrics: ChurnMetrics, *, dry_run: bool = False) -> None:
    _sink.info(format_churn_metrics(metrics, dry_run=dry_run))


def raw(line: str) -> None:
    _sink.info(line)


def fatal_error(label: str, err: BaseException, profile_name: str | None = None) -> None:
    _sink.error(format_fatal_error(label, extract_error_code(err), str(err), profile_name))


def non_fatal_error(label: str, err: BaseException, profile_name: str | None = None) -> None:
    _sink.error(format_non_fatal_error(label, extract_error_code(err), str(err), profile_name))


def unexpected_error(err: BaseException, profile_name: str | None = None) -> None:
    qualifiers = _qualifiers(extract_error_code(err), profile_name)
    _sink.error(f"[deploy] Unexpected deploy error{qualifiers}: {err}")
