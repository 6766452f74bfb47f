"""Run the application build command."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from deploykit.errors import BuildError
from deploykit.process import OutputOptions, run_process

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BuildCommand:
    command: str
    args: tuple[str, ...] = ()


@dataclass(slots=True)
class BuildOptions:
    root_dir: str | Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    output: OutputOptions = field(default_factory=OutputOptions)


def run_build(command: BuildCommand, options: BuildOptions | None = None) -> None:
    options = options or BuildOptions()
    cwd = Path(options.root_dir).resolve() if options.root_dir else Path.cwd()
    argv = [command.command, *command.args]

    try:
        result = run_process(
            argv, cwd=cwd, env={**os.environ, **options.env}, output=options.output
        )
    except FileNotFoundError as exc:
        raise BuildError(
            f"Build command not found: {command.command}", code="BUILD_COMMAND_NOT_FOUND"
        ) from exc
    except OSError as exc:
        raise BuildError(str(exc), code="BUILD_FAILED") from exc

    if result.signal is not None:
        raise BuildError(
            f"Build interrupted by signal: {result.signal}", code="BUILD_INTERRUPTED"
        )
    if not result.ok:
        raise BuildError(f"Build failed with exit code {result.returncode}", code="BUILD_FAILED")
    logger.info("build finished: %s", " ".join(argv))
