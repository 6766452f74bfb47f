"""Run the application's test suite before deploying."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from deploykit.errors import TestRunError
from deploykit.process import OutputOptions, run_process

logger = logging.getLogger(__name__)

DEFAULT_TEST_COMMAND = "npx"
DEFAULT_TEST_ARGS: tuple[str, ...] = ("vitest", "run")


@dataclass(slots=True)
class TestOptions:
    __test__ = False

    root_dir: str | Path | None = None
    command: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    output: OutputOptions = field(default_factory=OutputOptions)

    def argv(self) -> list[str]:
        command = (self.command or "").strip() or DEFAULT_TEST_COMMAND
        args = self.args or DEFAULT_TEST_ARGS
        return [command, *args]


def run_tests(options: TestOptions | None = None) -> None:
    """Run the test command; raise TestRunError unless it exits 0."""
    options = options or TestOptions()
    argv = options.argv()
    cwd = Path(options.root_dir) if options.root_dir else Path.cwd()
    env = {**os.environ, **options.env}

    try:
        result = run_process(argv, cwd=cwd, env=env, output=options.output)
    except FileNotFoundError as exc:
        raise TestRunError(
            f'Test command "{argv[0]}" was not found in PATH.', code="TEST_COMMAND_NOT_FOUND"
        ) from exc
    except OSError as exc:
        raise TestRunError(
            f'Failed to start test command "{argv[0]}".', code="TEST_FAILED"
        ) from exc

    if result.signal is not None:
        raise TestRunError(
            f"Test process was interrupted by signal {result.signal}.", code="TEST_INTERRUPTED"
        )
    if not result.ok:
        raise TestRunError(
            f"Test process exited with code {result.returncode}.", code="TEST_FAILED"
        )
    logger.info("test suite passed: %s", " ".join(argv))
