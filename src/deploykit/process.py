"""Child process execution with inherit / silent / per-line callback output."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Literal, cast

logger = logging.getLogger(__name__)

OutputMode = Literal["inherit", "silent", "callbacks"]
LineCallback = Callable[[str], None]


def discard_line(_line: str) -> None:
    return None


@dataclass(slots=True)
class OutputOptions:
    """How a child's stdout/stderr reach the operator.

    ``inherit`` lets the child write straight to our terminal, ``silent``
    discards everything, ``callbacks`` pipes both streams and hands complete
    lines to the callbacks as they arrive.
    """

    mode: OutputMode = "inherit"
    on_stdout_line: LineCallback | None = None
    on_stderr_line: LineCallback | None = None

    @classmethod
    def for_verbosity(cls, verbose: bool) -> OutputOptions:
        if verbose:
            return cls(mode="inherit")
        return cls(mode="callbacks", on_stdout_line=discard_line, on_stderr_line=discard_line)


@dataclass(slots=True)
class ProcessResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def signal(self) -> int | None:
        # subprocess reports death-by-signal as a negative return code.
        return -self.returncode if self.returncode < 0 else None


@dataclass(slots=True)
class _StreamPump:
    stream: IO[bytes]
    callback: LineCallback | None
    echo: IO[bytes] | None
    collected: list[str] = field(default_factory=list)

    def run(self) -> None:
        # Binary iteration splits on b"\n" only, so a lone \r stays inside its line.
        for raw in self.stream:
            if self.echo is not None:
                self.echo.write(raw)
                self.echo.flush()
            text = decode_output(raw)
            self.collected.append(text)
            if self.callback is not None:
                self.callback(text.removesuffix("\n").removesuffix("\r"))
        self.stream.close()

    def text(self) -> str:
        return "".join(self.collected)


def decode_output(raw: bytes) -> str:
    """Decode child output losslessly; undecodable bytes become surrogates."""
    return raw.decode("utf-8", errors="surrogateescape")


def _stdio_buffer(stream: IO[str]) -> IO[bytes] | None:
    return getattr(stream, "buffer", None)


def run_process(
    argv: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    output: OutputOptions | None = None,
    capture: bool = False,
) -> ProcessResult:
    """Run *argv* to completion and return its exit status.

    With ``capture`` the child's output is also collected into the result;
    in ``inherit`` mode it is then echoed to our own stdio as it arrives.
    Spawn failures propagate as ``OSError``.
    """
    output = output or OutputOptions()
    piped = output.mode == "callbacks" or capture
    if piped:
        stdout_target: int | None = subprocess.PIPE
    elif output.mode == "silent":
        stdout_target = subprocess.DEVNULL
    else:
        stdout_target = None

    logger.debug("spawning %s (cwd=%s, mode=%s)", " ".join(argv), cwd, output.mode)
    proc = subprocess.Popen(
        list(argv),
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        stdin=subprocess.DEVNULL,
        stdout=stdout_target,
        stderr=stdout_target,
    )

    pumps: list[_StreamPump] = []
    if piped:
        echo = output.mode == "inherit"
        pumps = [
            _StreamPump(
                cast(IO[bytes], proc.stdout),
                output.on_stdout_line if output.mode == "callbacks" else None,
                _stdio_buffer(sys.stdout) if echo else None,
            ),
            _StreamPump(
                cast(IO[bytes], proc.stderr),
                output.on_stderr_line if output.mode == "callbacks" else None,
                _stdio_buffer(sys.stderr) if echo else None,
            ),
        ]
    threads = [threading.Thread(target=pump.run, daemon=True) for pump in pumps]
    for thread in threads:
        thread.start()
    returncode = proc.wait()
    for thread in threads:
        thread.join()

    logger.debug("%s exited with %s", argv[0], returncode)
    if not pumps:
        return ProcessResult(returncode=returncode)
    return ProcessResult(returncode=returncode, stdout=pumps[0].text(), stderr=pumps[1].text())
