"""Tests for child process execution modes."""

import io
import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from deploykit.process import (
    OutputOptions,
    ProcessResult,
    decode_output,
    discard_line,
    run_process,
)


def _fake_popen(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.stdout = io.BytesIO(stdout)
    proc.stderr = io.BytesIO(stderr)
    proc.wait.return_value = returncode
    return proc


def test_for_verbosity() -> None:
    assert OutputOptions.for_verbosity(True).mode == "inherit"
    quiet = OutputOptions.for_verbosity(False)
    assert quiet.mode == "callbacks"
    assert quiet.on_stdout_line is discard_line


def test_signal_is_derived_from_negative_returncode() -> None:
    assert ProcessResult(returncode=-15).signal == 15
    assert ProcessResult(returncode=2).signal is None
    assert ProcessResult(returncode=0).ok


@patch("deploykit.process.subprocess.Popen")
def test_callbacks_receive_lines_without_carriage_returns(mock_popen) -> None:
    mock_popen.return_value = _fake_popen(b"one\r\ntwo\n", b"warn\n", 0)
    out: list[str] = []
    err: list[str] = []

    result = run_process(
        ["tool"],
        output=OutputOptions(
            mode="callbacks", on_stdout_line=out.append, on_stderr_line=err.append
        ),
    )

    assert out == ["one", "two"]
    assert err == ["warn"]
    assert result.ok
    assert mock_popen.call_args.kwargs["stdout"] == subprocess.PIPE


@patch("deploykit.process.subprocess.Popen")
def test_capture_collects_output(mock_popen) -> None:
    mock_popen.return_value = _fake_popen(b"hello\n", b"", 4)

    result = run_process(["tool"], output=OutputOptions(mode="silent"), capture=True)

    assert result.returncode == 4
    assert result.stdout == "hello\n"
    assert result.stderr == ""


@patch("deploykit.process.subprocess.Popen")
def test_silent_discards_output(mock_popen) -> None:
    mock_popen.return_value = _fake_popen()
    run_process(["tool"], output=OutputOptions(mode="silent"))
    assert mock_popen.call_args.kwargs["stdout"] == subprocess.DEVNULL
    assert mock_popen.call_args.kwargs["stderr"] == subprocess.DEVNULL


@patch("deploykit.process.subprocess.Popen")
def test_inherit_passes_through_stdio(mock_popen) -> None:
    mock_popen.return_value = _fake_popen()
    run_process(["tool"], cwd="/tmp", env={"A": "1"})
    kwargs = mock_popen.call_args.kwargs
    assert kwargs["stdout"] is None
    assert kwargs["cwd"] == "/tmp"
    assert kwargs["env"] == {"A": "1"}


@patch("deploykit.process.subprocess.Popen", side_effect=FileNotFoundError("nope"))
def test_spawn_failure_propagates(_mock_popen) -> None:
    with pytest.raises(FileNotFoundError):
        run_process(["missing-tool"])


def test_decode_output_keeps_undecodable_bytes() -> None:
    text = decode_output(b"7  ./bad\xff.js\n")
    assert text == "7  ./bad\udcff.js\n"
    assert text.encode("utf-8", errors="surrogateescape") == b"7  ./bad\xff.js\n"


@patch("deploykit.process.subprocess.Popen")
def test_pipes_are_read_as_bytes(mock_popen) -> None:
    mock_popen.return_value = _fake_popen(b"a\rb\n")
    result = run_process(["tool"], output=OutputOptions(mode="silent"), capture=True)
    assert "text" not in mock_popen.call_args.kwargs
    assert result.stdout == "a\rb\n"


@pytest.mark.skipif(shutil.which("printf") is None, reason="printf not available")
def test_capture_preserves_carriage_returns() -> None:
    result = run_process(
        ["printf", "%s", "5  ./a\rb.js\n"], output=OutputOptions(mode="silent"), capture=True
    )
    assert result.ok
    assert result.stdout == "5  ./a\rb.js\n"


@pytest.mark.skipif(shutil.which("printf") is None, reason="printf not available")
def test_capture_preserves_non_utf8_bytes() -> None:
    result = run_process(
        ["printf", "7  ./bad\\377.js\\n"], output=OutputOptions(mode="silent"), capture=True
    )
    assert result.stdout.encode("utf-8", errors="surrogateescape") == b"7  ./bad\xff.js\n"
