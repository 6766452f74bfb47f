"""Manifest wire format: ``<size><whitespace><path>`` per line, sorted.

This text is both what gets persisted on the remote host and what is parsed
back for comparison, so old baselines must stay readable.
"""

import math
import re
from collections.abc import Iterable

Manifest = dict[str, int]

# Plain ASCII decimal notation only; no digit separators, no "inf"/"nan" words.
_SIZE_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def serialize_manifest(entries: Iterable[tuple[str, int]]) -> str:
    lines = sorted(f"{size}  {path}" for path, size in entries)
    return "\n".join(lines) + ("\n" if lines else "")


def _parse_size(token: str) -> int | None:
    if _SIZE_RE.fullmatch(token) is None:
        return None
    value = float(token)
    if not math.isfinite(value) or not value.is_integer():
        return None
    return int(value)


def parse_manifest(content: str) -> Manifest:
    """Parse manifest text, silently dropping lines that are not entries.

    The remote baseline may be truncated by an interrupted upload, so this
    never raises on malformed input. A repeated path keeps its last size.
    """
    manifest: Manifest = {}
    for line in content.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        parts = trimmed.split(maxsplit=1)
        if len(parts) < 2:
            continue
        size_token, path = parts
        size = _parse_size(size_token)
        if size is None or not path:
            continue
        manifest[path] = size
    return manifest
