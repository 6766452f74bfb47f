"""Build the manifest of the client asset tree on the local disk."""

import logging
import os
from pathlib import Path

from deploykit.churn.codec import serialize_manifest
from deploykit.errors import ChurnError

logger = logging.getLogger(__name__)

CLIENT_SUBDIR = Path("public") / "_nuxt"


def client_asset_root(build_dir: str | Path) -> Path:
    return Path(build_dir).resolve() / CLIENT_SUBDIR


def normalize_manifest_path(base_dir: Path, file_path: Path) -> str:
    return "./" + file_path.relative_to(base_dir).as_posix()


def ensure_client_directory(asset_root: Path) -> None:
    if not asset_root.is_dir():
        raise ChurnError(
            f"Client directory does not exist: {asset_root}", code="CHURN_NO_CLIENT_DIR"
        )


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def collect_files(root: Path) -> list[Path]:
    """Return every regular file below *root*.

    Symlinks are skipped, so link cycles terminate.
    """
    files: list[Path] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        base = Path(dirpath)
        for name in filenames:
            candidate = base / name
            if candidate.is_file() and not candidate.is_symlink():
                files.append(candidate)
    return files


def build_local_manifest(asset_root: Path) -> str:
    ensure_client_directory(asset_root)
    try:
        entries = [
            (normalize_manifest_path(asset_root, path), path.stat().st_size)
            for path in collect_files(asset_root)
        ]
    except (OSError, UnicodeError) as exc:
        raise ChurnError(str(exc), code="CHURN_COMPUTE_FAILED") from exc
    logger.debug("local manifest for %s: %d files", asset_root, len(entries))
    return serialize_manifest(entries)
