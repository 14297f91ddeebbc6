"""Index manifest persistence."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.models import IndexManifest
from ..utils import atomic_write_text

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"


def manifest_path(index_dir: Path) -> Path:
    return Path(index_dir) / MANIFEST_FILE


def load_manifest(index_dir: Path) -> Optional[IndexManifest]:
    """Read the manifest of ``index_dir``; ``None`` if no index was built there."""
    path = manifest_path(index_dir)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return IndexManifest.model_validate_json(content)


def save_manifest(index_dir: Path, manifest: IndexManifest) -> Path:
    """Atomically write the manifest; returns its path."""
    path = manifest_path(index_dir)
    atomic_write_text(path, manifest.model_dump_json(indent=2))
    logger.debug(f"Wrote manifest {path}")
    return path


def clear_manifest(index_dir: Path) -> None:
    """Remove the manifest so the index counts as not built."""
    manifest_path(index_dir).unlink(missing_ok=True)
