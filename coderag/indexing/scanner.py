"""File discovery for indexing."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

from ..config import DEFAULT_EXCLUDED_DIRS
from ..core.models import SourceFile
from ..utils import KNOWN_BINARY_EXTENSIONS, is_binary_file, to_posix

logger = logging.getLogger(__name__)


def iter_files(repo: Path, max_file_size_bytes: int, excluded_dirs: Iterable[str] = ()) -> List[SourceFile]:
    """List readable text files under ``repo``, sorted by relative path.

    Directories whose name is excluded (case-insensitive) are not descended
    into. Known binary extensions, files over ``max_file_size_bytes`` and files
    whose first bytes look binary are skipped.
    """
    excluded = {d.lower() for d in [*DEFAULT_EXCLUDED_DIRS, *excluded_dirs]}
    sample_size = max(1, min(4096, max_file_size_bytes))
    files: List[SourceFile] = []

    for root, dirs, names in os.walk(repo):
        dirs[:] = [d for d in dirs if d.lower() not in excluded]
        for name in names:
            p = Path(root) / name
            if p.suffix.lower() in KNOWN_BINARY_EXTENSIONS:
                continue
            try:
                if not p.is_file():
                    continue
                st = p.stat()
                if st.st_size > max_file_size_bytes:
                    logger.debug(f"Skipping large file: {p}")
                    continue
                if is_binary_file(p, sample_size):
                    continue
            except OSError as e:
                logger.warning(f"Skipping unreadable file {p}: {e}")
                continue

            files.append(
                SourceFile(
                    abs_path=str(p),
                    rel_path=to_posix(p.relative_to(repo)),
                    mtime_ms=st.st_mtime * 1000.0,
                    size=st.st_size,
                )
            )

    files.sort(key=lambda f: f.rel_path)
    return files
