"""File utility functions."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Union

KNOWN_BINARY_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".ico", ".pdf",
    ".zip", ".gz", ".tar", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".jar",
    ".exe", ".dll", ".so", ".dylib", ".class",
    ".woff", ".woff2", ".ttf", ".otf",
    ".mp3", ".mp4", ".mov", ".avi",
})

BINARY_SAMPLE_BYTES = 4096


def repo_root(start: Path) -> Path:
    """Find repo root by walking upward until .git exists, else current dir."""
    cur = start.resolve()
    for _ in range(50):
        if (cur / ".git").exists():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return start.resolve()


def ensure_dir(p: Path) -> None:
    """Create directory if it doesn't exist."""
    p.mkdir(parents=True, exist_ok=True)


def looks_binary(sample: bytes) -> bool:
    """NUL byte anywhere, or more than 30% control characters."""
    if not sample:
        return False
    suspicious = 0
    for byte in sample:
        if byte == 0:
            return True
        if byte < 9 or 13 < byte < 32:
            suspicious += 1
    return suspicious / len(sample) > 0.3


def is_binary_file(path: Path, sample_size: int = BINARY_SAMPLE_BYTES) -> bool:
    """Check if file is binary by sniffing its first bytes."""
    with path.open("rb") as f:
        sample = f.read(sample_size)
    return looks_binary(sample)


def to_posix(path: Union[str, Path]) -> str:
    return Path(path).as_posix()


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temp file in the same directory and ``os.replace``."""
    ensure_dir(path.parent)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
