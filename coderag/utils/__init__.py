"""Utility functions for coderag."""

from .file_utils import (
    KNOWN_BINARY_EXTENSIONS,
    atomic_write_text,
    ensure_dir,
    is_binary_file,
    looks_binary,
    repo_root,
    to_posix,
)

__all__ = [
    "KNOWN_BINARY_EXTENSIONS",
    "atomic_write_text",
    "ensure_dir",
    "is_binary_file",
    "looks_binary",
    "repo_root",
    "to_posix",
]
