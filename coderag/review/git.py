"""Working-tree diff retrieval."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 60


def _run_git(repo: Path, args: List[str]) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        capture_output=True,
        text=True,
        check=True,
        timeout=GIT_TIMEOUT_SECONDS,
    )
    return result.stdout.strip()


def is_git_repository(repo: Path) -> bool:
    try:
        return _run_git(repo, ["rev-parse", "--is-inside-work-tree"]) == "true"
    except (OSError, subprocess.SubprocessError):
        return False


def working_tree_diff(repo: Path) -> str:
    """Staged diff followed by the unstaged diff; empty outside a git repository."""
    if not is_git_repository(repo):
        return ""

    parts = []
    for args in (["diff", "--cached", "--", "."], ["diff", "--", "."]):
        try:
            out = _run_git(repo, args)
        except subprocess.SubprocessError as e:
            logger.warning(f"git {' '.join(args)} failed: {e}")
            continue
        if out:
            parts.append(out)
    return "\n\n".join(parts).strip()
