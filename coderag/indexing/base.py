"""Indexer Interface."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from ..core.models import IndexStats


class Indexer:
    """Abstract base class for code indexing."""

    def index(self, repo: Path, cfg: Dict) -> IndexStats:
        raise NotImplementedError
