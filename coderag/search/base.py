"""Searcher Interface."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from ..core.models import RetrievalResult


class Searcher:
    """Abstract base class for semantic search."""

    def search(
        self,
        repo: Path,
        cfg: Dict,
        query: str,
        top_k: Optional[int] = None,
        embedding_model: Optional[str] = None,
        exact: bool = False,
    ) -> List[RetrievalResult]:
        """Search for code chunks semantically similar to query.

        Args:
            repo: Repository root path
            cfg: Configuration dictionary
            query: Search query text
            top_k: Number of results to return (default ``search.top_k``)
            embedding_model: Overrides the model recorded in the manifest
            exact: Rank every stored chunk by cosine similarity instead of
                asking the store for nearest neighbours

        Returns:
            Results sorted by relevance, best first
        """
        raise NotImplementedError
