"""Semantic search over a built index."""

from .base import Searcher
from .searcher import DefaultSearcher, format_hit, search_index

__all__ = ["Searcher", "DefaultSearcher", "format_hit", "search_index"]
