"""Indexing functionality for coderag."""

from .identity import ChunkKey, EmbeddingCache, chunk_id, is_cache_compatible
from .indexer import DefaultIndexer, build_index
from .scanner import iter_files

__all__ = [
    "ChunkKey",
    "EmbeddingCache",
    "chunk_id",
    "is_cache_compatible",
    "DefaultIndexer",
    "build_index",
    "iter_files",
]
