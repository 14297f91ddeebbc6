"""Chunk identity and cross-build embedding reuse."""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from typing import Callable, Dict, List, Optional

from ..config import CHUNKING_KEYS
from ..core.models import ChunkingStrategy, IndexedChunk, IndexManifest

logger = logging.getLogger(__name__)

CHUNK_ID_LENGTH = 20


@dataclasses.dataclass(frozen=True)
class ChunkKey:
    """Everything that makes two chunks "the same" across builds.

    A chunk whose text is unchanged but which moved to other lines gets a new
    key, so stored line numbers stay accurate.
    """

    path: str
    start_line: int
    end_line: int
    content_hash: str
    node_type: str
    symbol: str
    chunking_strategy: str

    @classmethod
    def of(
        cls,
        path: str,
        start_line: int,
        end_line: int,
        content_hash: str,
        chunking_strategy: ChunkingStrategy,
        node_type: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> "ChunkKey":
        return cls(
            path=path,
            start_line=int(start_line),
            end_line=int(end_line),
            content_hash=content_hash,
            node_type=node_type or "",
            symbol=symbol or "",
            chunking_strategy=ChunkingStrategy(chunking_strategy).value,
        )

    @classmethod
    def for_chunk(cls, chunk: IndexedChunk) -> "ChunkKey":
        return cls.of(
            chunk.path,
            chunk.start_line,
            chunk.end_line,
            chunk.content_hash,
            chunk.chunking_strategy,
            chunk.node_type,
            chunk.symbol,
        )


def chunk_id(key: ChunkKey) -> str:
    """Stable record id: truncated SHA-256 of the JSON-encoded key fields."""
    payload = json.dumps(list(dataclasses.astuple(key)), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:CHUNK_ID_LENGTH]


def is_cache_compatible(manifest: Optional[IndexManifest], settings: Dict) -> bool:
    """Whether embeddings of a previous build can be reused under ``settings``."""
    if manifest is None:
        return False
    previous = {
        "embedding_model": manifest.embedding_model,
        "chunking_mode": manifest.chunking_mode.value,
        "chunk_size": manifest.chunk_size,
        "overlap_lines": manifest.overlap_lines,
    }
    return all(previous[k] == settings.get(k) for k in CHUNKING_KEYS)


class EmbeddingCache:
    """Embeddings of the previous build, keyed by ChunkKey."""

    def __init__(self, chunks: Optional[List[IndexedChunk]] = None):
        self._entries: Dict[ChunkKey, IndexedChunk] = {}
        for chunk in chunks or []:
            self._entries[ChunkKey.for_chunk(chunk)] = chunk

    @classmethod
    def from_previous(
        cls,
        manifest: Optional[IndexManifest],
        settings: Dict,
        load_chunks: Callable[[], List[IndexedChunk]],
    ) -> "EmbeddingCache":
        """Load the previous build's chunks if its settings match ``settings``.

        Any change of embedding model, chunking mode, chunk size or overlap
        yields an empty cache.
        """
        if not is_cache_compatible(manifest, settings):
            if manifest is not None:
                logger.info("Chunking or embedding settings changed, re-embedding everything")
            return cls()
        cache = cls(load_chunks())
        logger.debug(f"Loaded {len(cache)} cached embeddings")
        return cache

    def lookup(self, key: ChunkKey) -> Optional[IndexedChunk]:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)
