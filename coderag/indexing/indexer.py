"""Code indexing logic."""

from __future__ import annotations

import datetime as _dt
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from ..config import DEFAULT_EXCLUDED_DIRS, chunking_settings, resolve_index_dir
from ..core import (
    DefaultChunker,
    Embedder,
    IndexedChunk,
    IndexManifest,
    IndexStats,
    detect_language,
    embed_many,
    make_embedder,
    sha256_hex,
)
from ..errors import EmbeddingCountMismatch
from ..storage import VectorStore, clear_manifest, load_manifest, make_vector_store, save_manifest
from .base import Indexer
from .identity import ChunkKey, EmbeddingCache, chunk_id
from .scanner import iter_files

logger = logging.getLogger(__name__)


def _excluded_dirs(repo: Path, index_dir: Path, cfg: Dict) -> List[str]:
    excluded = [*DEFAULT_EXCLUDED_DIRS, *cfg.get("excluded_dirs", [])]
    try:
        rel = index_dir.relative_to(repo)
    except ValueError:
        rel = None
    if rel is not None and rel.parts:
        excluded.append(rel.parts[0])
    return list(dict.fromkeys(excluded))


class DefaultIndexer(Indexer):
    """Chunk, embed (reusing previous embeddings) and persist a repository."""

    def __init__(self, embedder: Optional[Embedder] = None, store: Optional[VectorStore] = None):
        self.embedder = embedder
        self.store = store

    def index(self, repo: Path, cfg: Dict) -> IndexStats:
        repo = Path(repo).resolve()
        index_dir = resolve_index_dir(repo, cfg)
        settings = chunking_settings(cfg)
        excluded = _excluded_dirs(repo, index_dir, cfg)
        max_file_size_bytes = int(cfg.get("max_file_size_kb", 300)) * 1024
        batch_size = int(cfg.get("embedding", {}).get("batch_size", 16))

        emb = self.embedder or make_embedder(cfg)
        store = self.store or make_vector_store(cfg, index_dir)
        try:
            previous = load_manifest(index_dir)
            cache = EmbeddingCache.from_previous(previous, settings, store.load_all)

            chunker = DefaultChunker(
                mode=settings["chunking_mode"],
                chunk_size=settings["chunk_size"],
                overlap_lines=settings["overlap_lines"],
            )

            files = iter_files(repo, max_file_size_bytes, excluded)
            reused: List[IndexedChunk] = []
            pending: List[IndexedChunk] = []
            files_indexed = 0

            for f in files:
                try:
                    text = Path(f.abs_path).read_text(encoding="utf-8", errors="replace")
                except OSError as e:
                    logger.warning(f"Skipping {f.rel_path}: {e}")
                    continue
                files_indexed += 1

                language = detect_language(f.rel_path)
                for part in chunker.chunk(text, file_path=f.rel_path, language=language):
                    content_hash = sha256_hex(part.content)
                    key = ChunkKey.of(
                        f.rel_path,
                        part.start_line,
                        part.end_line,
                        content_hash,
                        part.chunking_strategy,
                        part.node_type,
                        part.symbol,
                    )
                    chunk = IndexedChunk(
                        id=chunk_id(key),
                        path=f.rel_path,
                        language=language,
                        start_line=part.start_line,
                        end_line=part.end_line,
                        content=part.content,
                        node_type=part.node_type,
                        symbol=part.symbol,
                        chunking_strategy=part.chunking_strategy,
                        content_hash=content_hash,
                        file_mtime_ms=f.mtime_ms,
                        file_size=f.size,
                        embedding=[],
                    )
                    cached = cache.lookup(key)
                    if cached is not None:
                        chunk.embedding = list(cached.embedding)
                        reused.append(chunk)
                    else:
                        pending.append(chunk)

            logger.info(f"{len(reused)} chunks reused, {len(pending)} chunks to embed")
            vectors = embed_many(emb, [c.content for c in pending], batch_size)
            if len(vectors) != len(pending):
                raise EmbeddingCountMismatch(len(pending), len(vectors))
            for chunk, vector in zip(pending, vectors):
                chunk.embedding = vector

            unique: Dict[str, IndexedChunk] = {}
            for chunk in reused + pending:
                unique.setdefault(chunk.id, chunk)
            chunks = sorted(unique.values(), key=lambda c: (c.path, c.start_line, c.end_line))

            # Without a manifest the index reads as missing until the new one is saved.
            clear_manifest(index_dir)
            try:
                store.replace_collection(chunks)
            except Exception:
                if previous is not None:
                    save_manifest(index_dir, previous)
                raise
        finally:
            if self.store is None:
                store.close()

        manifest = IndexManifest(
            generated_at=_dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            repo_root=str(repo),
            embedding_model=settings["embedding_model"],
            chunking_mode=settings["chunking_mode"],
            chunk_size=settings["chunk_size"],
            overlap_lines=settings["overlap_lines"],
            excluded_dirs=excluded,
            max_file_size_bytes=max_file_size_bytes,
            files_indexed=files_indexed,
            chunks_indexed=len(chunks),
        )
        save_manifest(index_dir, manifest)
        logger.info(f"Indexed {len(chunks)} chunks from {files_indexed} files into {index_dir}")

        return IndexStats(
            files_scanned=len(files),
            files_indexed=files_indexed,
            chunks_total=len(chunks),
            chunks_embedded=len(pending),
            chunks_reused=len(reused),
            index_path=os.fspath(index_dir),
        )


def build_index(
    repo: Path,
    cfg: Dict,
    embedder: Optional[Embedder] = None,
    store: Optional[VectorStore] = None,
) -> IndexStats:
    """Build or rebuild the code index (Wrapper)."""
    indexer = DefaultIndexer(embedder=embedder, store=store)
    return indexer.index(repo, cfg)
