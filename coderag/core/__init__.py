"""Core functionality for coderag."""

from .models import (
    ChunkingMode,
    ChunkingStrategy,
    ChunkPart,
    IndexedChunk,
    IndexManifest,
    IndexStats,
    NodeKind,
    RetrievalResult,
    SourceFile,
)
from .chunking import DefaultChunker, chunk_source, chunk_text_by_lines, detect_language
from .embeddings import Embedder, OllamaEmbedder, SentenceTransformersEmbedder, embed_many, make_embedder
from .hashing import sha256_hex
from .vectors import cosine_similarity, distance_to_score, retrieve_top_k

__all__ = [
    "ChunkingMode",
    "ChunkingStrategy",
    "ChunkPart",
    "IndexedChunk",
    "IndexManifest",
    "IndexStats",
    "NodeKind",
    "RetrievalResult",
    "SourceFile",
    "DefaultChunker",
    "chunk_source",
    "chunk_text_by_lines",
    "detect_language",
    "Embedder",
    "OllamaEmbedder",
    "SentenceTransformersEmbedder",
    "embed_many",
    "make_embedder",
    "sha256_hex",
    "cosine_similarity",
    "distance_to_score",
    "retrieve_top_k",
]
