"""Embedding models for semantic search."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel, ValidationError

from ..errors import EmbeddingCountMismatch, EmbeddingError

logger = logging.getLogger(__name__)


class Embedder:
    """Abstract base class for embedding models."""

    model_name: str = ""

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed multiple texts into vectors."""
        raise NotImplementedError

    def embed_one(self, text: str) -> List[float]:
        """Embed a single text into a vector."""
        vectors = self.embed([text])
        if not vectors:
            raise EmbeddingError("Embedding service returned an empty embedding array")
        return vectors[0]


class _EmbedResponse(BaseModel):
    embeddings: Optional[List[List[float]]] = None


class _LegacyEmbedResponse(BaseModel):
    embedding: Optional[List[float]] = None


class OllamaEmbedder(Embedder):
    """Embedder backed by an Ollama server."""

    def __init__(self, model_name: str, base_url: str = "http://127.0.0.1:11434", timeout: float = 120.0) -> None:
        self.model_name = model_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _post(self, endpoint: str, body: Dict) -> Dict:
        try:
            response = requests.post(f"{self.base_url}{endpoint}", json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise EmbeddingError(f"Ollama request failed {endpoint}: {e}") from e
        if not response.ok:
            raise EmbeddingError(f"Ollama request failed ({response.status_code}) {endpoint}: {response.text}")
        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingError(f"Ollama returned invalid JSON from {endpoint}") from e

    def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        try:
            data = _EmbedResponse.model_validate(self._post("/api/embed", {"model": self.model_name, "input": texts}))
            if data.embeddings is not None:
                return data.embeddings
        except (EmbeddingError, ValidationError):
            if len(texts) > 1:
                raise
            logger.debug("/api/embed unavailable, retrying with /api/embeddings")

        # Older Ollama servers only embed one prompt per call.
        vectors: List[List[float]] = []
        for text in texts:
            try:
                data = _LegacyEmbedResponse.model_validate(
                    self._post("/api/embeddings", {"model": self.model_name, "prompt": text})
                )
            except ValidationError as e:
                raise EmbeddingError("Ollama /api/embeddings response is malformed") from e
            if data.embedding is None:
                raise EmbeddingError("Ollama /api/embeddings response does not contain embedding")
            vectors.append(data.embedding)
        return vectors


class SentenceTransformersEmbedder(Embedder):
    """Embedder using SentenceTransformers library."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore
        self.model_name = model_name
        self.model = SentenceTransformer(model_name)

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed texts using SentenceTransformers model."""
        arr = self.model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return [row.tolist() for row in arr]


def embed_many(embedder: Embedder, texts: List[str], batch_size: int) -> List[List[float]]:
    """Embed ``texts`` in batches of ``batch_size``.

    Raises:
        EmbeddingCountMismatch: If a batch comes back with a different number
            of vectors than texts sent
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    vectors: List[List[float]] = []
    total_batches = (len(texts) + batch_size - 1) // batch_size
    for i in range(0, len(texts), batch_size):
        batch = texts[i:i + batch_size]
        batch_vectors = embedder.embed(batch)
        if len(batch_vectors) != len(batch):
            raise EmbeddingCountMismatch(len(batch), len(batch_vectors))
        vectors.extend(batch_vectors)
        logger.debug(f"Embedded batch {i // batch_size + 1}/{total_batches}")
    return vectors


def make_embedder(cfg: Dict, model_name: Optional[str] = None) -> Embedder:
    """Create embedder from config.

    Args:
        cfg: Configuration dictionary
        model_name: Overrides ``embedding.model``

    Returns:
        Embedder instance

    Raises:
        ValueError: If the backend is unknown
    """
    embedding_cfg = cfg.get("embedding", {})
    backend = str(embedding_cfg.get("backend", "ollama")).strip().lower()
    model = model_name or embedding_cfg.get("model", "nomic-embed-text-v2-moe:latest")

    if backend == "ollama":
        return OllamaEmbedder(
            model,
            base_url=cfg.get("ollama_url", "http://127.0.0.1:11434"),
            timeout=float(cfg.get("request_timeout", 120)),
        )
    if backend == "sentence_transformers":
        try:
            return SentenceTransformersEmbedder(model)
        except ImportError as e:
            raise ValueError(
                "sentence-transformers is not installed. "
                "Run: pip install 'coderag[local]'"
            ) from e
    raise ValueError(f"Invalid embedding.backend: {backend!r}")
