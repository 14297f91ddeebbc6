"""Abstract vector storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ..core.models import IndexedChunk, RetrievalResult


class VectorStore(ABC):
    """Abstract base class for vector storage backends."""

    @abstractmethod
    def replace_collection(self, chunks: List[IndexedChunk]) -> None:
        """Replace every stored chunk with ``chunks``.

        Readers see either the old or the new collection, never a mix. If
        this raises, the old collection is still the one being served.
        """
        pass

    @abstractmethod
    def load_all(self) -> List[IndexedChunk]:
        """Load every stored chunk, embeddings included."""
        pass

    @abstractmethod
    def vector_search(self, query_vector: List[float], limit: int) -> List[RetrievalResult]:
        """Nearest chunks to ``query_vector``, best first."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Check if the collection exists and has data."""
        pass

    def count(self) -> int:
        """Count stored chunks (default implementation)."""
        return len(self.load_all())

    def close(self) -> None:
        pass

    def __enter__(self) -> "VectorStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
