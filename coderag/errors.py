"""Exceptions raised by coderag."""

from __future__ import annotations


class CodeRagError(Exception):
    """Base class for coderag failures."""


class IndexNotFoundError(CodeRagError):
    """No index has been built at the expected location."""

    def __init__(self, index_dir: str):
        self.index_dir = index_dir
        super().__init__(f"Index not found in {index_dir}. Run 'coderag index' first.")


class EmbeddingError(CodeRagError):
    """The embedding service failed or returned something unusable."""


class EmbeddingCountMismatch(EmbeddingError):
    """The embedding service returned a different number of vectors than requested."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Embedding count mismatch: expected {expected} embeddings, received {received}"
        )


class GenerationError(CodeRagError):
    """The generation service failed or returned something unusable."""


class ReviewInputError(CodeRagError):
    """A review was requested without a query and without a diff."""


class IndexLockedError(CodeRagError):
    """The on-disk index is held open by another process."""

    def __init__(self, index_dir: str):
        self.index_dir = index_dir
        super().__init__(
            f"Index in {index_dir} is in use by another process. "
            "Retry when it finishes, or point vector_store.qdrant.host at a Qdrant server."
        )
