"""Vector similarity helpers."""

from __future__ import annotations

import math
from typing import List, Sequence

from .models import IndexedChunk, RetrievalResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Vectors of different length, empty vectors and zero-norm vectors score 0.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def distance_to_score(distance) -> float:
    """Turn a store distance (lower is closer) into a score (higher is closer).

    Derived for the Euclidean metric the chunk collection is created with.
    """
    try:
        value = float(distance)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return 1.0 / (1.0 + max(0.0, value))


def retrieve_top_k(query_vector: Sequence[float], chunks: List[IndexedChunk], top_k: int) -> List[RetrievalResult]:
    """Rank chunks by cosine similarity to ``query_vector``.

    Ties keep the input order; at most ``top_k`` results are returned.
    """
    if not chunks or top_k <= 0:
        return []
    results = [RetrievalResult(score=cosine_similarity(query_vector, c.embedding), chunk=c) for c in chunks]
    results.sort(key=lambda r: r.score, reverse=True)
    return results[:top_k]
