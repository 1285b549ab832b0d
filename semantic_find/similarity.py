"""Cosine similarity and top-k ranking of line embeddings."""
from collections.abc import Iterable, Sequence

import numpy as np

from .errors import DimensionMismatchError
from .records import SearchResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors, in [-1, 1].
    Returns 0.0 when either vector has zero norm.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vector dimensions don't match: {len(a)} vs {len(b)}")
    v1 = np.asarray(a, dtype=np.float64)
    v2 = np.asarray(b, dtype=np.float64)
    norm1 = np.linalg.norm(v1)
    norm2 = np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    score = float(np.dot(v1, v2) / (norm1 * norm2))
    # rounding can push identical vectors just past 1
    return max(-1.0, min(1.0, score))


def rank_top_k(
    query: Sequence[float],
    candidates: Iterable[tuple[int, Sequence[float] | None]],
    k: int = 5,
) -> list[SearchResult]:
    """
    Score every embedded candidate against the query and return the best k.

    Candidates whose vector is None (not embedded) are skipped; an all-zero
    vector is still scored. Ties are ordered by ascending index.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")
    scored = [
        SearchResult(line_index=index, score=cosine_similarity(query, vector))
        for index, vector in candidates
        if vector is not None
    ]
    scored.sort(key=lambda r: (-r.score, r.line_index))
    return scored[:k]
