"""Embedding model: same model for lines and queries."""
import logging
from typing import Any

import numpy as np

from .config import EMBEDDING_MODEL

logger = logging.getLogger(__name__)

_model: Any = None


def get_model():
    """Lazy-load sentence-transformers model."""
    global _model
    if _model is None:
        try:
            from sentence_transformers import SentenceTransformer
            _model = SentenceTransformer(EMBEDDING_MODEL)
            logger.info("Loaded embedding model %s", EMBEDDING_MODEL)
        except Exception as e:
            logger.exception("Failed to load embedding model %s: %s", EMBEDDING_MODEL, e)
            raise
    return _model


def encode(model: Any, texts: list[str]) -> list[list[float]]:
    """Encode texts in one model call. Returns one vector per text, in order."""
    if not texts:
        return []
    vectors = model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != len(texts):
        raise ValueError(f"Model returned shape {matrix.shape} for {len(texts)} texts")
    return matrix.tolist()
