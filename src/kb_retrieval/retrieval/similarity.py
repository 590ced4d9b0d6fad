"""
Similarity engine - cosine similarity and ranking.

RANKING POLICY:
---------------
- Score = cosine similarity between the query vector and the stored vector
- Candidates with an absent, malformed, differently-tagged or
  differently-sized embedding score 0 (logged, not raised)
- Scores <= relevance floor are dropped before the limit is applied
- Descending by score; equal scores keep input order
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import numpy as np

from kb_retrieval.config import RELEVANCE_FLOOR
from kb_retrieval.core import DimensionMismatchError, Embedding
from kb_retrieval.retrieval.document import Document

logger = logging.getLogger(__name__)


def cosine_similarity(a: Any, b: Any) -> float:
    """
    Cosine similarity of two 1-D vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: len(a) != len(b)
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.ndim != 1 or b.ndim != 1:
        raise ValueError("cosine_similarity expects 1-D vectors")
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def coerce_vector(value: Any) -> np.ndarray | None:
    """
    Normalize a stored embedding to a float vector.

    Accepts arrays, sequences and JSON-encoded strings. Returns None for
    anything empty, non 1-D or non-finite.
    """
    if value is None:
        return None
    try:
        if isinstance(value, (str, bytes)):
            value = json.loads(value)
        vector = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if vector.ndim != 1 or vector.size == 0 or not np.all(np.isfinite(vector)):
        return None
    return vector


class SimilarityEngine:
    """Scores and ranks candidate documents against a query embedding."""

    def __init__(self, relevance_floor: float = RELEVANCE_FLOOR):
        self.relevance_floor = relevance_floor

    def score(self, query: Embedding, doc: Document) -> float:
        """Similarity of one candidate; 0.0 for any degraded embedding."""
        vector = coerce_vector(doc.embedding)
        if vector is None:
            logger.warning(f"Document {doc.id} has no usable embedding, scoring 0")
            return 0.0

        if doc.embedding_method is not None and doc.embedding_method != query.method:
            logger.warning(
                f"Document {doc.id} embedded with {doc.embedding_method}, "
                f"query with {query.method}; not comparable, scoring 0"
            )
            return 0.0

        try:
            return cosine_similarity(query.vector, vector)
        except DimensionMismatchError as e:
            logger.warning(f"Document {doc.id}: {e}; scoring 0")
            return 0.0

    def rank(
        self,
        query: Embedding,
        candidates: Iterable[Document],
        limit: int,
    ) -> list[tuple[Document, float]]:
        """Return at most `limit` (document, score) pairs above the floor."""
        if limit <= 0:
            return []

        scored = [(doc, self.score(query, doc)) for doc in candidates]
        relevant = [pair for pair in scored if pair[1] > self.relevance_floor]
        # list.sort is stable, including with reverse=True
        relevant.sort(key=lambda pair: pair[1], reverse=True)
        return relevant[:limit]
