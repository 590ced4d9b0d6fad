"""
Retrieval module - ranking, search and document storage.

This module provides:
- Document, Collection, Scope: the data model
- cosine_similarity / SimilarityEngine: scoring and ranking
- RetrievalOrchestrator: two-tier (vector, then lexical) search
- PgDocumentStore / InMemoryDocumentStore / get_document_store(): storage
"""

from kb_retrieval.retrieval.document import (
    Collection,
    Document,
    DocumentType,
    Scope,
    new_id,
)
from kb_retrieval.retrieval.similarity import (
    SimilarityEngine,
    coerce_vector,
    cosine_similarity,
)
from kb_retrieval.retrieval.store import (
    PgDocumentStore,
    InMemoryDocumentStore,
    get_document_store,
)
from kb_retrieval.retrieval.search import RetrievalOrchestrator

__all__ = [
    # Model
    "Collection",
    "Document",
    "DocumentType",
    "Scope",
    "new_id",
    # Ranking
    "SimilarityEngine",
    "coerce_vector",
    "cosine_similarity",
    # Stores
    "PgDocumentStore",
    "InMemoryDocumentStore",
    "get_document_store",
    # Search
    "RetrievalOrchestrator",
]
