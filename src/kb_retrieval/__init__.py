"""
kb_retrieval - knowledge-base retrieval core.

Turns text into embeddings, stores them next to documents and answers
similarity queries, degrading to a local hash embedding when the
embedding provider is down and to substring matching when vector search
has nothing to offer.

USAGE:
------
from kb_retrieval import KnowledgeBaseService, InMemoryDocumentStore

service = KnowledgeBaseService.from_config(InMemoryDocumentStore())
results = service.search(
    "literature review structure", collection_id="kb_writing", owner_id="demo-user"
)
"""

from kb_retrieval.config import RetrievalConfig, get_config
from kb_retrieval.core import (
    Embedding,
    SearchResult,
    RetrievalError,
    EmptyInputError,
    EmptyQueryError,
    CollectionNotFoundError,
    StoreError,
)
from kb_retrieval.embeddings import Embedder, get_embedding_provider
from kb_retrieval.indexing import Reindexer
from kb_retrieval.retrieval import (
    Collection,
    Document,
    DocumentType,
    InMemoryDocumentStore,
    PgDocumentStore,
    RetrievalOrchestrator,
    SimilarityEngine,
    cosine_similarity,
    get_document_store,
)
from kb_retrieval.service import KnowledgeBaseService

__all__ = [
    "RetrievalConfig",
    "get_config",
    "Embedding",
    "SearchResult",
    "RetrievalError",
    "EmptyInputError",
    "EmptyQueryError",
    "CollectionNotFoundError",
    "StoreError",
    "Embedder",
    "get_embedding_provider",
    "Reindexer",
    "Collection",
    "Document",
    "DocumentType",
    "InMemoryDocumentStore",
    "PgDocumentStore",
    "RetrievalOrchestrator",
    "SimilarityEngine",
    "cosine_similarity",
    "get_document_store",
    "KnowledgeBaseService",
]
