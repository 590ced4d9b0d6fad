"""
Core module - shared protocols, types and errors.

USAGE:
------
from kb_retrieval.core import DocumentStore, EmbeddingProvider, Embedding
"""

from kb_retrieval.core.errors import (
    RetrievalError,
    InputError,
    EmptyInputError,
    EmptyQueryError,
    InvalidInputError,
    CollectionNotFoundError,
    ProviderUnavailableError,
    ProviderTimeoutError,
    EmbeddingTimeoutError,
    DimensionMismatchError,
    StoreError,
)
from kb_retrieval.core.protocols import (
    # Protocols
    EmbeddingProvider,
    DocumentStore,
    # Data classes
    Embedding,
    SearchResult,
    # Constants
    MATCH_VECTOR,
    MATCH_LEXICAL,
)

__all__ = [
    # Errors
    "RetrievalError",
    "InputError",
    "EmptyInputError",
    "EmptyQueryError",
    "InvalidInputError",
    "CollectionNotFoundError",
    "ProviderUnavailableError",
    "ProviderTimeoutError",
    "EmbeddingTimeoutError",
    "DimensionMismatchError",
    "StoreError",
    # Protocols
    "EmbeddingProvider",
    "DocumentStore",
    # Data classes
    "Embedding",
    "SearchResult",
    # Constants
    "MATCH_VECTOR",
    "MATCH_LEXICAL",
]
