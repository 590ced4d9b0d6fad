"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core) defines the remote contract
2. Production implementation (OpenAICompatibleProvider)
3. Test double (MockEmbeddingProvider)
4. Factory function (get_embedding_provider)
5. Embedder wraps a provider with cleanup, truncation and the hash fallback
"""

from kb_retrieval.embeddings.embedder import Embedder, clean_text
from kb_retrieval.embeddings.hashing import (
    hash_embedding,
    hash_method_name,
    split_whitespace,
    string_hash,
    tokenize,
)
from kb_retrieval.embeddings.providers import (
    OpenAICompatibleProvider,
    UnavailableProvider,
    MockEmbeddingProvider,
    get_embedding_provider,
)

__all__ = [
    "Embedder",
    "clean_text",
    "hash_embedding",
    "hash_method_name",
    "split_whitespace",
    "string_hash",
    "tokenize",
    "OpenAICompatibleProvider",
    "UnavailableProvider",
    "MockEmbeddingProvider",
    "get_embedding_provider",
]
