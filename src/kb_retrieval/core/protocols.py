"""
Core protocols defining contracts for the retrieval core.

The retrieval core consumes two external collaborators and
exposes two operations:

    EmbeddingProvider  --> Embedder --+
                                      +--> RetrievalOrchestrator.search()
    DocumentStore  -------------------+--> Reindexer.reindex()

PATTERN:
--------
- Protocol defines the contract
- Production implementation (OpenAICompatibleProvider, PgDocumentStore)
- Test double (MockEmbeddingProvider, InMemoryDocumentStore)
- Factory function for instantiation
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from kb_retrieval.retrieval.document import Collection, Document, Scope


# ---------------------------------------------------------------------------
# EMBEDDINGS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Embedding:
    """A vector tagged with the method that produced it."""
    vector: np.ndarray
    method: str

    @property
    def dimensions(self) -> int:
        return int(len(self.vector))

    @property
    def is_fallback(self) -> bool:
        return self.method.startswith("hash-")


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for the remote embedding provider.

    Implementations:
    - OpenAICompatibleProvider (production)
    - UnavailableProvider (no provider configured)
    - MockEmbeddingProvider (testing)

    Any failure is raised as ProviderUnavailableError.
    """

    @property
    def method(self) -> str:
        """Tag stored next to every vector this provider returns."""
        ...

    def embed_remote(self, text: str, timeout: float | None = None) -> np.ndarray:
        """Embed a single text remotely."""
        ...


# ---------------------------------------------------------------------------
# DOCUMENT STORE
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentStore(Protocol):
    """
    Contract for document persistence.

    Implementations:
    - PgDocumentStore (PostgreSQL + pgvector)
    - InMemoryDocumentStore (testing/development)

    Every failure is raised as StoreError.
    """

    def get_collection(
        self, collection_id: str, owner_id: str | None = None
    ) -> Collection | None:
        """Fetch a collection, optionally checking ownership."""
        ...

    def list_collections(self, owner_id: str | None = None) -> list[Collection]:
        """List collections, optionally for one owner."""
        ...

    def create_collection(self, collection: Collection) -> Collection:
        ...

    def add_document(self, document: Document) -> Document:
        ...

    def get_document(self, document_id: str) -> Document | None:
        ...

    def get_documents(self, scope: Scope) -> list[Document]:
        """All documents visible in a scope."""
        ...

    def get_documents_by_collection(self, collection_id: str) -> list[Document]:
        ...

    def get_documents_missing_embedding(self, scope: Scope) -> list[Document]:
        """Documents in scope whose embedding is absent or empty."""
        ...

    def update_embedding(self, document_id: str, embedding: Embedding) -> None:
        """Persist an embedding (and its method tag) for one document."""
        ...

    def find_by_text_match(
        self, scope: Scope, substring: str, limit: int
    ) -> list[Document]:
        """Case-insensitive substring match against title and content."""
        ...


# ---------------------------------------------------------------------------
# SEARCH RESULTS
# ---------------------------------------------------------------------------

MATCH_VECTOR = "vector"
MATCH_LEXICAL = "lexical"


@dataclass
class SearchResult:
    """A retrieved document with a similarity score. Never persisted."""
    id: str
    title: str
    content: str
    type: str
    collection_id: str
    similarity: float
    match_type: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(
        cls, doc: Document, similarity: float, match_type: str
    ) -> SearchResult:
        return cls(
            id=doc.id,
            title=doc.title,
            content=doc.content,
            type=getattr(doc.type, "value", doc.type),
            collection_id=doc.collection_id,
            similarity=float(similarity),
            match_type=match_type,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "collection_id": self.collection_id,
            "similarity": self.similarity,
            "match_type": self.match_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
