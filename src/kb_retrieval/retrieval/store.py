"""
Document store implementations.

Pattern: Protocol (core.DocumentStore) -> Production impl -> Test double -> Factory

This module contains:
1. PgDocumentStore - PostgreSQL with pgvector (production)
2. InMemoryDocumentStore - dict-backed store (testing/development)
3. get_document_store() - Factory function

Embeddings from different methods have different dimensionality
(provider vectors vs. the 100-dim hash fallback), so the pgvector column
is declared without a fixed dimension and the producing method is kept
in its own column.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterator

import numpy as np

from kb_retrieval.config import StoreConfig
from kb_retrieval.core import DocumentStore, Embedding, StoreError
from kb_retrieval.retrieval.document import Collection, Document, DocumentType, Scope

logger = logging.getLogger(__name__)

# Optional: Only import psycopg if available (for local dev without postgres)
try:
    import psycopg
    from pgvector.psycopg import register_vector

    PGVECTOR_AVAILABLE = True
    _DB_ERRORS: tuple[type[BaseException], ...] = (psycopg.Error,)
except ImportError:
    PGVECTOR_AVAILABLE = False
    _DB_ERRORS = ()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------

_DOCUMENT_COLUMNS = (
    "d.id, d.title, d.content, d.type, d.knowledge_base_id, "
    "d.embedding, d.embedding_method, d.created_at, d.updated_at"
)


class PgDocumentStore:
    """
    PostgreSQL document store using pgvector.

    Similarity is computed in Python by the SimilarityEngine, not in SQL,
    because candidate sets mix embedding methods and dimensions.
    """

    def __init__(self, config: StoreConfig | None = None):
        self.config = config or StoreConfig.from_env()
        self._conn = None
        self._connect_lock = threading.Lock()

    def connect(self) -> None:
        """Establish database connection (no-op when already connected)."""
        if not PGVECTOR_AVAILABLE:
            raise ImportError(
                "pgvector not available. Install with: pip install pgvector psycopg[binary]"
            )

        # Reindex workers share one connection; psycopg serializes its use
        with self._connect_lock, self._errors("connect"):
            if self._conn is not None:
                return
            conn = psycopg.connect(self.config.connection_string, autocommit=True)
            conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
            register_vector(conn)
            self._conn = conn

    def close(self) -> None:
        """Close database connection."""
        with self._connect_lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    @contextmanager
    def _errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except _DB_ERRORS as e:
            logger.error(f"Document store {action} failed: {e}")
            raise StoreError(f"Document store {action} failed: {e}") from e

    def _execute(self, action: str, sql: str, params: tuple | list = ()):
        if self._conn is None:
            self.connect()
        with self._errors(action):
            return self._conn.execute(sql, params)

    def create_schema(self) -> None:
        """Create the collection and document tables."""
        kb = self.config.collections_table
        docs = self.config.documents_table

        self._execute(
            "create_schema",
            f"""
            CREATE TABLE IF NOT EXISTS {kb} (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                user_id TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """,
        )
        self._execute(
            "create_schema",
            f"""
            CREATE TABLE IF NOT EXISTS {docs} (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'text',
                knowledge_base_id TEXT NOT NULL REFERENCES {kb}(id) ON DELETE CASCADE,
                embedding vector,
                embedding_method TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """,
        )
        self._execute(
            "create_schema",
            f"CREATE INDEX IF NOT EXISTS {docs}_kb_idx ON {docs} (knowledge_base_id)",
        )

    # -- row mapping --------------------------------------------------------

    @staticmethod
    def _to_collection(row) -> Collection:
        return Collection(
            id=row[0],
            name=row[1],
            description=row[2] or "",
            owner_id=row[3],
            created_at=row[4],
            updated_at=row[5],
        )

    @staticmethod
    def _to_document(row) -> Document:
        embedding = row[5]
        return Document(
            id=row[0],
            title=row[1],
            content=row[2],
            type=DocumentType(row[3]),
            collection_id=row[4],
            embedding=np.asarray(embedding, dtype=np.float32) if embedding is not None else None,
            embedding_method=row[6],
            created_at=row[7],
            updated_at=row[8],
        )

    def _scope_clause(self, scope: Scope) -> tuple[str, list]:
        clauses, params = [], []
        if scope.collection_id is not None:
            clauses.append("d.knowledge_base_id = %s")
            params.append(scope.collection_id)
        if scope.owner_id is not None:
            clauses.append("kb.user_id = %s")
            params.append(scope.owner_id)
        return (" AND ".join(clauses) or "TRUE"), params

    def _select_documents(
        self, action: str, scope: Scope, extra: str = "", extra_params: tuple = ()
    ) -> list[Document]:
        where, params = self._scope_clause(scope)
        rows = self._execute(
            action,
            f"""
            SELECT {_DOCUMENT_COLUMNS}
            FROM {self.config.documents_table} d
            JOIN {self.config.collections_table} kb ON kb.id = d.knowledge_base_id
            WHERE {where} {extra}
            """,
            (*params, *extra_params),
        ).fetchall()
        return [self._to_document(row) for row in rows]

    # -- collections --------------------------------------------------------

    def get_collection(
        self, collection_id: str, owner_id: str | None = None
    ) -> Collection | None:
        sql = (
            f"SELECT id, name, description, user_id, created_at, updated_at "
            f"FROM {self.config.collections_table} WHERE id = %s"
        )
        params: list = [collection_id]
        if owner_id is not None:
            sql += " AND user_id = %s"
            params.append(owner_id)
        row = self._execute("get_collection", sql, params).fetchone()
        return self._to_collection(row) if row else None

    def list_collections(self, owner_id: str | None = None) -> list[Collection]:
        sql = (
            f"SELECT id, name, description, user_id, created_at, updated_at "
            f"FROM {self.config.collections_table}"
        )
        params: list = []
        if owner_id is not None:
            sql += " WHERE user_id = %s"
            params.append(owner_id)
        rows = self._execute("list_collections", sql + " ORDER BY created_at", params).fetchall()
        return [self._to_collection(row) for row in rows]

    def create_collection(self, collection: Collection) -> Collection:
        self._execute(
            "create_collection",
            f"""
            INSERT INTO {self.config.collections_table}
                (id, name, description, user_id, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (
                collection.id,
                collection.name,
                collection.description,
                collection.owner_id,
                collection.created_at,
                collection.updated_at,
            ),
        )
        return collection

    # -- documents ----------------------------------------------------------

    def add_document(self, document: Document) -> Document:
        self._execute(
            "add_document",
            f"""
            INSERT INTO {self.config.documents_table}
                (id, title, content, type, knowledge_base_id,
                 embedding, embedding_method, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                document.id,
                document.title,
                document.content,
                DocumentType(document.type).value,
                document.collection_id,
                document.embedding if document.has_embedding else None,
                document.embedding_method if document.has_embedding else None,
                document.created_at,
                document.updated_at,
            ),
        )
        self._execute(
            "add_document",
            f"UPDATE {self.config.collections_table} SET updated_at = now() WHERE id = %s",
            (document.collection_id,),
        )
        return document

    def get_document(self, document_id: str) -> Document | None:
        row = self._execute(
            "get_document",
            f"SELECT {_DOCUMENT_COLUMNS} FROM {self.config.documents_table} d WHERE d.id = %s",
            (document_id,),
        ).fetchone()
        return self._to_document(row) if row else None

    def get_documents(self, scope: Scope) -> list[Document]:
        return self._select_documents("get_documents", scope, "ORDER BY d.created_at")

    def get_documents_by_collection(self, collection_id: str) -> list[Document]:
        return self.get_documents(Scope(collection_id=collection_id))

    def get_documents_missing_embedding(self, scope: Scope) -> list[Document]:
        return self._select_documents(
            "get_documents_missing_embedding",
            scope,
            "AND d.embedding IS NULL ORDER BY d.created_at",
        )

    def update_embedding(self, document_id: str, embedding: Embedding) -> None:
        cursor = self._execute(
            "update_embedding",
            f"""
            UPDATE {self.config.documents_table}
            SET embedding = %s, embedding_method = %s, updated_at = now()
            WHERE id = %s
            """,
            (embedding.vector, embedding.method, document_id),
        )
        if cursor.rowcount == 0:
            raise StoreError(f"Document not found: {document_id}")

    def find_by_text_match(
        self, scope: Scope, substring: str, limit: int
    ) -> list[Document]:
        pattern = f"%{_escape_like(substring)}%"
        return self._select_documents(
            "find_by_text_match",
            scope,
            "AND (d.title ILIKE %s OR d.content ILIKE %s) ORDER BY d.created_at LIMIT %s",
            (pattern, pattern, limit),
        )


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """
    In-memory document store for development/testing.

    Implements the same interface as PgDocumentStore but doesn't require Postgres.
    Documents are returned in insertion order.
    """

    def __init__(self):
        self._collections: dict[str, Collection] = {}
        self._documents: dict[str, Document] = {}

    def connect(self) -> None:
        """No-op for in-memory store."""
        pass

    def close(self) -> None:
        """No-op for in-memory store."""
        pass

    def create_schema(self) -> None:
        """No-op for in-memory store."""
        pass

    def _in_scope(self, doc: Document, scope: Scope) -> bool:
        if scope.collection_id is not None and doc.collection_id != scope.collection_id:
            return False
        if scope.owner_id is not None:
            collection = self._collections.get(doc.collection_id)
            if collection is None or collection.owner_id != scope.owner_id:
                return False
        return True

    def get_collection(
        self, collection_id: str, owner_id: str | None = None
    ) -> Collection | None:
        collection = self._collections.get(collection_id)
        if collection is None:
            return None
        if owner_id is not None and collection.owner_id != owner_id:
            return None
        return collection

    def list_collections(self, owner_id: str | None = None) -> list[Collection]:
        return [
            c for c in self._collections.values()
            if owner_id is None or c.owner_id == owner_id
        ]

    def create_collection(self, collection: Collection) -> Collection:
        self._collections[collection.id] = collection
        return collection

    def add_document(self, document: Document) -> Document:
        if document.collection_id not in self._collections:
            raise StoreError(f"Unknown collection: {document.collection_id}")
        self._documents[document.id] = document
        self._collections[document.collection_id].updated_at = datetime.now(timezone.utc)
        return document

    def get_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def get_documents(self, scope: Scope) -> list[Document]:
        return [d for d in self._documents.values() if self._in_scope(d, scope)]

    def get_documents_by_collection(self, collection_id: str) -> list[Document]:
        return self.get_documents(Scope(collection_id=collection_id))

    def get_documents_missing_embedding(self, scope: Scope) -> list[Document]:
        return [d for d in self.get_documents(scope) if not d.has_embedding]

    def update_embedding(self, document_id: str, embedding: Embedding) -> None:
        doc = self._documents.get(document_id)
        if doc is None:
            raise StoreError(f"Document not found: {document_id}")
        self._documents[document_id] = replace(
            doc,
            embedding=np.array(embedding.vector, dtype=np.float32),
            embedding_method=embedding.method,
            updated_at=datetime.now(timezone.utc),
        )

    def find_by_text_match(
        self, scope: Scope, substring: str, limit: int
    ) -> list[Document]:
        needle = substring.casefold()
        matches = [
            d for d in self.get_documents(scope)
            if needle in d.title.casefold() or needle in d.content.casefold()
        ]
        return matches[:limit]


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_store(
    use_postgres: bool = False,
    config: StoreConfig | None = None,
) -> DocumentStore:
    """
    Factory function to get the appropriate document store.

    Args:
        use_postgres: Use PostgreSQL store (default: False for dev)
        config: Store configuration (loaded from env if not provided)

    Returns:
        DocumentStore implementation
    """
    if use_postgres:
        if not PGVECTOR_AVAILABLE:
            raise ImportError(
                "pgvector not available. Install with: pip install pgvector psycopg[binary]"
            )
        return PgDocumentStore(config or StoreConfig.from_env())
    if os.environ.get("DATABASE_URL"):
        logger.debug("DATABASE_URL set but use_postgres=False, using in-memory store")
    return InMemoryDocumentStore()
