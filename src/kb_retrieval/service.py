"""
Knowledge-base service - the interface the application layer calls.

Wires the store, embedder, orchestrator and reindexer together and adds
document creation with best-effort background embedding: a new document
is stored immediately and its embedding is filled in afterwards. If that
embedding fails the document simply waits for the next reindex.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait

from kb_retrieval.config import RetrievalConfig, get_config
from kb_retrieval.core import (
    CollectionNotFoundError,
    DocumentStore,
    EmbeddingProvider,
    InvalidInputError,
    RetrievalError,
    SearchResult,
)
from kb_retrieval.embeddings import Embedder, get_embedding_provider
from kb_retrieval.indexing import Reindexer
from kb_retrieval.retrieval.document import Document, DocumentType, new_id
from kb_retrieval.retrieval.search import RetrievalOrchestrator

logger = logging.getLogger(__name__)

STATUS_CHECK_TEXT = "knowledge base status check"


class KnowledgeBaseService:
    """Facade over search, reindexing and document creation."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        orchestrator: RetrievalOrchestrator | None = None,
        reindexer: Reindexer | None = None,
        embed_on_create: bool = True,
    ):
        self.store = store
        self.embedder = embedder
        self.orchestrator = orchestrator or RetrievalOrchestrator(store, embedder)
        self.reindexer = reindexer or Reindexer(store, embedder)
        self.embed_on_create = embed_on_create
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        store: DocumentStore,
        config: RetrievalConfig | None = None,
        provider: EmbeddingProvider | None = None,
    ) -> KnowledgeBaseService:
        config = config or get_config()
        provider = provider or get_embedding_provider(config.provider)
        return cls(store, Embedder(provider, config))

    # -- documents ----------------------------------------------------------

    def add_document(
        self,
        collection_id: str,
        title: str,
        content: str,
        type: DocumentType | str = DocumentType.TEXT,
        owner_id: str | None = None,
    ) -> Document:
        """
        Create a document and schedule its embedding.

        Raises:
            InvalidInputError: empty title/content or unknown type
            CollectionNotFoundError: collection missing or not owned by caller
            StoreError: the insert failed
        """
        title = (title or "").strip()
        content = (content or "").strip()
        if not title or not content:
            raise InvalidInputError("Document title and content must not be empty")
        try:
            doc_type = DocumentType(type)
        except ValueError as e:
            raise InvalidInputError(f"Unknown document type: {type!r}") from e

        if self.store.get_collection(collection_id, owner_id) is None:
            raise CollectionNotFoundError(collection_id)

        document = self.store.add_document(
            Document(
                id=new_id(),
                title=title,
                content=content,
                type=doc_type,
                collection_id=collection_id,
            )
        )

        if self.embed_on_create:
            self._schedule_embedding(document)
        return document

    def _schedule_embedding(self, document: Document) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="kb-embed")
            future = self._executor.submit(self._embed_document, document)
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _embed_document(self, document: Document) -> None:
        try:
            embedding = self.embedder.embed(document.content)
            self.store.update_embedding(document.id, embedding)
        except Exception as e:
            logger.warning(f"Embedding on create failed for document {document.id}: {e}")

    def wait_for_pending(self, timeout: float | None = None) -> None:
        """Block until scheduled embeddings have finished."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    # -- retrieval ----------------------------------------------------------

    def search(
        self,
        query: str,
        collection_id: str | None = None,
        limit: int | None = None,
        owner_id: str | None = None,
        timeout: float | None = None,
    ) -> list[SearchResult]:
        return self.orchestrator.search(
            query,
            collection_id=collection_id,
            limit=limit,
            owner_id=owner_id,
            timeout=timeout,
        )

    def reindex(
        self,
        collection_id: str | None = None,
        owner_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> int:
        return self.reindexer.reindex(
            collection_id=collection_id,
            owner_id=owner_id,
            cancel_event=cancel_event,
        )

    def check_status(self) -> dict:
        """Embed a fixed sample text and report which path answered."""
        try:
            embedding = self.embedder.embed(STATUS_CHECK_TEXT)
        except RetrievalError as e:
            logger.error(f"Embedding status check failed: {e}")
            return {"available": False, "method": None, "dimensions": 0, "fallback": False}
        return {
            "available": embedding.dimensions > 0,
            "method": embedding.method,
            "dimensions": embedding.dimensions,
            "fallback": embedding.is_fallback,
        }

    def close(self) -> None:
        """Finish scheduled embeddings and stop the background executor."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
