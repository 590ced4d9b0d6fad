"""
Reindexer - batch job that fills in missing document embeddings.

Documents without an embedding are processed in fixed-size batches.
Within a batch, documents are embedded concurrently (each touches a
different row); batches run one after another with a fixed pause in
between to stay under provider rate limits. A failed document is logged
and skipped. Cancellation is checked before each batch, so a cancelled
job leaves only whole batches applied.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from kb_retrieval.config import RetrievalConfig
from kb_retrieval.core import CollectionNotFoundError, DocumentStore
from kb_retrieval.embeddings.embedder import Embedder
from kb_retrieval.observability import get_tracer
from kb_retrieval.observability.attributes import (
    KB_REINDEX_CANCELLED,
    KB_REINDEX_FAILED,
    KB_REINDEX_UPDATED,
    reindex_attributes,
)
from kb_retrieval.retrieval.document import Document, Scope

logger = logging.getLogger(__name__)


class Reindexer:
    """(Re)computes and persists embeddings for documents missing them."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        config: RetrievalConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            store: Document store to read from and write to
            embedder: Embedder used for every document
            config: Batch size and inter-batch delay (defaults to embedder's config)
            sleep: Pause function between batches (injected in tests)
        """
        self.config = config or embedder.config
        self._store = store
        self._embedder = embedder
        self._sleep = sleep

    def reindex(
        self,
        collection_id: str | None = None,
        owner_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> int:
        """
        Embed every document in scope that has no embedding.

        Args:
            collection_id: Limit to one collection (default: all in scope)
            owner_id: Limit to one owner's collections
            cancel_event: Checked before each batch; set it to stop the job

        Returns:
            Number of documents whose embedding was written

        Raises:
            CollectionNotFoundError: collection_id given but not found
            StoreError: the pending documents could not be read
        """
        if collection_id is not None and self._store.get_collection(collection_id, owner_id) is None:
            raise CollectionNotFoundError(collection_id)

        pending = self._store.get_documents_missing_embedding(
            Scope(collection_id=collection_id, owner_id=owner_id)
        )
        if not pending:
            logger.info("No documents need embeddings")
            return 0

        size = self.config.reindex_batch_size
        batches = [pending[i:i + size] for i in range(0, len(pending), size)]
        logger.info(f"Updating embeddings for {len(pending)} documents in {len(batches)} batches")

        updated = 0
        cancelled = False
        with get_tracer().start_span(
            "kb.reindex", attributes=reindex_attributes(collection_id, len(pending), len(batches))
        ) as span, ThreadPoolExecutor(max_workers=size, thread_name_prefix="kb-reindex") as pool:
            for index, batch in enumerate(batches):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Reindex cancelled after {index}/{len(batches)} batches")
                    cancelled = True
                    break

                updated += sum(pool.map(self._reembed, batch))

                if index < len(batches) - 1:
                    self._sleep(self.config.reindex_batch_delay_s)

            span.set_attribute(KB_REINDEX_UPDATED, updated)
            failed = len(pending) - updated
            span.set_attribute(KB_REINDEX_FAILED, failed)
            span.set_attribute(KB_REINDEX_CANCELLED, cancelled)
            if cancelled:
                span.set_status("error", "cancelled")
            elif failed:
                span.set_status("error", f"{failed} documents not updated")
            else:
                span.set_status("ok")

        logger.info(f"Embedding update finished: {updated}/{len(pending)} documents updated")
        return updated

    def _reembed(self, doc: Document) -> bool:
        try:
            embedding = self._embedder.embed(doc.content)
            self._store.update_embedding(doc.id, embedding)
        except Exception as e:
            logger.error(f"Embedding update failed for document {doc.id}: {e}")
            return False
        logger.debug(f"Document {doc.id} embedded with {embedding.method}")
        return True
