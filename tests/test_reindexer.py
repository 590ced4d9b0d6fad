"""
Tests for the batch reindexer.

The inter-batch pause is injected, so these tests never sleep and can
assert exactly when pauses happen relative to embedding work.
"""

import threading

import numpy as np
import pytest

from kb_retrieval.core import (
    CollectionNotFoundError,
    ProviderUnavailableError,
    StoreError,
)
from kb_retrieval.embeddings import Embedder
from kb_retrieval.indexing import Reindexer
from kb_retrieval.retrieval import InMemoryDocumentStore
from kb_retrieval.retrieval.document import Collection, Document, Scope


class CountingProvider:
    """Returns a fixed vector; fails for texts listed in `failing`."""

    def __init__(self, failing=(), events=None):
        self.failing = set(failing)
        self.events = events if events is not None else []
        self._lock = threading.Lock()

    @property
    def method(self) -> str:
        return "provider:counting"

    def embed_remote(self, text, timeout=None):
        with self._lock:
            self.events.append(("embed", text))
        if text in self.failing:
            raise ProviderUnavailableError("rate limited")
        return np.array([1.0, 0.0, 0.0], dtype=np.float32)


class RejectingStore(InMemoryDocumentStore):
    """Rejects embedding writes for selected documents."""

    def __init__(self, rejected=()):
        super().__init__()
        self.rejected = set(rejected)

    def update_embedding(self, document_id, embedding):
        if document_id in self.rejected:
            raise StoreError(f"write rejected for {document_id}")
        super().update_embedding(document_id, embedding)


def _make_store(count, store=None, collection_id="kb1", owner_id="u1"):
    store = store or InMemoryDocumentStore()
    if store.get_collection(collection_id) is None:
        store.create_collection(Collection(id=collection_id, name=collection_id, owner_id=owner_id))
    for i in range(count):
        store.add_document(Document(
            id=f"{collection_id}-doc{i}",
            title=f"Doc {i}",
            content=f"content {collection_id} {i}",
            collection_id=collection_id,
        ))
    return store


def _recording_sleep(events):
    def sleep(seconds):
        events.append(("sleep", seconds))
    return sleep


# ---------------------------------------------------------------------------
# BATCHING
# ---------------------------------------------------------------------------


class TestBatching:
    def test_twelve_documents_three_batches(self):
        events = []
        store = _make_store(12)
        reindexer = Reindexer(
            store, Embedder(CountingProvider(events=events)), sleep=_recording_sleep(events)
        )

        assert reindexer.reindex("kb1") == 12

        sleeps = [i for i, e in enumerate(events) if e[0] == "sleep"]
        assert [events[i] for i in sleeps] == [("sleep", 1.0), ("sleep", 1.0)]
        # 5 embeds, pause, 5 embeds, pause, 2 embeds
        assert sleeps == [5, 11]
        assert len(events) == 14
        assert store.get_documents_missing_embedding(Scope(collection_id="kb1")) == []

    def test_single_batch_has_no_pause(self):
        events = []
        store = _make_store(5)
        reindexer = Reindexer(
            store, Embedder(CountingProvider(events=events)), sleep=_recording_sleep(events)
        )

        assert reindexer.reindex("kb1") == 5
        assert ("sleep", 1.0) not in events

    def test_nothing_to_do(self):
        events = []
        store = _make_store(0)
        reindexer = Reindexer(
            store, Embedder(CountingProvider(events=events)), sleep=_recording_sleep(events)
        )

        assert reindexer.reindex("kb1") == 0
        assert events == []

    def test_only_documents_missing_embeddings(self):
        store = _make_store(3)
        store.update_embedding(
            "kb1-doc1", Embedder(CountingProvider()).embed("already embedded")
        )
        provider = CountingProvider()

        updated = Reindexer(store, Embedder(provider), sleep=lambda s: None).reindex("kb1")

        assert updated == 2
        assert ("embed", "content kb1 1") not in provider.events


# ---------------------------------------------------------------------------
# FAILURES
# ---------------------------------------------------------------------------


class TestFailures:
    def test_failed_write_is_skipped(self):
        store = _make_store(12, store=RejectingStore(rejected={"kb1-doc7"}))
        reindexer = Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None)

        assert reindexer.reindex("kb1") == 11

        missing = store.get_documents_missing_embedding(Scope(collection_id="kb1"))
        assert [d.id for d in missing] == ["kb1-doc7"]

    def test_unexpected_store_exception_is_skipped(self, caplog):
        class FlakyStore(InMemoryDocumentStore):
            def update_embedding(self, document_id, embedding):
                if document_id == "kb1-doc3":
                    raise RuntimeError("driver crashed")
                super().update_embedding(document_id, embedding)

        store = _make_store(12, store=FlakyStore())
        reindexer = Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None)

        assert reindexer.reindex("kb1") == 11
        assert "kb1-doc3" in caplog.text

    def test_second_run_retries_only_failures(self):
        store = _make_store(12, store=RejectingStore(rejected={"kb1-doc7"}))
        reindexer = Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None)
        reindexer.reindex("kb1")

        store.rejected.clear()

        assert reindexer.reindex("kb1") == 1
        assert reindexer.reindex("kb1") == 0

    def test_provider_down_uses_hash_fallback(self):
        store = _make_store(3)
        provider = CountingProvider(failing={"content kb1 0", "content kb1 1", "content kb1 2"})

        assert Reindexer(store, Embedder(provider), sleep=lambda s: None).reindex("kb1") == 3

        doc = store.get_document("kb1-doc0")
        assert doc.embedding_method == "hash-100"
        assert len(doc.embedding) == 100

    def test_pending_read_failure_is_raised(self):
        class BrokenStore(InMemoryDocumentStore):
            def get_documents_missing_embedding(self, scope):
                raise StoreError("connection reset")

        store = _make_store(2, store=BrokenStore())

        with pytest.raises(StoreError):
            Reindexer(store, Embedder(CountingProvider())).reindex("kb1")

    def test_unknown_collection(self):
        with pytest.raises(CollectionNotFoundError):
            Reindexer(InMemoryDocumentStore(), Embedder(CountingProvider())).reindex("missing")


# ---------------------------------------------------------------------------
# SCOPE AND CANCELLATION
# ---------------------------------------------------------------------------


class TestScope:
    def test_collection_scope(self):
        store = _make_store(2)
        _make_store(3, store=store, collection_id="kb2")

        updated = Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None).reindex("kb2")

        assert updated == 3
        assert len(store.get_documents_missing_embedding(Scope(collection_id="kb1"))) == 2

    def test_whole_store(self):
        store = _make_store(2)
        _make_store(3, store=store, collection_id="kb2", owner_id="u2")

        assert Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None).reindex() == 5

    def test_owner_scope(self):
        store = _make_store(2)
        _make_store(3, store=store, collection_id="kb2", owner_id="u2")

        reindexer = Reindexer(store, Embedder(CountingProvider()), sleep=lambda s: None)

        assert reindexer.reindex(owner_id="u2") == 3
        assert len(store.get_documents_missing_embedding(Scope(owner_id="u1"))) == 2

    def test_collection_of_another_owner(self):
        store = _make_store(2)

        with pytest.raises(CollectionNotFoundError):
            Reindexer(store, Embedder(CountingProvider())).reindex("kb1", owner_id="u2")


class TestCancellation:
    def test_cancel_between_batches(self):
        store = _make_store(12)
        cancel = threading.Event()

        def sleep(seconds):
            cancel.set()

        reindexer = Reindexer(store, Embedder(CountingProvider()), sleep=sleep)

        assert reindexer.reindex("kb1", cancel_event=cancel) == 5
        assert len(store.get_documents_missing_embedding(Scope(collection_id="kb1"))) == 7

    def test_cancelled_before_start(self):
        store = _make_store(3)
        cancel = threading.Event()
        cancel.set()

        assert Reindexer(store, Embedder(CountingProvider())).reindex("kb1", cancel_event=cancel) == 0
