"""
Unit Tests for Observability Module

Tests the Phoenix/OpenTelemetry integration with focus on:
1. Graceful degradation (NoOpTracer when disabled)
2. Configuration loading from environment
3. Span attributes recorded by search and reindex

PATTERNS:
---------
1. Tests work WITHOUT Phoenix installed
2. Environment variable handling tested with patch.dict
3. Spans are captured with a recording tracer patched into the module
"""

import threading
from contextlib import contextmanager

import pytest
from unittest.mock import MagicMock, patch

from kb_retrieval.core import StoreError
from kb_retrieval.embeddings import Embedder, UnavailableProvider
from kb_retrieval.indexing import Reindexer
from kb_retrieval.observability import init_phoenix
from kb_retrieval.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from kb_retrieval.observability.tracer import (
    NoOpSpan,
    NoOpTracer,
    get_tracer,
    reset_tracer,
)
from kb_retrieval.observability.attributes import (
    KB_REINDEX_BATCHES,
    KB_REINDEX_CANCELLED,
    KB_REINDEX_FAILED,
    KB_REINDEX_PENDING,
    KB_REINDEX_UPDATED,
    KB_SEARCH_COLLECTION_ID,
    KB_SEARCH_FALLBACK_REASON,
    KB_SEARCH_LIMIT,
    KB_SEARCH_QUERY,
    KB_SEARCH_RESULT_COUNT,
    KB_SEARCH_TIER,
    reindex_attributes,
    search_attributes,
)
from kb_retrieval.retrieval import InMemoryDocumentStore, RetrievalOrchestrator
from kb_retrieval.retrieval.document import Collection, Document


class RecordingSpan:
    def __init__(self, name, attributes):
        self.name = name
        self.attributes = dict(attributes or {})
        self.status = None
        self.exceptions = []

    def set_attribute(self, key, value):
        self.attributes[key] = value

    def set_status(self, status, description=None):
        self.status = (status, description)

    def record_exception(self, exception):
        self.exceptions.append(exception)


class RecordingTracer:
    def __init__(self):
        self.spans = []

    @contextmanager
    def start_span(self, name, attributes=None):
        span = RecordingSpan(name, attributes)
        self.spans.append(span)
        yield span


@pytest.fixture
def store():
    store = InMemoryDocumentStore()
    store.create_collection(Collection(id="kb1", name="Notes", owner_id="u1"))
    for i in range(7):
        store.add_document(Document(
            id=f"d{i}", title=f"Note {i}", content=f"private note {i}", collection_id="kb1",
        ))
    return store


# ---------------------------------------------------------------------------
# CONFIG TESTS
# ---------------------------------------------------------------------------


class TestPhoenixConfig:
    """Test configuration loading."""

    def setup_method(self):
        reset_config()

    def teardown_method(self):
        reset_config()

    def test_config_defaults(self):
        """Config should have sensible defaults when env vars not set."""
        with patch.dict("os.environ", {}, clear=True):
            config = PhoenixConfig.from_env()

            assert config.enabled is False
            assert config.project_name == "kb-retrieval"
            assert config.collector_endpoint is None
            # Query text can be user-private, so it stays off by default
            assert config.capture_query_text is False

    @pytest.mark.parametrize("value", ["true", "1", "yes", "TRUE"])
    def test_config_from_env_enabled(self, value):
        with patch.dict("os.environ", {"PHOENIX_ENABLED": value}):
            assert PhoenixConfig.from_env().enabled is True

    @pytest.mark.parametrize("value", ["false", "0", "no"])
    def test_config_from_env_disabled(self, value):
        with patch.dict("os.environ", {"PHOENIX_ENABLED": value}):
            assert PhoenixConfig.from_env().enabled is False

    def test_config_overrides(self):
        env = {
            "PHOENIX_PROJECT_NAME": "thesis-kb",
            "PHOENIX_COLLECTOR_ENDPOINT": "https://phoenix.example.com/v1/traces",
            "PHOENIX_CAPTURE_QUERY_TEXT": "true",
        }
        with patch.dict("os.environ", env):
            config = PhoenixConfig.from_env()

        assert config.project_name == "thesis-kb"
        assert config.collector_endpoint == "https://phoenix.example.com/v1/traces"
        assert config.capture_query_text is True

    def test_get_config_singleton(self):
        assert get_config() is get_config()


# ---------------------------------------------------------------------------
# TRACER TESTS
# ---------------------------------------------------------------------------


class TestGetTracer:
    def setup_method(self):
        reset_tracer()
        reset_config()

    def teardown_method(self):
        reset_tracer()
        reset_config()

    def test_noop_when_disabled(self):
        with patch.dict("os.environ", {"PHOENIX_ENABLED": "false"}):
            assert isinstance(get_tracer(), NoOpTracer)

    def test_singleton(self):
        with patch.dict("os.environ", {"PHOENIX_ENABLED": "false"}):
            assert get_tracer() is get_tracer()

    def test_enabled_tracer_has_start_span(self):
        with patch.dict("os.environ", {"PHOENIX_ENABLED": "true"}):
            tracer = get_tracer()
            assert callable(tracer.start_span)

    def test_noop_span_accepts_everything(self):
        with NoOpTracer().start_span("kb.search", attributes={"k": "v"}) as span:
            assert isinstance(span, NoOpSpan)
            span.set_attribute("count", 3)
            span.set_status("error", "boom")
            span.record_exception(ValueError("boom"))

    def test_noop_span_does_not_swallow_exceptions(self):
        with pytest.raises(ValueError):
            with NoOpTracer().start_span("kb.search"):
                raise ValueError("boom")

    def test_init_phoenix_disabled(self):
        assert init_phoenix(PhoenixConfig(enabled=False)) is False


# ---------------------------------------------------------------------------
# ATTRIBUTE HELPER TESTS
# ---------------------------------------------------------------------------


class TestAttributeHelpers:
    def test_search_attributes(self):
        attrs = search_attributes("kb1", 10)

        assert attrs == {KB_SEARCH_COLLECTION_ID: "kb1", KB_SEARCH_LIMIT: 10}

    def test_search_attributes_unscoped_with_query(self):
        attrs = search_attributes(None, 5, query="thesis outline")

        assert attrs[KB_SEARCH_COLLECTION_ID] == "*"
        assert attrs[KB_SEARCH_QUERY] == "thesis outline"

    def test_reindex_attributes(self):
        attrs = reindex_attributes(None, 12, 3)

        assert attrs[KB_REINDEX_PENDING] == 12
        assert attrs[KB_REINDEX_BATCHES] == 3


# ---------------------------------------------------------------------------
# SPANS FROM RETRIEVAL CODE
# ---------------------------------------------------------------------------


class TestRetrievalSpans:
    def setup_method(self):
        reset_config()

    def teardown_method(self):
        reset_config()

    def test_search_span_records_lexical_fallback(self, store):
        tracer = RecordingTracer()
        orchestrator = RetrievalOrchestrator(store, Embedder(UnavailableProvider()))

        with patch("kb_retrieval.retrieval.search.get_tracer", return_value=tracer):
            with patch.dict("os.environ", {"PHOENIX_CAPTURE_QUERY_TEXT": "false"}):
                orchestrator.search("note 3", collection_id="kb1", owner_id="u1")

        span = tracer.spans[0]
        assert span.name == "kb.search"
        assert span.attributes[KB_SEARCH_TIER] == "lexical"
        assert span.attributes[KB_SEARCH_RESULT_COUNT] == 1
        assert span.attributes[KB_SEARCH_FALLBACK_REASON] == "no_vector_matches"
        assert KB_SEARCH_QUERY not in span.attributes
        assert span.status == ("ok", None)

    def test_search_span_captures_query_when_enabled(self, store):
        tracer = RecordingTracer()
        orchestrator = RetrievalOrchestrator(store, Embedder(UnavailableProvider()))

        with patch("kb_retrieval.retrieval.search.get_tracer", return_value=tracer):
            with patch.dict("os.environ", {"PHOENIX_CAPTURE_QUERY_TEXT": "true"}):
                orchestrator.search("note 3", collection_id="kb1", owner_id="u1")

        assert tracer.spans[0].attributes[KB_SEARCH_QUERY] == "note 3"

    def test_reindex_span(self, store):
        tracer = RecordingTracer()
        reindexer = Reindexer(store, Embedder(UnavailableProvider()), sleep=lambda s: None)

        with patch("kb_retrieval.indexing.reindexer.get_tracer", return_value=tracer):
            reindexer.reindex("kb1")

        span = tracer.spans[0]
        assert span.name == "kb.reindex"
        assert span.attributes[KB_REINDEX_BATCHES] == 2
        assert span.attributes[KB_REINDEX_UPDATED] == 7
        assert span.attributes[KB_REINDEX_CANCELLED] is False
        assert span.status == ("ok", None)

    def test_search_span_records_lexical_store_error(self, store):
        tracer = RecordingTracer()
        store.find_by_text_match = MagicMock(side_effect=StoreError("connection reset"))
        orchestrator = RetrievalOrchestrator(store, Embedder(UnavailableProvider()))

        with patch("kb_retrieval.retrieval.search.get_tracer", return_value=tracer):
            with pytest.raises(StoreError):
                orchestrator.search("note 3", collection_id="kb1", owner_id="u1")

        span = tracer.spans[0]
        assert span.attributes[KB_SEARCH_TIER] == "lexical"
        assert span.status[0] == "error"
        assert "connection reset" in span.status[1]
        assert isinstance(span.exceptions[0], StoreError)

    def test_reindex_span_reports_failed_documents(self, store):
        tracer = RecordingTracer()
        store.update_embedding = MagicMock(side_effect=StoreError("write rejected"))
        reindexer = Reindexer(store, Embedder(UnavailableProvider()), sleep=lambda s: None)

        with patch("kb_retrieval.indexing.reindexer.get_tracer", return_value=tracer):
            assert reindexer.reindex("kb1") == 0

        span = tracer.spans[0]
        assert span.attributes[KB_REINDEX_FAILED] == 7
        assert span.status == ("error", "7 documents not updated")

    def test_reindex_span_reports_cancellation(self, store):
        tracer = RecordingTracer()
        cancel = threading.Event()
        reindexer = Reindexer(
            store, Embedder(UnavailableProvider()), sleep=lambda s: cancel.set()
        )

        with patch("kb_retrieval.indexing.reindexer.get_tracer", return_value=tracer):
            assert reindexer.reindex("kb1", cancel_event=cancel) == 5

        span = tracer.spans[0]
        assert span.attributes[KB_REINDEX_CANCELLED] is True
        assert span.status == ("error", "cancelled")
