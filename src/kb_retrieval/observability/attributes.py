"""
Span attribute keys for retrieval operations.

Everything lives under the "kb." namespace. Provider calls are traced
separately by the OpenAI instrumentor.
"""

# ---------------------------------------------------------------------------
# SEARCH
# ---------------------------------------------------------------------------

KB_SEARCH_QUERY = "kb.search.query"  # only with PHOENIX_CAPTURE_QUERY_TEXT
KB_SEARCH_COLLECTION_ID = "kb.search.collection_id"
KB_SEARCH_LIMIT = "kb.search.limit"
KB_SEARCH_TIER = "kb.search.tier"  # "vector" or "lexical"
KB_SEARCH_EMBEDDING_METHOD = "kb.search.embedding_method"
KB_SEARCH_CANDIDATE_COUNT = "kb.search.candidate_count"
KB_SEARCH_RESULT_COUNT = "kb.search.result_count"
KB_SEARCH_FALLBACK_REASON = "kb.search.fallback_reason"


# ---------------------------------------------------------------------------
# REINDEX
# ---------------------------------------------------------------------------

KB_REINDEX_COLLECTION_ID = "kb.reindex.collection_id"
KB_REINDEX_PENDING = "kb.reindex.pending"
KB_REINDEX_BATCHES = "kb.reindex.batches"
KB_REINDEX_UPDATED = "kb.reindex.updated"
KB_REINDEX_FAILED = "kb.reindex.failed"
KB_REINDEX_CANCELLED = "kb.reindex.cancelled"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def search_attributes(
    collection_id: str | None,
    limit: int,
    query: str | None = None,
) -> dict:
    """Create attributes dict for a search span."""
    attrs = {
        KB_SEARCH_COLLECTION_ID: collection_id or "*",
        KB_SEARCH_LIMIT: limit,
    }
    if query is not None:
        attrs[KB_SEARCH_QUERY] = query
    return attrs


def reindex_attributes(collection_id: str | None, pending: int, batches: int) -> dict:
    """Create attributes dict for a reindex span."""
    return {
        KB_REINDEX_COLLECTION_ID: collection_id or "*",
        KB_REINDEX_PENDING: pending,
        KB_REINDEX_BATCHES: batches,
    }
