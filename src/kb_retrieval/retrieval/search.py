"""
Retrieval orchestrator - two-tier knowledge-base search.

Per call:
1. Validate the query and limit
2. Resolve scope (one collection, or every collection of the owner)
3. Vector tier: embed query, fetch embedded candidates, rank
4. Lexical tier: case-insensitive substring match on title/content,
   each hit scored with a fixed placeholder similarity

The lexical tier runs when the vector tier raises (provider timeout,
store read failure) or returns nothing above the relevance floor.
Input errors and scope errors are raised; a store failure in the
lexical tier is raised because there is nothing left to fall back to.
Each call is independent: no state is shared between searches.
"""

from __future__ import annotations

import logging

from kb_retrieval.config import RetrievalConfig
from kb_retrieval.core import (
    CollectionNotFoundError,
    DocumentStore,
    EmbeddingTimeoutError,
    EmptyQueryError,
    InvalidInputError,
    MATCH_LEXICAL,
    MATCH_VECTOR,
    ProviderUnavailableError,
    SearchResult,
    StoreError,
)
from kb_retrieval.embeddings.embedder import Embedder
from kb_retrieval.observability import get_config as get_tracing_config
from kb_retrieval.observability import get_tracer
from kb_retrieval.observability.attributes import (
    KB_SEARCH_CANDIDATE_COUNT,
    KB_SEARCH_EMBEDDING_METHOD,
    KB_SEARCH_FALLBACK_REASON,
    KB_SEARCH_RESULT_COUNT,
    KB_SEARCH_TIER,
    search_attributes,
)
from kb_retrieval.observability.tracer import SpanProtocol
from kb_retrieval.retrieval.document import Scope
from kb_retrieval.retrieval.similarity import SimilarityEngine

logger = logging.getLogger(__name__)


class RetrievalOrchestrator:
    """Answers search queries with vector ranking and a lexical fallback."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        engine: SimilarityEngine | None = None,
        config: RetrievalConfig | None = None,
    ):
        self.config = config or embedder.config
        self._store = store
        self._embedder = embedder
        self._engine = engine or SimilarityEngine(self.config.relevance_floor)

    def search(
        self,
        query: str,
        collection_id: str | None = None,
        limit: int | None = None,
        owner_id: str | None = None,
        timeout: float | None = None,
    ) -> list[SearchResult]:
        """
        Search the knowledge base.

        Args:
            query: Free-text query
            collection_id: Restrict to one collection (must be visible to owner_id)
            limit: Maximum number of results (default from config)
            owner_id: Caller identity (required); unscoped searches cover
                only the caller's collections
            timeout: Budget in seconds for the remote embedding call; when
                exceeded the search goes straight to the lexical tier

        Returns:
            Ranked results, possibly empty

        Raises:
            EmptyQueryError: query is empty after trimming
            InvalidInputError: limit is not a positive integer, or no owner_id
            CollectionNotFoundError: collection missing or not owned by caller
            StoreError: the store failed in the lexical tier
        """
        text = (query or "").strip()
        if not text:
            raise EmptyQueryError("Search query must not be empty")

        limit = self.config.default_limit if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")

        scope = self._resolve_scope(collection_id, owner_id)

        captured = text if get_tracing_config().capture_query_text else None
        with get_tracer().start_span(
            "kb.search", attributes=search_attributes(collection_id, limit, captured)
        ) as span:
            results = self._vector_search(text, scope, limit, timeout, span)
            tier = MATCH_VECTOR
            if not results:
                tier = MATCH_LEXICAL
                try:
                    results = self._lexical_search(text, scope, limit)
                except StoreError as e:
                    span.set_attribute(KB_SEARCH_TIER, MATCH_LEXICAL)
                    span.record_exception(e)
                    span.set_status("error", str(e))
                    raise

            span.set_attribute(KB_SEARCH_TIER, tier)
            span.set_attribute(KB_SEARCH_RESULT_COUNT, len(results))
            span.set_status("ok")
            return results

    def _resolve_scope(self, collection_id: str | None, owner_id: str | None) -> Scope:
        # Owner-less scopes read every collection; only maintenance jobs use them
        if owner_id is None or not str(owner_id).strip():
            raise InvalidInputError("Search requires the caller's owner_id")

        if collection_id is None:
            return Scope(owner_id=owner_id)

        if not isinstance(collection_id, str) or not collection_id.strip():
            raise InvalidInputError(f"Malformed collection id: {collection_id!r}")

        if self._store.get_collection(collection_id, owner_id) is None:
            raise CollectionNotFoundError(collection_id)
        return Scope(collection_id=collection_id, owner_id=owner_id)

    def _vector_search(
        self,
        text: str,
        scope: Scope,
        limit: int,
        timeout: float | None,
        span: SpanProtocol,
    ) -> list[SearchResult]:
        try:
            query_embedding = self._embedder.embed(text, timeout=timeout)
            candidates = [d for d in self._store.get_documents(scope) if d.has_embedding]
        except EmbeddingTimeoutError as e:
            logger.warning(f"Vector search timed out, using text search: {e}")
            span.set_attribute(KB_SEARCH_FALLBACK_REASON, "timeout")
            return []
        except (ProviderUnavailableError, StoreError) as e:
            logger.warning(f"Vector search failed, using text search: {e}")
            span.set_attribute(KB_SEARCH_FALLBACK_REASON, type(e).__name__)
            return []

        span.set_attribute(KB_SEARCH_EMBEDDING_METHOD, query_embedding.method)
        span.set_attribute(KB_SEARCH_CANDIDATE_COUNT, len(candidates))

        ranked = self._engine.rank(query_embedding, candidates, limit)
        if not ranked:
            logger.debug(f"No vector matches above {self._engine.relevance_floor} among {len(candidates)} candidates")
            span.set_attribute(KB_SEARCH_FALLBACK_REASON, "no_vector_matches")
        return [SearchResult.from_document(doc, score, MATCH_VECTOR) for doc, score in ranked]

    def _lexical_search(self, text: str, scope: Scope, limit: int) -> list[SearchResult]:
        documents = self._store.find_by_text_match(scope, text, limit)
        score = self.config.lexical_match_score
        return [SearchResult.from_document(doc, score, MATCH_LEXICAL) for doc in documents[:limit]]
