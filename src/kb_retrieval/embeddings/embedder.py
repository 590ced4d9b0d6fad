"""
Embedder - turns free text into a tagged embedding.

Primary path: the remote provider, fed a cleaned and truncated text.
Fallback path: a deterministic hashed bag-of-words vector computed from
the full cleaned text whenever the provider fails for any reason.

Callers only ever see an Embedding or EmptyInputError, whatever the
provider raises. The one exception is a caller-imposed timeout: when
embed() is given a timeout and the provider exceeds it,
EmbeddingTimeoutError is raised instead of computing the fallback, so
search can go straight to lexical matching.
"""

from __future__ import annotations

import logging

import numpy as np

from kb_retrieval.config import RetrievalConfig, TRUNCATION_MARKER
from kb_retrieval.core import (
    Embedding,
    EmbeddingProvider,
    EmbeddingTimeoutError,
    EmptyInputError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from kb_retrieval.embeddings.hashing import hash_embedding, hash_method_name, split_whitespace

logger = logging.getLogger(__name__)


def clean_text(text: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return " ".join(split_whitespace(text))


class Embedder:
    """Remote-first embedder with a deterministic local fallback."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        config: RetrievalConfig | None = None,
    ):
        self._provider = provider
        self.config = config or RetrievalConfig()

    @property
    def fallback_method(self) -> str:
        return hash_method_name(self.config.fallback_dimensions)

    def truncate(self, cleaned: str) -> str:
        """Bound the text sent to the provider."""
        limit = self.config.max_embed_chars
        if len(cleaned) > limit:
            return cleaned[:limit] + TRUNCATION_MARKER
        return cleaned

    def embed(self, text: str, timeout: float | None = None) -> Embedding:
        """
        Embed text.

        Args:
            text: Raw text; whitespace is normalized first
            timeout: Optional caller budget for the remote call in seconds

        Raises:
            EmptyInputError: text is empty after cleanup
            EmbeddingTimeoutError: only when timeout was given and exceeded
        """
        cleaned = clean_text(text or "")
        if not cleaned:
            raise EmptyInputError("Cannot embed empty text")

        try:
            vector = self._provider.embed_remote(self.truncate(cleaned), timeout=timeout)
            return Embedding(vector=np.asarray(vector, dtype=np.float32), method=self._provider.method)
        except ProviderTimeoutError as e:
            if timeout is not None:
                raise EmbeddingTimeoutError(f"Embedding exceeded {timeout}s") from e
            logger.warning(f"Embedding provider timed out, using hash fallback: {e}")
        except ProviderUnavailableError as e:
            logger.warning(f"Embedding provider unavailable, using hash fallback: {e}")
        except Exception as e:
            logger.warning(f"Embedding provider failed ({type(e).__name__}), using hash fallback: {e}")

        return self.embed_fallback(cleaned)

    def embed_fallback(self, text: str) -> Embedding:
        """Compute the local hashed embedding directly."""
        return Embedding(
            vector=hash_embedding(clean_text(text), self.config.fallback_dimensions),
            method=self.fallback_method,
        )
