"""
Typed errors for the retrieval core.

TAXONOMY:
---------
- Input errors: surfaced immediately, never retried
- Provider errors: always recovered locally (fallback vector / lexical tier)
- Store errors: propagated from the operation that triggered them
- Dimension mismatch: a per-candidate degradation during ranking
"""


class RetrievalError(Exception):
    """Base class for every error raised by kb_retrieval."""


# ---------------------------------------------------------------------------
# INPUT ERRORS
# ---------------------------------------------------------------------------


class InputError(RetrievalError, ValueError):
    """Invalid caller input."""


class EmptyInputError(InputError):
    """Text to embed is empty after whitespace cleanup."""


class EmptyQueryError(InputError):
    """Search query is empty after trimming."""


class InvalidInputError(InputError):
    """Malformed argument (limit, identifier, document field)."""


class CollectionNotFoundError(RetrievalError):
    """Collection does not exist or is not accessible to the caller."""

    def __init__(self, collection_id: str):
        super().__init__(f"Collection not found: {collection_id}")
        self.collection_id = collection_id


# ---------------------------------------------------------------------------
# PROVIDER ERRORS
# ---------------------------------------------------------------------------


class ProviderUnavailableError(RetrievalError):
    """Remote embedding call failed (network, auth, rate limit, bad response)."""


class ProviderTimeoutError(ProviderUnavailableError):
    """Remote embedding call exceeded its timeout."""


class EmbeddingTimeoutError(RetrievalError):
    """A caller-imposed timeout expired while embedding."""


# ---------------------------------------------------------------------------
# RANKING / STORE ERRORS
# ---------------------------------------------------------------------------


class DimensionMismatchError(RetrievalError, ValueError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimensions differ: {left} != {right}")
        self.left = left
        self.right = right


class StoreError(RetrievalError):
    """Read or write against the document store failed."""
