"""
Retrieval configuration.

Loads settings from environment variables. The ranking and batching
policy values are fixed named constants; they are exposed on the config
so deployments can see them, not so individual calls can tune them.

Environment Variables:
    EMBEDDING_API_KEY: Provider API key (falls back to SILICONFLOW_API_KEY)
    EMBEDDING_BASE_URL: OpenAI-compatible endpoint (default: SiliconFlow)
    EMBEDDING_MODEL: Remote embedding model (default: text-embedding-ada-002)
    EMBEDDING_TIMEOUT_S: Remote call timeout in seconds (default: 30)
    EMBEDDING_MAX_RETRIES: SDK-level retries per call (default: 0)
    EMBEDDING_AUTH_SCHEME: "bearer" or "raw" Authorization header (default: bearer)
    DATABASE_URL: PostgreSQL connection string for PgDocumentStore
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# POLICY CONSTANTS
# ---------------------------------------------------------------------------

RELEVANCE_FLOOR = 0.1  # similarity <= floor is dropped from ranked output
LEXICAL_MATCH_SCORE = 0.5  # placeholder score for "matched, un-ranked"
MAX_EMBED_CHARS = 1000
TRUNCATION_MARKER = "..."
FALLBACK_DIMENSIONS = 100
REINDEX_BATCH_SIZE = 5
REINDEX_BATCH_DELAY_S = 1.0
DEFAULT_LIMIT = 10

DEFAULT_BASE_URL = "https://api.siliconflow.cn/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
AUTH_SCHEMES = ("bearer", "raw")


@dataclass
class ProviderConfig:
    """Remote embedding provider settings, resolved once at startup."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_EMBEDDING_MODEL
    timeout_s: float = 30.0
    max_retries: int = 0
    auth_scheme: str = "bearer"

    def __post_init__(self) -> None:
        if self.auth_scheme not in AUTH_SCHEMES:
            raise ValueError(
                f"auth_scheme must be one of {AUTH_SCHEMES}, got {self.auth_scheme!r}"
            )
        if self.api_key is not None:
            self.api_key = self.api_key.strip() or None

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        return cls(
            api_key=os.environ.get("EMBEDDING_API_KEY")
            or os.environ.get("SILICONFLOW_API_KEY")
            or None,
            base_url=os.environ.get("EMBEDDING_BASE_URL", DEFAULT_BASE_URL),
            model=os.environ.get("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            timeout_s=float(os.environ.get("EMBEDDING_TIMEOUT_S", "30")),
            max_retries=int(os.environ.get("EMBEDDING_MAX_RETRIES", "0")),
            auth_scheme=os.environ.get("EMBEDDING_AUTH_SCHEME", "bearer").lower(),
        )


@dataclass
class StoreConfig:
    """Configuration for the PostgreSQL document store."""

    connection_string: str = "postgresql://localhost/knowledge_base"
    collections_table: str = "knowledge_bases"
    documents_table: str = "documents"

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            connection_string=os.environ.get(
                "DATABASE_URL", "postgresql://localhost/knowledge_base"
            ),
        )


@dataclass
class RetrievalConfig:
    """Top-level configuration for the retrieval core."""

    relevance_floor: float = RELEVANCE_FLOOR
    lexical_match_score: float = LEXICAL_MATCH_SCORE
    max_embed_chars: int = MAX_EMBED_CHARS
    fallback_dimensions: int = FALLBACK_DIMENSIONS
    reindex_batch_size: int = REINDEX_BATCH_SIZE
    reindex_batch_delay_s: float = REINDEX_BATCH_DELAY_S
    default_limit: int = DEFAULT_LIMIT
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        """Load config from environment variables."""
        return cls(
            provider=ProviderConfig.from_env(),
            store=StoreConfig.from_env(),
        )


# Global config singleton
_config: RetrievalConfig | None = None


def get_config() -> RetrievalConfig:
    """Get the global retrieval config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = RetrievalConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
