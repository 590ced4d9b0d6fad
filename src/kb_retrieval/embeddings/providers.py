"""
Embedding providers - Single Responsibility: call a remote embedding API.

Providers know nothing about fallbacks, truncation or documents. They
either return a vector or raise ProviderUnavailableError; the Embedder
decides what to do about it.

The authorization header format is fixed by ProviderConfig.auth_scheme
when the client is built, never retried per request.
"""

from __future__ import annotations

import hashlib
import logging

import numpy as np
import openai
from openai import OpenAI

from kb_retrieval.config import ProviderConfig
from kb_retrieval.core import EmbeddingProvider, ProviderTimeoutError, ProviderUnavailableError

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    """
    Embedding provider for any OpenAI-compatible /embeddings endpoint.

    Defaults to SiliconFlow; point base_url at OpenAI or a local gateway
    to switch vendors.
    """

    def __init__(
        self,
        config: ProviderConfig | None = None,
        client: OpenAI | None = None,
    ):
        self.config = config or ProviderConfig.from_env()
        self._client = client
        if self._client is None:
            if self.config.configured:
                self._client = self._build_client()
            else:
                logger.warning("No embedding API key configured, remote embeddings disabled")

    def _build_client(self) -> OpenAI:
        kwargs = {
            "api_key": self.config.api_key,
            "base_url": self.config.base_url,
            "timeout": self.config.timeout_s,
            "max_retries": self.config.max_retries,
        }
        if self.config.auth_scheme == "raw":
            # Custom headers are applied after the SDK's bearer header
            kwargs["default_headers"] = {"Authorization": self.config.api_key}
        return OpenAI(**kwargs)

    @property
    def method(self) -> str:
        return f"provider:{self.config.model}"

    def embed_remote(self, text: str, timeout: float | None = None) -> np.ndarray:
        """Embed a single text; every failure becomes ProviderUnavailableError."""
        if self._client is None:
            raise ProviderUnavailableError("Embedding provider not configured")

        options = {}
        if timeout is not None:
            options["timeout"] = timeout

        try:
            response = self._client.embeddings.create(
                input=text,
                model=self.config.model,
                **options,
            )
            vector = np.array(response.data[0].embedding, dtype=np.float32)
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(f"Embedding request timed out: {e}") from e
        except openai.OpenAIError as e:
            raise ProviderUnavailableError(f"Embedding request failed: {e}") from e
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(f"Malformed embedding response: {e}") from e

        if vector.ndim != 1 or vector.size == 0:
            raise ProviderUnavailableError("Provider returned an empty embedding")
        return vector


class UnavailableProvider:
    """Provider used when remote embeddings are switched off."""

    @property
    def method(self) -> str:
        return "provider:none"

    def embed_remote(self, text: str, timeout: float | None = None) -> np.ndarray:
        raise ProviderUnavailableError("Remote embeddings disabled")


class MockEmbeddingProvider:
    """
    Mock provider for testing without API calls.

    Generates deterministic pseudo-embeddings seeded from a text hash.
    Set available=False to simulate an outage.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 1536, available: bool = True, model: str = "mock"):
        self._dimensions = dimensions
        self._model = model
        self.available = available
        self.calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def method(self) -> str:
        return f"provider:{self._model}"

    def embed_remote(self, text: str, timeout: float | None = None) -> np.ndarray:
        self.calls.append(text)
        if not self.available:
            raise ProviderUnavailableError("Mock provider is down")
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return rng.standard_normal(self._dimensions).astype(np.float32)


def get_embedding_provider(
    config: ProviderConfig | None = None,
    use_mock: bool = False,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        config: Provider settings (loaded from env if not provided)
        use_mock: If True, return MockEmbeddingProvider (for testing)
    """
    if use_mock:
        return MockEmbeddingProvider()

    config = config or ProviderConfig.from_env()
    if not config.configured:
        logger.info("Embedding provider not configured, using hash fallback only")
        return UnavailableProvider()
    return OpenAICompatibleProvider(config)
