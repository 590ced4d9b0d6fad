"""
Tracing configuration.

Loads Phoenix/OpenTelemetry settings from environment variables.
Tracing stays off unless explicitly enabled.
"""

import os
from dataclasses import dataclass

_TRUTHY = ("true", "1", "yes")


@dataclass
class PhoenixConfig:
    """Configuration for Phoenix tracing.

    Environment Variables:
        PHOENIX_ENABLED: Enable tracing (default: false)
        PHOENIX_PROJECT_NAME: Project name in Phoenix UI (default: kb-retrieval)
        PHOENIX_COLLECTOR_ENDPOINT: Remote OTLP endpoint (optional, local if empty)
        PHOENIX_CAPTURE_QUERY_TEXT: Record raw query text on search spans (default: false)

    Query text may contain user-private content; it is only recorded
    when PHOENIX_CAPTURE_QUERY_TEXT is set.
    """

    enabled: bool = False
    project_name: str = "kb-retrieval"
    collector_endpoint: str | None = None
    capture_query_text: bool = False

    @classmethod
    def from_env(cls) -> "PhoenixConfig":
        """Load config from environment variables."""
        return cls(
            enabled=os.environ.get("PHOENIX_ENABLED", "false").lower() in _TRUTHY,
            project_name=os.environ.get("PHOENIX_PROJECT_NAME", "kb-retrieval"),
            collector_endpoint=os.environ.get("PHOENIX_COLLECTOR_ENDPOINT") or None,
            capture_query_text=os.environ.get("PHOENIX_CAPTURE_QUERY_TEXT", "false").lower() in _TRUTHY,
        )


_config: PhoenixConfig | None = None


def get_config() -> PhoenixConfig:
    """Get the global tracing config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = PhoenixConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
