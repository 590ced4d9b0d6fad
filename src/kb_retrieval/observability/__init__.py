"""
Observability module - optional Phoenix + OpenTelemetry tracing.

USAGE:
------
# At application startup:
from kb_retrieval.observability import init_phoenix

init_phoenix()  # No-op unless PHOENIX_ENABLED=true

# In code that needs tracing:
from kb_retrieval.observability import get_tracer

with get_tracer().start_span("kb.search", attributes={...}) as span:
    span.set_attribute(KB_SEARCH_TIER, "vector")
"""

from __future__ import annotations

import logging

from kb_retrieval.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from kb_retrieval.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from kb_retrieval.observability.attributes import (
    KB_SEARCH_TIER,
    KB_SEARCH_RESULT_COUNT,
    KB_REINDEX_UPDATED,
    search_attributes,
    reindex_attributes,
)

logger = logging.getLogger(__name__)

_phoenix_initialized = False


def init_phoenix(config: PhoenixConfig | None = None) -> bool:
    """
    Initialize Phoenix tracing.

    Call once at startup. Installs an OpenTelemetry tracer provider and
    instruments the OpenAI SDK.

    Returns:
        True if tracing was initialized, False if disabled or unavailable
    """
    global _phoenix_initialized
    if _phoenix_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Phoenix tracing disabled")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        if config.collector_endpoint:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
            exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
            logger.info(f"Phoenix connecting to remote: {config.collector_endpoint}")
        else:
            import phoenix as px
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
            session = px.launch_app()
            exporter = OTLPSpanExporter(endpoint=f"{session.url.rstrip('/')}/v1/traces")
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider(
            resource=Resource.create({"openinference.project.name": config.project_name})
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        from kb_retrieval.observability.instrumentation import register_instrumentors
        register_instrumentors()

        reset_tracer()
        _phoenix_initialized = True
        return True

    except ImportError as e:
        logger.warning(f"Phoenix not installed, tracing disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Failed to initialize Phoenix: {e}")
        return False


def shutdown_phoenix() -> None:
    """Flush spans and reset tracing state."""
    global _phoenix_initialized

    if not _phoenix_initialized:
        return

    try:
        from opentelemetry import trace
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down Phoenix: {e}")

    reset_tracer()
    reset_config()
    _phoenix_initialized = False


__all__ = [
    "init_phoenix",
    "shutdown_phoenix",
    "PhoenixConfig",
    "get_config",
    "reset_config",
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    "KB_SEARCH_TIER",
    "KB_SEARCH_RESULT_COUNT",
    "KB_REINDEX_UPDATED",
    "search_attributes",
    "reindex_attributes",
]
