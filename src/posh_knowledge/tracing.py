"""OpenTelemetry tracing helpers for multi-corpus search.

The search engine records one trace per request:

    semantic-search            query, requested sources, total results
      embedding                embedding model name
      corpus-search (x N)      corpus tag, result count, ERROR status on failure

Usage with an OTLP backend (e.g. Arize Phoenix):

    from posh_knowledge.tracing import configure_tracing

    configure_tracing(endpoint="http://localhost:6006/v1/traces", service_name="posh-knowledge")

Scripts call `configure_tracing_from_settings`, which reads the endpoint from
`OTEL_EXPORTER_OTLP_ENDPOINT` via `load_settings`.

Usage without a backend:

    configure_tracing()   # uses ConsoleSpanExporter by default

Until `configure_tracing` is called, tracers come from the no-op global
provider and spans are discarded.
"""
from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from .settings import SearchSettings

# ---------------------------------------------------------------------------
# Span attribute names
# (OpenInference names where one exists, search.* / corpus.* otherwise)
# ---------------------------------------------------------------------------

ATTR_INPUT_VALUE = "input.value"
ATTR_RETRIEVAL_DOCUMENTS = "retrieval.documents"
ATTR_EMBEDDING_MODEL_NAME = "embedding.model_name"
ATTR_SEARCH_SOURCES = "search.sources"
ATTR_SEARCH_MAX_RESULTS = "search.max_results"
ATTR_SEARCH_TOTAL_RESULTS = "search.total_results"
ATTR_CORPUS_TAG = "corpus.tag"

SPAN_SEMANTIC_SEARCH = "semantic-search"
SPAN_EMBEDDING = "embedding"
SPAN_CORPUS_SEARCH = "corpus-search"

_provider: TracerProvider | None = None


def configure_tracing(
    endpoint: str | None = None,
    service_name: str = "posh-knowledge",
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """Create and register a global TracerProvider.

    Args:
        endpoint: OTLP HTTP endpoint URL. When *None* and no *exporter* is
            given, spans are printed to stdout.
        service_name: Label identifying this service in the tracing backend.
        exporter: Pre-built exporter, e.g. ``InMemorySpanExporter`` in tests.
            When provided, *endpoint* is ignored.

    Returns:
        The configured provider, also installed as the global OTel provider.
    """
    global _provider

    resource = Resource(attributes={SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        chosen_exporter: SpanExporter = exporter
    elif endpoint is not None:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError as exc:  # pragma: no cover
            raise ImportError(
                "opentelemetry-exporter-otlp-proto-http is required to export "
                "traces to an OTLP endpoint.  Install it with:\n"
                "  pip install 'posh-knowledge-search[otlp]'"
            ) from exc
        chosen_exporter = OTLPSpanExporter(endpoint=endpoint)
    else:
        chosen_exporter = ConsoleSpanExporter()

    provider.add_span_processor(SimpleSpanProcessor(chosen_exporter))
    trace.set_tracer_provider(provider)
    _provider = provider
    return provider


def configure_tracing_from_settings(settings: SearchSettings) -> TracerProvider | None:
    """Export spans to `settings.tracing_endpoint` when one is configured.

    Returns:
        The registered provider, or None when tracing stays disabled.
    """
    if not settings.tracing_endpoint:
        return None
    return configure_tracing(endpoint=settings.tracing_endpoint, service_name=settings.service_name)


def get_tracer(name: str) -> trace.Tracer:
    """Return a tracer from the configured provider, or the no-op global one."""
    if _provider is not None:
        return _provider.get_tracer(name)
    return trace.get_tracer(name)


def mark_failed(span: trace.Span, exc: BaseException) -> None:
    """Record *exc* on *span* and set its status to ERROR."""
    span.set_status(trace.StatusCode.ERROR, str(exc))
    span.record_exception(exc)
