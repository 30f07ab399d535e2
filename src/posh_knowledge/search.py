from __future__ import annotations

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Iterable, Mapping

from opentelemetry import trace

from .adapters import SourceAdapter, build_adapters
from .aggregator import aggregate
from .embeddings import Embedder, build_embedder
from .errors import CorpusUnavailable, DimensionMismatch, EmptyQuery, InvalidMaxResults
from .router import resolve_sources
from .schema import CorpusStatus, CorpusTag, QueryVector, RankedResult, SearchResponse
from .settings import EmbeddingSettings, SearchSettings, StoreSettings, load_settings
from .tracing import (
    ATTR_CORPUS_TAG,
    ATTR_EMBEDDING_MODEL_NAME,
    ATTR_INPUT_VALUE,
    ATTR_RETRIEVAL_DOCUMENTS,
    ATTR_SEARCH_MAX_RESULTS,
    ATTR_SEARCH_SOURCES,
    ATTR_SEARCH_TOTAL_RESULTS,
    SPAN_CORPUS_SEARCH,
    SPAN_EMBEDDING,
    SPAN_SEMANTIC_SEARCH,
    get_tracer,
    mark_failed,
)
from .vector_store import connect_store

logger = logging.getLogger(__name__)


class SemanticSearchEngine:
    """Embed once, fan out to the resolved corpora in parallel, aggregate per corpus.

    Usage::

        engine = SemanticSearchEngine(embedder, adapters)
        response = engine.search("what is the inquiry timeline", sources=["act", "playbooks"], max_results=3)
    """

    def __init__(
        self,
        embedder: Embedder,
        adapters: Mapping[CorpusTag, SourceAdapter],
        settings: SearchSettings | None = None,
        tracer: trace.Tracer | None = None,
    ) -> None:
        self._embedder = embedder
        self._adapters = dict(adapters)
        self._settings = settings or SearchSettings()
        self._tracer = tracer

    @property
    def settings(self) -> SearchSettings:
        return self._settings

    def _get_tracer(self) -> trace.Tracer:
        return self._tracer or get_tracer(__name__)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_query(self, query: str) -> None:
        if not isinstance(query, str) or not query.strip():
            raise EmptyQuery()

    def validate_limit(self, max_results: int) -> None:
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
            raise InvalidMaxResults(max_results)
        if max_results > self._settings.max_results_limit:
            raise InvalidMaxResults(max_results, self._settings.max_results_limit)

    # ------------------------------------------------------------------
    # Building blocks shared with the single-corpus lookups
    # ------------------------------------------------------------------

    def embed_query(self, query: str) -> QueryVector:
        """Embed *query*; `EmbeddingUnavailable` propagates and aborts the caller."""
        self.validate_query(query)
        with self._get_tracer().start_as_current_span(SPAN_EMBEDDING) as span:
            span.set_attribute(ATTR_EMBEDDING_MODEL_NAME, self._embedder.model_name)
            return self._embedder.embed(query)

    def adapter(self, tag: CorpusTag) -> SourceAdapter:
        try:
            return self._adapters[tag]
        except KeyError:
            raise CorpusUnavailable(tag.value, "no adapter configured") from None

    # ------------------------------------------------------------------
    # Multi-corpus search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        sources: Iterable[str] | None = None,
        max_results: int | None = None,
    ) -> SearchResponse:
        """Search every requested corpus with one query embedding.

        Args:
            query: Non-empty natural-language text.
            sources: Corpus tags to search; absent or empty means all corpora.
                Unknown tags are ignored.
            max_results: Per-corpus result limit; defaults to
                `settings.default_max_results`.

        Returns:
            Per-corpus ranked results, total count and per-corpus status.

        Raises:
            EmptyQuery: Before any provider or store call, for blank queries.
            InvalidMaxResults: For non-positive or oversized limits.
            EmbeddingUnavailable: If the query cannot be embedded; no corpus
                is searched.
            DimensionMismatch: If the query embedding and a corpus index differ
                in dimension; the whole search fails.
        """
        if max_results is None:
            max_results = self._settings.default_max_results
        self.validate_query(query)
        self.validate_limit(max_results)
        tags = resolve_sources(sources)

        with self._get_tracer().start_as_current_span(SPAN_SEMANTIC_SEARCH) as span:
            span.set_attribute(ATTR_INPUT_VALUE, query)
            span.set_attribute(ATTR_SEARCH_SOURCES, [tag.value for tag in tags])
            span.set_attribute(ATTR_SEARCH_MAX_RESULTS, max_results)

            if tags:
                vector = self.embed_query(query)
                per_source, statuses = self._fan_out(tags, vector, max_results)
                response = aggregate(query, per_source, statuses)
            else:
                response = aggregate(query, {})

            span.set_attribute(ATTR_SEARCH_TOTAL_RESULTS, response.total_results)
            return response

    def _fan_out(
        self,
        tags: tuple[CorpusTag, ...],
        vector: QueryVector,
        limit: int,
    ) -> tuple[dict[CorpusTag, list[RankedResult]], dict[CorpusTag, CorpusStatus]]:
        """Search every tag on its own worker and collect results within each tag's timeout.

        A timed-out store call cannot be interrupted: its worker is abandoned
        and keeps running until the store client returns. Against a hung store
        each request therefore leaves one live thread behind, and interpreter
        exit waits for it. Where the store can hang, give its client a request
        timeout.
        """
        per_source: dict[CorpusTag, list[RankedResult]] = {}
        statuses: dict[CorpusTag, CorpusStatus] = {}
        tracer = self._get_tracer()
        workers = max(1, min(self._settings.max_workers, len(tags)))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="corpus-search")
        started = time.monotonic()
        try:
            futures = {}
            for tag in tags:
                # Each worker runs in a copy of the caller's context so spans nest.
                context = contextvars.copy_context()
                futures[tag] = executor.submit(context.run, self._search_corpus, tracer, tag, vector, limit)

            # Timeouts are measured from fan-out start, so total latency is
            # bounded by the largest single timeout.
            for tag, future in futures.items():
                timeout = self._settings.timeout_for(tag)
                remaining = max(0.0, timeout - (time.monotonic() - started))
                try:
                    per_source[tag] = future.result(timeout=remaining)
                    statuses[tag] = CorpusStatus.ok()
                except FutureTimeoutError:
                    future.cancel()
                    error = CorpusUnavailable(tag.value, f"timed out after {timeout:g}s")
                    logger.warning("%s", error)
                    per_source[tag] = []
                    statuses[tag] = CorpusStatus.failed(error.reason)
                except CorpusUnavailable as exc:
                    per_source[tag] = []
                    statuses[tag] = CorpusStatus.failed(exc.reason)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return per_source, statuses

    def _search_corpus(
        self,
        tracer: trace.Tracer,
        tag: CorpusTag,
        vector: QueryVector,
        limit: int,
    ) -> list[RankedResult]:
        with tracer.start_as_current_span(
            SPAN_CORPUS_SEARCH, record_exception=False, set_status_on_exception=False
        ) as span:
            span.set_attribute(ATTR_CORPUS_TAG, tag.value)
            try:
                results = self.adapter(tag).search(vector, limit)
            except DimensionMismatch as exc:
                logger.error("Query embedding does not fit corpus %s: %s", tag.value, exc)
                mark_failed(span, exc)
                raise
            except CorpusUnavailable as exc:
                logger.warning("%s", exc)
                mark_failed(span, exc)
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning("Search of corpus %s failed: %s", tag.value, exc)
                mark_failed(span, exc)
                raise CorpusUnavailable(tag.value, str(exc) or type(exc).__name__) from exc

            results = results[:limit]
            span.set_attribute(ATTR_RETRIEVAL_DOCUMENTS, len(results))
            return results


def build_engine(
    embedding_settings: EmbeddingSettings | None = None,
    store_settings: StoreSettings | None = None,
    search_settings: SearchSettings | None = None,
) -> SemanticSearchEngine:
    """Wire the configured embedder and Chroma-backed adapters into an engine.

    Settings not passed explicitly are loaded from the environment.
    """
    if embedding_settings is None or store_settings is None or search_settings is None:
        loaded_embedding, loaded_store, loaded_search = load_settings()
        embedding_settings = embedding_settings or loaded_embedding
        store_settings = store_settings or loaded_store
        search_settings = search_settings or loaded_search

    client = connect_store(store_settings)
    return SemanticSearchEngine(
        embedder=build_embedder(embedding_settings),
        adapters=build_adapters(client, store_settings),
        settings=search_settings,
    )


def semantic_search(
    engine: SemanticSearchEngine,
    query: str,
    sources: Iterable[str] | None = None,
    max_results: int = 5,
) -> SearchResponse:
    """Search the knowledge corpora; see `SemanticSearchEngine.search`."""
    return engine.search(query, sources=sources, max_results=max_results)
