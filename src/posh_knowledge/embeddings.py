from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Protocol, Sequence

import numpy as np
from openai import OpenAI, OpenAIError

from .errors import DimensionMismatch, EmbeddingUnavailable, EmptyQuery
from .schema import QueryVector
from .settings import EmbeddingSettings

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Text to fixed-dimension vector conversion used for every corpus."""

    model_name: str
    dimension: int

    def embed(self, text: str) -> QueryVector: ...


def ensure_dimension(vector: Sequence[float] | np.ndarray, expected: int) -> None:
    """Raise `DimensionMismatch` unless `vector` has exactly `expected` components."""
    actual = len(vector)
    if actual != expected:
        raise DimensionMismatch(expected, actual)


def as_query_vector(values, dimension: int) -> QueryVector:
    """Validate raw provider output and freeze it as a read-only `float32` vector.

    Args:
        values: Embedding payload returned by a provider.
        dimension: Dimensionality agreed for every corpus.

    Returns:
        A one-dimensional, read-only NumPy vector.

    Raises:
        EmbeddingUnavailable: If the payload is not a finite numeric vector of
            the agreed dimension.
    """
    try:
        vector = np.array(values, dtype=np.float32)
    except (TypeError, ValueError) as exc:
        raise EmbeddingUnavailable(f"Embedding payload is not numeric: {exc}") from exc

    if vector.ndim != 1:
        raise EmbeddingUnavailable(f"Embedding must be one-dimensional, got shape {vector.shape}.")
    try:
        ensure_dimension(vector, dimension)
    except DimensionMismatch as exc:
        raise EmbeddingUnavailable(f"Provider returned a malformed embedding: {exc}") from exc
    if not np.all(np.isfinite(vector)):
        raise EmbeddingUnavailable("Embedding contains non-finite values.")

    vector.setflags(write=False)
    return vector


def _prepare_input(text: str, max_chars: int) -> str:
    if not isinstance(text, str) or not text.strip():
        raise EmptyQuery()
    return text[:max_chars]


class OpenAIEmbedder:
    """Query embedder backed by the OpenAI embeddings API."""

    def __init__(
        self,
        model: str = "text-embedding-ada-002",
        dimension: int = 1536,
        client: OpenAI | None = None,
        max_input_chars: int = 8000,
        timeout: float = 10.0,
        max_retries: int = 2,
    ):
        """Configure the embedder; the API client is created on first use when not injected.

        Args:
            model: OpenAI embedding model name.
            dimension: Expected vector length for `model`.
            client: Pre-built OpenAI client, mainly for tests.
            max_input_chars: Inputs are truncated to this many characters.
            timeout: Per-request timeout in seconds.
            max_retries: Client-level retry count for transient failures.
        """
        self.model_name = model
        self.dimension = dimension
        self._client = client
        self._max_input_chars = max_input_chars
        self._timeout = timeout
        self._max_retries = max_retries

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(timeout=self._timeout, max_retries=self._max_retries)
        return self._client

    def embed(self, text: str) -> QueryVector:
        """Embed one query string.

        Raises:
            EmptyQuery: If `text` is empty or whitespace-only.
            EmbeddingUnavailable: If the API is unreachable, times out, or
                returns a malformed vector.
        """
        payload = _prepare_input(text, self._max_input_chars)
        try:
            response = self._get_client().embeddings.create(model=self.model_name, input=payload)
        except OpenAIError as exc:
            logger.error("Embedding request to %s failed: %s", self.model_name, exc)
            raise EmbeddingUnavailable(f"Embedding provider request failed: {exc}") from exc

        data = getattr(response, "data", None)
        if not data:
            raise EmbeddingUnavailable("Embedding provider returned no vectors.")
        values = getattr(data[0], "embedding", None)
        if values is None:
            raise EmbeddingUnavailable("Embedding provider returned an item without a vector.")
        return as_query_vector(values, self.dimension)


class LocalEmbedder:
    """Query embedder running a sentence-transformers model in-process."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", max_input_chars: int = 8000, model=None):
        if model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s", model_name)
            model = SentenceTransformer(model_name)
        self._model = model
        self._max_input_chars = max_input_chars
        self.model_name = model_name
        self.dimension = int(model.get_sentence_embedding_dimension())

    def embed(self, text: str) -> QueryVector:
        payload = _prepare_input(text, self._max_input_chars)
        try:
            encoded = self._model.encode([payload], show_progress_bar=False)
        except Exception as exc:  # noqa: BLE001
            logger.error("Local embedding with %s failed: %s", self.model_name, exc)
            raise EmbeddingUnavailable(f"Local embedding model failed: {exc}") from exc
        return as_query_vector(encoded[0], self.dimension)


class CachedEmbedder:
    """LRU cache in front of another embedder. Failed calls are never cached."""

    def __init__(self, inner: Embedder, max_entries: int = 256):
        self._inner = inner
        self._max_entries = max_entries
        self._entries: OrderedDict[str, QueryVector] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def model_name(self) -> str:
        return self._inner.model_name

    @property
    def dimension(self) -> int:
        return self._inner.dimension

    def embed(self, text: str) -> QueryVector:
        with self._lock:
            cached = self._entries.get(text)
            if cached is not None:
                self._entries.move_to_end(text)
                self.hits += 1
                return cached

        vector = self._inner.embed(text)

        with self._lock:
            self.misses += 1
            self._entries[text] = vector
            self._entries.move_to_end(text)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return vector

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def build_embedder(settings: EmbeddingSettings) -> Embedder:
    """Create the configured embedder, wrapped in an LRU cache unless `cache_size` is 0.

    Raises:
        ValueError: If `settings.provider` is not `openai` or `local`.
    """
    if settings.provider == "openai":
        embedder: Embedder = OpenAIEmbedder(
            model=settings.model,
            dimension=settings.dimensions,
            max_input_chars=settings.max_input_chars,
            timeout=settings.request_timeout_s,
            max_retries=settings.max_retries,
        )
    elif settings.provider == "local":
        embedder = LocalEmbedder(model_name=settings.local_model, max_input_chars=settings.max_input_chars)
    else:
        raise ValueError(f"Unknown embedding provider: {settings.provider!r}")

    if settings.cache_size > 0:
        return CachedEmbedder(embedder, max_entries=settings.cache_size)
    return embedder
