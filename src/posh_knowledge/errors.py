"""Error taxonomy for query-time retrieval.

Fatal errors (`EmptyQuery`, `InvalidMaxResults`, `EmbeddingUnavailable`,
`DimensionMismatch`) abort a search. `CorpusUnavailable` is absorbed per corpus
by the search engine and `InvalidSourceTag` is absorbed by the router.
"""
from __future__ import annotations


class KnowledgeSearchError(Exception):
    """Base class for every error raised by the retrieval engine."""


class EmptyQuery(KnowledgeSearchError, ValueError):
    """Query text is empty or whitespace-only."""

    def __init__(self) -> None:
        super().__init__("Query must be non-empty text.")


class InvalidMaxResults(KnowledgeSearchError, ValueError):
    """Per-corpus result limit is not a positive integer within bounds."""

    def __init__(self, value: object, upper_bound: int | None = None) -> None:
        self.value = value
        if upper_bound is None:
            message = f"max_results must be a positive integer, got {value!r}."
        else:
            message = f"max_results must be between 1 and {upper_bound}, got {value!r}."
        super().__init__(message)


class EmbeddingUnavailable(KnowledgeSearchError):
    """Embedding provider is unreachable or returned malformed output."""


class CorpusUnavailable(KnowledgeSearchError):
    """A single corpus could not be searched (store error or timeout)."""

    def __init__(self, tag: str, reason: str) -> None:
        self.tag = tag
        self.reason = reason
        super().__init__(f"Corpus '{tag}' unavailable: {reason}")


class InvalidSourceTag(KnowledgeSearchError, ValueError):
    """Requested source does not match any known corpus."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown source tag: {value!r}")


class DimensionMismatch(KnowledgeSearchError, ValueError):
    """Two vectors that must share a dimensionality do not."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected vector of dimension {expected}, got {actual}.")
