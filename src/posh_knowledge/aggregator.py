from __future__ import annotations

from typing import Mapping

from .schema import CorpusStatus, CorpusTag, RankedResult, SearchResponse


def aggregate(
    query: str,
    per_source: Mapping[CorpusTag, list[RankedResult]],
    statuses: Mapping[CorpusTag, CorpusStatus] | None = None,
) -> SearchResponse:
    """Assemble the final response from per-corpus result lists.

    Lists are copied in adapter order; scores are never re-ranked or normalized
    across corpora because similarity is only comparable within one corpus.

    Args:
        query: Original query string.
        per_source: Ranked results keyed by searched corpus.
        statuses: Per-corpus availability; corpora without an entry are
            reported as available.

    Returns:
        Response whose `total_results` is the sum of all list lengths.
    """
    results = {tag: list(rows) for tag, rows in per_source.items()}
    statuses = statuses or {}
    return SearchResponse(
        query=query,
        results=results,
        total_results=sum(len(rows) for rows in results.values()),
        corpus_status={tag: statuses.get(tag, CorpusStatus.ok()) for tag in results},
    )
