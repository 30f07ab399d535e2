from __future__ import annotations

import logging
from typing import Iterable

from .errors import InvalidSourceTag
from .schema import DEFAULT_CORPORA, CorpusTag

logger = logging.getLogger(__name__)


def partition_sources(requested: Iterable[str] | None) -> tuple[tuple[CorpusTag, ...], tuple[str, ...]]:
    """Split requested source strings into known corpus tags and unknown values.

    Args:
        requested: Caller-supplied source names, or None.

    Returns:
        Tuple of `(known_tags, unknown_values)`. Known tags are deduplicated
        and returned in canonical corpus order; an absent or empty request
        yields every default corpus.
    """
    if not requested:
        return DEFAULT_CORPORA, ()
    if isinstance(requested, str):
        requested = [requested]

    known: set[CorpusTag] = set()
    unknown: list[str] = []
    for value in requested:
        try:
            known.add(CorpusTag.parse(value))
        except InvalidSourceTag:
            unknown.append(value)

    ordered = tuple(tag for tag in DEFAULT_CORPORA if tag in known)
    return ordered, tuple(unknown)


def resolve_sources(requested: Iterable[str] | None) -> tuple[CorpusTag, ...]:
    """Resolve requested sources to the corpora to search; unknown names are dropped.

    Never raises. A request made only of unknown names resolves to no corpora.
    """
    known, unknown = partition_sources(requested)
    if unknown:
        logger.debug("Ignoring unknown source tags: %s", ", ".join(map(str, unknown)))
    return known
