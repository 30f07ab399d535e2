"""Multi-corpus semantic retrieval over PoSH statute, rules, case law and playbooks."""

from .schema import (
    CaseLawEntry,
    CorpusStatus,
    CorpusTag,
    LegalSection,
    PlaybookEntry,
    RankedResult,
    SearchResponse,
)
from .search import SemanticSearchEngine, build_engine, semantic_search

__all__ = [
    "CorpusTag",
    "CorpusStatus",
    "RankedResult",
    "SearchResponse",
    "LegalSection",
    "CaseLawEntry",
    "PlaybookEntry",
    "SemanticSearchEngine",
    "build_engine",
    "semantic_search",
]
