"""Single-corpus lookups used by the knowledge tools.

Unlike `SemanticSearchEngine.search`, each lookup reads one corpus, so a
store failure has nothing to degrade to and propagates as `CorpusUnavailable`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import CorpusUnavailable, InvalidSourceTag, KnowledgeSearchError
from .schema import CorpusTag, RankedResult
from .search import SemanticSearchEngine
from .vector_store import interprets_key

logger = logging.getLogger(__name__)

PROVISION_SOURCES = {
    CorpusTag.ACT: "PoSH Act, 2013",
    CorpusTag.RULES: "PoSH Rules, 2013",
}
PLAYBOOK_SOURCE = "KelpHR Best Practices"
PROVISION_SEARCH_LIMIT = 5


@dataclass(slots=True)
class ProvisionLookup:
    found: bool
    source: str
    sections: list[RankedResult] = field(default_factory=list)
    exact_match: bool = False

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "source": self.source,
            "exact_match": self.exact_match,
            "sections": [section.to_dict(include_metadata=True) for section in self.sections],
        }


@dataclass(slots=True)
class CaseLawLookup:
    found: bool
    cases: list[RankedResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"found": self.found, "cases": [case.to_dict(include_metadata=True) for case in self.cases]}


@dataclass(slots=True)
class PlaybookLookup:
    found: bool
    guidance: list[RankedResult] = field(default_factory=list)
    source: str = PLAYBOOK_SOURCE

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "source": self.source,
            "guidance": [entry.to_dict(include_metadata=True) for entry in self.guidance],
        }


def _guarded(tag: CorpusTag, operation, *args, **kwargs) -> list[RankedResult]:
    try:
        return operation(*args, **kwargs)
    except KnowledgeSearchError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("Lookup in corpus %s failed: %s", tag.value, exc)
        raise CorpusUnavailable(tag.value, str(exc) or type(exc).__name__) from exc


def search_legal_provisions(
    engine: SemanticSearchEngine,
    document_type: str,
    query: str,
    section_number: str | None = None,
) -> ProvisionLookup:
    """Find sections of the Act or the Rules, by number first and by meaning second.

    Args:
        engine: Engine providing the embedder and corpus adapters.
        document_type: `act` or `rules`.
        query: Natural-language description used for the semantic fallback;
            it may be empty when `section_number` matches exactly.
        section_number: Section (or rule) number to look up exactly.

    Returns:
        Exact matches when `section_number` names an indexed section,
        otherwise the top semantic matches.

    Raises:
        InvalidSourceTag: If `document_type` is neither `act` nor `rules`.
        EmptyQuery: If the semantic fallback runs with an empty `query`.
    """
    tag = CorpusTag.parse(document_type)
    if tag not in PROVISION_SOURCES:
        raise InvalidSourceTag(document_type)
    adapter = engine.adapter(tag)
    source = PROVISION_SOURCES[tag]

    lookup = getattr(adapter, "lookup", None)
    if section_number and lookup is not None:
        exact = _guarded(tag, lookup, str(section_number))
        if exact:
            return ProvisionLookup(found=True, source=source, sections=exact, exact_match=True)
        logger.debug("No %s section %s; falling back to semantic search", tag.value, section_number)

    vector = engine.embed_query(query)
    sections = _guarded(tag, adapter.search, vector, PROVISION_SEARCH_LIMIT)
    return ProvisionLookup(found=bool(sections), source=source, sections=sections)


def get_case_law(
    engine: SemanticSearchEngine,
    query: str,
    section: str | None = None,
    max_results: int = 3,
) -> CaseLawLookup:
    """Find precedents relevant to *query*, optionally only those interpreting *section*."""
    engine.validate_query(query)
    engine.validate_limit(max_results)
    adapter = engine.adapter(CorpusTag.CASE_LAW)
    where = {interprets_key(section): True} if section else None

    vector = engine.embed_query(query)
    cases = _guarded(CorpusTag.CASE_LAW, adapter.search, vector, max_results, where=where)
    return CaseLawLookup(found=bool(cases), cases=cases)


def get_playbook_guidance(
    engine: SemanticSearchEngine,
    scenario: str,
    category: str | None = None,
    max_results: int = 3,
) -> PlaybookLookup:
    """Find playbook guidance for *scenario*, optionally within one *category*."""
    engine.validate_query(scenario)
    engine.validate_limit(max_results)
    adapter = engine.adapter(CorpusTag.PLAYBOOKS)
    where = {"category": category} if category else None

    vector = engine.embed_query(scenario)
    guidance = _guarded(CorpusTag.PLAYBOOKS, adapter.search, vector, max_results, where=where)
    return PlaybookLookup(found=bool(guidance), guidance=guidance)
