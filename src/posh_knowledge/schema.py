from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .errors import InvalidSourceTag

QueryVector = np.ndarray


class CorpusTag(str, Enum):
    """Identifier of one independently indexed knowledge corpus."""

    ACT = "act"
    RULES = "rules"
    CASE_LAW = "case_law"
    PLAYBOOKS = "playbooks"

    @classmethod
    def parse(cls, value: str) -> CorpusTag:
        """Map a caller-supplied source string onto a known corpus tag.

        Raises:
            InvalidSourceTag: If `value` names no known corpus.
        """
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidSourceTag(value) from exc


DEFAULT_CORPORA: tuple[CorpusTag, ...] = (
    CorpusTag.ACT,
    CorpusTag.RULES,
    CorpusTag.CASE_LAW,
    CorpusTag.PLAYBOOKS,
)


@dataclass(slots=True)
class LegalSection:
    """One section of the PoSH Act or the PoSH Rules."""

    section_id: str
    document_type: str
    section_number: str
    section_title: str
    section_text: str
    citation: str
    embedding: list[float]


@dataclass(slots=True)
class CaseLawEntry:
    """Precedent interpreting workplace harassment provisions."""

    case_id: str
    case_name: str
    citation: str
    court: str
    ratio_decidendi: str
    embedding: list[float]
    decided_date: str = ""
    facts_summary: str = ""
    issues: list[str] = field(default_factory=list)
    holdings: list[str] = field(default_factory=list)
    sections_interpreted: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PlaybookEntry:
    """Operational guidance for one committee scenario."""

    playbook_id: str
    category: str
    title: str
    scenario: str
    recommended_approach: str
    embedding: list[float]
    do_list: list[str] = field(default_factory=list)
    dont_list: list[str] = field(default_factory=list)
    legal_references: list[str] = field(default_factory=list)
    difficulty_level: str = ""


CorpusRecord = LegalSection | CaseLawEntry | PlaybookEntry


@dataclass(slots=True, frozen=True)
class RankedResult:
    """Corpus record projected onto the common result shape with a [0, 1] similarity."""

    identifier: str
    title: str
    content: str
    source: str
    similarity: float
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self, include_metadata: bool = False) -> dict:
        payload = {
            "identifier": self.identifier,
            "title": self.title,
            "content": self.content,
            "source": self.source,
            "similarity": self.similarity,
        }
        if include_metadata and self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass(slots=True, frozen=True)
class CorpusStatus:
    """Outcome of searching one corpus: reachable or not, and why."""

    available: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> CorpusStatus:
        return cls(available=True)

    @classmethod
    def failed(cls, error: str) -> CorpusStatus:
        return cls(available=False, error=error)


@dataclass(slots=True)
class SearchResponse:
    """Per-corpus ranked results for one query plus the aggregate count."""

    query: str
    results: dict[CorpusTag, list[RankedResult]]
    total_results: int
    corpus_status: dict[CorpusTag, CorpusStatus] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "results": {
                tag.value: [result.to_dict() for result in rows] for tag, rows in self.results.items()
            },
            "total_results": self.total_results,
            "corpus_status": {
                tag.value: {"available": status.available, "error": status.error}
                for tag, status in self.corpus_status.items()
            },
        }
