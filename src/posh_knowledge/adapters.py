"""Per-corpus source adapters.

Every corpus is searched through the same `search(vector, limit)` contract.
Corpus-specific knowledge is limited to a `FieldMap` (which stored fields
become identifier, title, content and source) and an optional base filter,
so the search engine and aggregator never inspect corpus schemas.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from .errors import DimensionMismatch, InvalidMaxResults
from .schema import CorpusTag, QueryVector, RankedResult
from .settings import StoreSettings
from .vector_store import INTERPRETS_PREFIX, corpus_collection

logger = logging.getLogger(__name__)

_QUERY_INCLUDE = ["documents", "metadatas", "distances"]


class SourceAdapter(Protocol):
    tag: CorpusTag

    def search(self, vector: QueryVector, limit: int, where: dict | None = None) -> list[RankedResult]: ...


@dataclass(slots=True, frozen=True)
class FieldMap:
    """Stored metadata keys projected onto the common result fields.

    `identifier=None` means the store's own record id is the identifier.
    """

    identifier: str | None
    title: str
    content: str
    source: str


@dataclass(slots=True, frozen=True)
class CorpusLayout:
    """Where a corpus lives: collection setting name, field mapping, base filter."""

    collection_setting: str
    fields: FieldMap
    base_filter: dict | None = None


LEGAL_SECTION_FIELDS = FieldMap(
    identifier="section_number", title="section_title", content="section_text", source="citation"
)
CASE_LAW_FIELDS = FieldMap(identifier="citation", title="case_name", content="ratio_decidendi", source="court")
PLAYBOOK_FIELDS = FieldMap(identifier=None, title="title", content="recommended_approach", source="category")

# Act and rules share one collection of legal sections, split by document type.
CORPUS_LAYOUTS: dict[CorpusTag, CorpusLayout] = {
    CorpusTag.ACT: CorpusLayout("legal_collection", LEGAL_SECTION_FIELDS, {"document_type": "act"}),
    CorpusTag.RULES: CorpusLayout("legal_collection", LEGAL_SECTION_FIELDS, {"document_type": "rules"}),
    CorpusTag.CASE_LAW: CorpusLayout("case_law_collection", CASE_LAW_FIELDS),
    CorpusTag.PLAYBOOKS: CorpusLayout("playbook_collection", PLAYBOOK_FIELDS),
}


def similarity_from_distance(distance: float) -> float:
    """Map a cosine distance onto [0, 1]; anti-correlated vectors clamp to 0."""
    return min(1.0, max(0.0, 1.0 - float(distance)))


def combine_filters(*clauses: dict | None) -> dict | None:
    """Join single-key Chroma `where` clauses with `$and`, dropping empty ones."""
    active = [clause for clause in clauses if clause]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return {"$and": active}


class ChromaCorpusAdapter:
    """Nearest-neighbour search over one corpus stored in a cosine-space Chroma collection."""

    def __init__(self, tag: CorpusTag, collection, fields: FieldMap, base_filter: dict | None = None):
        """Bind an adapter to an injected collection.

        Args:
            tag: Corpus this adapter serves.
            collection: Chroma collection (or any object with the same
                `query`/`get` interface).
            fields: Projection of stored metadata onto result fields.
            base_filter: `where` clause applied to every query, e.g. the
                document type separating act sections from rule sections.
        """
        self.tag = tag
        self._collection = collection
        self._fields = fields
        self._base_filter = base_filter
        self._dimension: int | None = None

    def search(self, vector: QueryVector, limit: int, where: dict | None = None) -> list[RankedResult]:
        """Return at most `limit` records ordered by descending similarity.

        Args:
            vector: Query embedding.
            limit: Maximum number of results, must be positive.
            where: Extra metadata filter combined with the base filter.

        Returns:
            Ranked results with similarity derived from cosine distance.

        Raises:
            DimensionMismatch: If the query vector and the stored embeddings
                differ in length.
        """
        if limit < 1:
            raise InvalidMaxResults(limit)
        stored = self.stored_dimension()
        if stored is not None and len(vector) != stored:
            raise DimensionMismatch(stored, len(vector))

        query_kwargs = {}
        clause = combine_filters(self._base_filter, where)
        if clause is not None:
            query_kwargs["where"] = clause

        response = self._collection.query(
            query_embeddings=[np.asarray(vector, dtype=np.float64).tolist()],
            n_results=limit,
            include=_QUERY_INCLUDE,
            **query_kwargs,
        )

        ids = _first_row(response.get("ids"))
        documents = _first_row(response.get("documents")) or [None] * len(ids)
        metadatas = _first_row(response.get("metadatas")) or [None] * len(ids)
        distances = _first_row(response.get("distances"))

        results = [
            self._to_result(record_id, document, metadata, similarity_from_distance(distance))
            for record_id, document, metadata, distance in zip(ids, documents, metadatas, distances, strict=True)
        ]
        logger.debug("Corpus %s returned %d results", self.tag.value, len(results))
        return results[:limit]

    def stored_dimension(self) -> int | None:
        """Length of the embeddings stored in the collection, or None while it is empty."""
        if self._dimension is None:
            response = self._collection.get(limit=1, include=["embeddings"])
            embeddings = response.get("embeddings")
            if embeddings is not None and len(embeddings) > 0:
                self._dimension = len(embeddings[0])
        return self._dimension

    def lookup(self, identifier: str) -> list[RankedResult]:
        """Exact identifier lookup; matches are reported with similarity 1.0."""
        if self._fields.identifier is None:
            response = self._collection.get(
                ids=[identifier],
                where=self._base_filter,
                include=["documents", "metadatas"],
            )
        else:
            response = self._collection.get(
                where=combine_filters(self._base_filter, {self._fields.identifier: identifier}),
                include=["documents", "metadatas"],
            )

        ids = response.get("ids") or []
        documents = response.get("documents") or [None] * len(ids)
        metadatas = response.get("metadatas") or [None] * len(ids)
        return [
            self._to_result(record_id, document, metadata, 1.0)
            for record_id, document, metadata in zip(ids, documents, metadatas, strict=True)
        ]

    def _to_result(self, record_id: str, document: str | None, metadata: dict | None, similarity: float) -> RankedResult:
        metadata = metadata or {}
        fields = self._fields
        identifier = record_id if fields.identifier is None else metadata.get(fields.identifier, record_id)
        return RankedResult(
            identifier=str(identifier),
            title=str(metadata.get(fields.title, "")),
            content=str(metadata.get(fields.content) or document or ""),
            source=str(metadata.get(fields.source, "")),
            similarity=similarity,
            metadata={
                key: str(value)
                for key, value in metadata.items()
                if not key.startswith(INTERPRETS_PREFIX)
            },
        )


def _first_row(rows):
    # Chroma nests query results per query embedding; only one is ever sent.
    if not rows:
        return []
    return rows[0] or []


def build_adapters(client, settings: StoreSettings) -> dict[CorpusTag, SourceAdapter]:
    """Build the tag-to-adapter dispatch table over one shared store client.

    Args:
        client: Chroma client shared read-only by all adapters.
        settings: Collection names per corpus.

    Returns:
        One adapter per known corpus tag.
    """
    collections: dict[str, object] = {}
    adapters: dict[CorpusTag, SourceAdapter] = {}
    for tag, layout in CORPUS_LAYOUTS.items():
        name = getattr(settings, layout.collection_setting)
        if name not in collections:
            collections[name] = corpus_collection(client, name)
        adapters[tag] = ChromaCorpusAdapter(tag, collections[name], layout.fields, layout.base_filter)
    return adapters
