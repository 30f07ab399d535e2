from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import chromadb

from .embeddings import ensure_dimension
from .schema import CaseLawEntry, CorpusRecord, LegalSection, PlaybookEntry
from .settings import StoreSettings

logger = logging.getLogger(__name__)

COSINE_SPACE = {"hnsw:space": "cosine"}
INTERPRETS_PREFIX = "interprets:"


def interprets_key(section: str) -> str:
    """Metadata flag key marking a case that interprets `section`."""
    return f"{INTERPRETS_PREFIX}{section}"


def connect_store(settings: StoreSettings):
    """Open the shared Chroma client: HTTP when a host is configured, else local persistent.

    Args:
        settings: Store connection settings.

    Returns:
        A Chroma client instance shared by every corpus adapter.
    """
    if settings.host:
        logger.info("Connecting to Chroma at %s:%s", settings.host, settings.port)
        return chromadb.HttpClient(host=settings.host, port=settings.port)

    Path(settings.persist_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Opening persistent Chroma store at %s", settings.persist_dir)
    return chromadb.PersistentClient(path=settings.persist_dir)


def corpus_collection(client, name: str):
    """Return (creating if missing) a cosine-space collection for one corpus."""
    return client.get_or_create_collection(name=name, metadata=COSINE_SPACE)


def _joined(values: list[str], separator: str = "; ") -> str:
    return separator.join(value for value in values if value)


def record_entry(record: CorpusRecord) -> tuple[str, list[float], str, dict]:
    """Flatten a corpus record into Chroma's `(id, embedding, document, metadata)` shape.

    Chroma metadata only holds scalars, so list fields are joined into strings
    and each interpreted section becomes its own boolean flag.
    """
    if isinstance(record, LegalSection):
        metadata = {
            "document_type": record.document_type,
            "section_number": record.section_number,
            "section_title": record.section_title,
            "section_text": record.section_text,
            "citation": record.citation,
        }
        return record.section_id, record.embedding, record.section_text, metadata

    if isinstance(record, CaseLawEntry):
        metadata = {
            "case_name": record.case_name,
            "citation": record.citation,
            "court": record.court,
            "decided_date": record.decided_date,
            "facts_summary": record.facts_summary,
            "issues": _joined(record.issues, "\n"),
            "holdings": _joined(record.holdings, "\n"),
            "ratio_decidendi": record.ratio_decidendi,
            "sections_interpreted": _joined(record.sections_interpreted),
        }
        for section in record.sections_interpreted:
            metadata[interprets_key(section)] = True
        document = " ".join(
            part for part in (record.facts_summary, " ".join(record.holdings), record.ratio_decidendi) if part
        )
        return record.case_id, record.embedding, document, metadata

    if isinstance(record, PlaybookEntry):
        metadata = {
            "category": record.category,
            "title": record.title,
            "scenario": record.scenario,
            "recommended_approach": record.recommended_approach,
            "do_list": _joined(record.do_list, "\n"),
            "dont_list": _joined(record.dont_list, "\n"),
            "legal_references": _joined(record.legal_references),
            "difficulty_level": record.difficulty_level,
        }
        document = f"{record.title}. {record.scenario}. {record.recommended_approach}"
        return record.playbook_id, record.embedding, document, metadata

    raise TypeError(f"Unsupported corpus record type: {type(record).__name__}")


def index_records(collection, records: Sequence[CorpusRecord]) -> int:
    """Upsert corpus records into a collection.

    Args:
        collection: Target Chroma collection.
        records: Records carrying pre-computed embeddings.

    Returns:
        Number of records written.

    Raises:
        DimensionMismatch: If the records do not share one embedding dimension.
    """
    if not records:
        return 0

    entries = [record_entry(record) for record in records]
    dimension = len(entries[0][1])
    for _, embedding, _, _ in entries:
        ensure_dimension(embedding, dimension)

    collection.upsert(
        ids=[entry_id for entry_id, _, _, _ in entries],
        embeddings=[list(embedding) for _, embedding, _, _ in entries],
        documents=[document for _, _, document, _ in entries],
        metadatas=[metadata for _, _, _, metadata in entries],
    )
    logger.info("Indexed %d records into %s", len(entries), collection.name)
    return len(entries)
