from __future__ import annotations

from dataclasses import asdict
import json
from pathlib import Path

from .schema import CaseLawEntry, CorpusRecord, LegalSection, PlaybookEntry

RECORD_TYPES = {
    "legal_sections": LegalSection,
    "case_law": CaseLawEntry,
    "playbooks": PlaybookEntry,
}


def _load_jsonl(path: str | Path) -> list[dict]:
    records: list[dict] = []
    with Path(path).open("r", encoding="utf-8") as file_handle:
        for line in file_handle:
            if line.strip():
                records.append(json.loads(line))
    return records


def load_records(path: str | Path, kind: str) -> list[CorpusRecord]:
    """Load corpus fixture records of one kind (`legal_sections`, `case_law`, `playbooks`)."""
    try:
        record_type = RECORD_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind {kind!r}; expected one of {sorted(RECORD_TYPES)}") from None
    return [record_type(**record) for record in _load_jsonl(path)]


def save_records(records: list[CorpusRecord], path: str | Path) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    with destination.open("w", encoding="utf-8") as file_handle:
        for record in records:
            file_handle.write(json.dumps(asdict(record)) + "\n")
