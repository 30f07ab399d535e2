"""Shared pytest fixtures for posh_knowledge unit tests.

Embeddings are tiny 3-dimensional vectors so cosine similarities are easy to
read off: the reference query vector is [1, 0, 0], and each record's first
component is its expected similarity to that query.
"""
from __future__ import annotations

import chromadb
import pytest

from posh_knowledge.adapters import build_adapters
from posh_knowledge.embeddings import as_query_vector
from posh_knowledge.schema import CaseLawEntry, LegalSection, PlaybookEntry
from posh_knowledge.search import SemanticSearchEngine
from posh_knowledge.settings import SearchSettings, StoreSettings
from posh_knowledge.vector_store import corpus_collection, index_records

INQUIRY_QUERY = "what is the inquiry timeline"
QUERY_VECTOR = [1.0, 0.0, 0.0]


class FakeEmbedder:
    """Deterministic embedder: looks texts up in a table, defaults to the reference vector."""

    model_name = "fake-embedding"
    dimension = 3

    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = vectors or {}
        self.calls: list[str] = []

    def embed(self, text: str):
        self.calls.append(text)
        return as_query_vector(self.vectors.get(text, QUERY_VECTOR), self.dimension)


@pytest.fixture()
def legal_sections() -> list[LegalSection]:
    return [
        LegalSection(
            section_id="act-11",
            document_type="act",
            section_number="11",
            section_title="Inquiry into complaint",
            section_text="The Internal Committee shall complete the inquiry within a period of ninety days.",
            citation="Act No. 14 of 2013",
            embedding=[1.0, 0.0, 0.0],
        ),
        LegalSection(
            section_id="act-13",
            document_type="act",
            section_number="13",
            section_title="Inquiry report",
            section_text="The Internal Committee shall provide a report of its findings within ten days.",
            citation="Act No. 14 of 2013",
            embedding=[0.8, 0.6, 0.0],
        ),
        LegalSection(
            section_id="act-9",
            document_type="act",
            section_number="9",
            section_title="Complaint of sexual harassment",
            section_text="Any aggrieved woman may make, in writing, a complaint within three months.",
            citation="Act No. 14 of 2013",
            embedding=[0.0, 1.0, 0.0],
        ),
        LegalSection(
            section_id="rules-7",
            document_type="rules",
            section_number="7",
            section_title="Manner of inquiry into complaint",
            section_text="The complainant shall submit six copies of the complaint with supporting documents.",
            citation="PoSH Rules, 2013",
            embedding=[0.6, 0.8, 0.0],
        ),
        LegalSection(
            section_id="rules-8",
            document_type="rules",
            section_number="8",
            section_title="Other reliefs to aggrieved woman",
            section_text="The Internal Committee may recommend leave of up to three months.",
            citation="PoSH Rules, 2013",
            embedding=[0.0, 0.0, 1.0],
        ),
    ]


@pytest.fixture()
def case_law_entries() -> list[CaseLawEntry]:
    return [
        CaseLawEntry(
            case_id="case-vishaka",
            case_name="Vishaka v. State of Rajasthan",
            citation="AIR 1997 SC 3011",
            court="Supreme Court of India",
            decided_date="1997-08-13",
            facts_summary="A social worker was attacked while preventing child marriage.",
            issues=["Whether workplace sexual harassment violates fundamental rights", "Employer duty absent legislation"],
            holdings=["Sexual harassment violates Articles 14, 15, 19(1)(g), and 21"],
            ratio_decidendi="Employers have a duty to prevent sexual harassment at workplace.",
            sections_interpreted=["Article 14", "Article 21"],
            embedding=[0.0, 0.6, 0.8],
        ),
        CaseLawEntry(
            case_id="case-medha",
            case_name="Medha Kotwal Lele v. Union of India",
            citation="(2013) 1 SCC 297",
            court="Supreme Court of India",
            decided_date="2012-10-19",
            ratio_decidendi="Vishaka Guidelines remain binding and must be strictly followed.",
            sections_interpreted=["Section 4"],
            embedding=[0.6, 0.0, 0.8],
        ),
        CaseLawEntry(
            case_id="case-aureliano",
            case_name="Aureliano Fernandes v. State of Goa",
            citation="2023 SCC OnLine SC 621",
            court="Supreme Court of India",
            decided_date="2023-05-12",
            ratio_decidendi="Committees must be properly constituted and inquiries completed within statutory time.",
            sections_interpreted=["Section 4", "Section 11"],
            embedding=[0.8, 0.0, 0.6],
        ),
    ]


@pytest.fixture()
def playbook_entries() -> list[PlaybookEntry]:
    return [
        PlaybookEntry(
            playbook_id="pb-verbal-complaint",
            category="intake",
            title="Handling Verbal Complaint",
            scenario="Complainant prefers to share details verbally rather than in writing",
            recommended_approach="Offer to transcribe the complaint and have the complainant sign it.",
            do_list=["Assure confidentiality before taking verbal account"],
            dont_list=["Discourage verbal complaints outright"],
            legal_references=["Section 9"],
            difficulty_level="basic",
            embedding=[0.0, 1.0, 0.0],
        ),
        PlaybookEntry(
            playbook_id="pb-inquiry-deadline",
            category="inquiry",
            title="Meeting the 90-day Inquiry Deadline",
            scenario="Inquiry is at risk of overrunning the statutory timeline",
            recommended_approach="Publish a hearing calendar on day one and record reasons for every adjournment.",
            legal_references=["Section 11"],
            difficulty_level="intermediate",
            embedding=[0.96, 0.28, 0.0],
        ),
        PlaybookEntry(
            playbook_id="pb-senior-executive",
            category="intake",
            title="Complaint Against Senior Executive",
            scenario="Complainant names a CXO or board member as the respondent",
            recommended_approach="Follow protocol while ensuring committee independence.",
            legal_references=["Section 4", "Section 11"],
            difficulty_level="advanced",
            embedding=[0.28, 0.96, 0.0],
        ),
    ]


@pytest.fixture()
def chroma_client(tmp_path):
    return chromadb.PersistentClient(path=str(tmp_path / "chroma"))


@pytest.fixture()
def store_settings() -> StoreSettings:
    return StoreSettings()


@pytest.fixture()
def populated_client(chroma_client, store_settings, legal_sections, case_law_entries, playbook_entries):
    index_records(corpus_collection(chroma_client, store_settings.legal_collection), legal_sections)
    index_records(corpus_collection(chroma_client, store_settings.case_law_collection), case_law_entries)
    index_records(corpus_collection(chroma_client, store_settings.playbook_collection), playbook_entries)
    return chroma_client


@pytest.fixture()
def adapters(populated_client, store_settings):
    return build_adapters(populated_client, store_settings)


@pytest.fixture()
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def engine(fake_embedder, adapters) -> SemanticSearchEngine:
    return SemanticSearchEngine(fake_embedder, adapters, SearchSettings())
