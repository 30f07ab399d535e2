"""Tests for adapters.py: per-corpus search against a real tmp_path Chroma store."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from posh_knowledge.adapters import (
    CASE_LAW_FIELDS,
    PLAYBOOK_FIELDS,
    ChromaCorpusAdapter,
    build_adapters,
    combine_filters,
    similarity_from_distance,
)
from posh_knowledge.errors import DimensionMismatch, InvalidMaxResults
from posh_knowledge.schema import CorpusTag, RankedResult

QUERY = [1.0, 0.0, 0.0]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestSimilarityFromDistance:
    def test_identical_vectors_score_1(self):
        assert similarity_from_distance(0.0) == 1.0

    def test_orthogonal_vectors_score_0(self):
        assert similarity_from_distance(1.0) == 0.0

    def test_anti_correlated_vectors_clamp_to_0(self):
        assert similarity_from_distance(2.0) == 0.0

    def test_small_negative_distance_clamps_to_1(self):
        assert similarity_from_distance(-1e-7) == 1.0


class TestCombineFilters:
    def test_no_clauses(self):
        assert combine_filters(None, {}) is None

    def test_single_clause_passes_through(self):
        assert combine_filters({"document_type": "act"}, None) == {"document_type": "act"}

    def test_multiple_clauses_joined_with_and(self):
        assert combine_filters({"a": 1}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}


# ---------------------------------------------------------------------------
# build_adapters dispatch table
# ---------------------------------------------------------------------------

class TestBuildAdapters:
    def test_one_adapter_per_corpus(self, adapters):
        assert set(adapters) == set(CorpusTag)
        assert all(adapter.tag is tag for tag, adapter in adapters.items())


# ---------------------------------------------------------------------------
# search against the populated store
# ---------------------------------------------------------------------------

class TestSearch:
    def test_act_results_only_contain_act_sections(self, adapters):
        results = adapters[CorpusTag.ACT].search(QUERY, limit=10)
        assert [r.identifier for r in results] == ["11", "13", "9"]

    def test_rules_results_only_contain_rule_sections(self, adapters):
        results = adapters[CorpusTag.RULES].search(QUERY, limit=10)
        assert {r.identifier for r in results} == {"7", "8"}

    def test_legal_section_field_mapping(self, adapters):
        top = adapters[CorpusTag.ACT].search(QUERY, limit=1)[0]
        assert top.identifier == "11"
        assert top.title == "Inquiry into complaint"
        assert top.content.startswith("The Internal Committee shall complete the inquiry")
        assert top.source == "Act No. 14 of 2013"
        assert top.similarity == pytest.approx(1.0, abs=1e-5)

    def test_case_law_field_mapping(self, adapters):
        top = adapters[CorpusTag.CASE_LAW].search(QUERY, limit=1)[0]
        assert top.identifier == "2023 SCC OnLine SC 621"
        assert top.title == "Aureliano Fernandes v. State of Goa"
        assert top.content.startswith("Committees must be properly constituted")
        assert top.source == "Supreme Court of India"
        assert top.similarity == pytest.approx(0.8, abs=1e-4)

    def test_playbook_field_mapping_uses_record_id(self, adapters):
        top = adapters[CorpusTag.PLAYBOOKS].search(QUERY, limit=1)[0]
        assert top.identifier == "pb-inquiry-deadline"
        assert top.title == "Meeting the 90-day Inquiry Deadline"
        assert top.source == "inquiry"
        assert top.similarity == pytest.approx(0.96, abs=1e-4)

    def test_limit_caps_results(self, adapters):
        assert len(adapters[CorpusTag.ACT].search(QUERY, limit=2)) == 2

    @pytest.mark.parametrize("tag", list(CorpusTag))
    def test_scores_non_increasing_and_bounded(self, adapters, tag):
        results = adapters[tag].search(QUERY, limit=5)
        scores = [r.similarity for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)

    def test_extra_where_clause_is_applied(self, adapters):
        results = adapters[CorpusTag.PLAYBOOKS].search(QUERY, limit=5, where={"category": "intake"})
        assert {r.identifier for r in results} == {"pb-verbal-complaint", "pb-senior-executive"}

    def test_metadata_excludes_section_flags(self, adapters):
        results = adapters[CorpusTag.CASE_LAW].search(QUERY, limit=3)
        for result in results:
            assert not any(key.startswith("interprets:") for key in result.metadata)
            assert "court" in result.metadata

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, adapters, limit):
        with pytest.raises(InvalidMaxResults):
            adapters[CorpusTag.ACT].search(QUERY, limit=limit)

    def test_empty_collection_returns_no_results(self, chroma_client, store_settings):
        adapters = build_adapters(chroma_client, store_settings)
        assert adapters[CorpusTag.PLAYBOOKS].search(QUERY, limit=3) == []

    def test_stored_dimension_read_from_collection(self, adapters):
        assert adapters[CorpusTag.CASE_LAW].stored_dimension() == 3

    def test_empty_collection_has_no_dimension(self, chroma_client, store_settings):
        adapters = build_adapters(chroma_client, store_settings)
        assert adapters[CorpusTag.PLAYBOOKS].stored_dimension() is None

    def test_short_query_vector_rejected(self, adapters):
        with pytest.raises(DimensionMismatch):
            adapters[CorpusTag.ACT].search([1.0, 0.0], limit=1)


# ---------------------------------------------------------------------------
# lookup
# ---------------------------------------------------------------------------

class TestLookup:
    def test_exact_section_number(self, adapters):
        results = adapters[CorpusTag.ACT].lookup("13")
        assert [r.identifier for r in results] == ["13"]
        assert results[0].similarity == 1.0

    def test_lookup_respects_document_type(self, adapters):
        assert adapters[CorpusTag.RULES].lookup("11") == []

    def test_lookup_by_record_id(self, adapters):
        results = adapters[CorpusTag.PLAYBOOKS].lookup("pb-senior-executive")
        assert [r.title for r in results] == ["Complaint Against Senior Executive"]


# ---------------------------------------------------------------------------
# Mocked collection: mapping of raw store payloads
# ---------------------------------------------------------------------------

class TestMockedCollection:
    def test_maps_nested_query_response(self):
        collection = MagicMock()
        collection.query.return_value = {
            "ids": [["c1", "c2"]],
            "documents": [["doc one", "doc two"]],
            "metadatas": [[
                {"citation": "C-1", "case_name": "One", "ratio_decidendi": "R1", "court": "HC"},
                None,
            ]],
            "distances": [[0.1, 0.4]],
        }
        adapter = ChromaCorpusAdapter(CorpusTag.CASE_LAW, collection, CASE_LAW_FIELDS)

        results = adapter.search(QUERY, limit=2)
        top = results[0]
        assert isinstance(top, RankedResult)
        assert (top.identifier, top.title, top.content, top.source) == ("C-1", "One", "R1", "HC")
        assert top.similarity == pytest.approx(0.9)
        assert top.metadata["court"] == "HC"
        # Missing metadata falls back to the record id and stored document.
        assert results[1].identifier == "c2"
        assert results[1].content == "doc two"
        assert results[1].similarity == pytest.approx(0.6)

    def test_passes_limit_and_combined_filter(self):
        collection = MagicMock()
        collection.query.return_value = {"ids": [[]], "documents": [[]], "metadatas": [[]], "distances": [[]]}
        adapter = ChromaCorpusAdapter(
            CorpusTag.PLAYBOOKS, collection, PLAYBOOK_FIELDS, base_filter={"difficulty_level": "basic"}
        )

        adapter.search(QUERY, limit=4, where={"category": "intake"})
        kwargs = collection.query.call_args.kwargs
        assert kwargs["n_results"] == 4
        assert kwargs["query_embeddings"] == [QUERY]
        assert kwargs["where"] == {"$and": [{"difficulty_level": "basic"}, {"category": "intake"}]}

    def test_no_where_argument_without_filters(self):
        collection = MagicMock()
        collection.query.return_value = {"ids": [[]], "documents": [[]], "metadatas": [[]], "distances": [[]]}
        adapter = ChromaCorpusAdapter(CorpusTag.PLAYBOOKS, collection, PLAYBOOK_FIELDS)

        adapter.search(QUERY, limit=1)
        assert "where" not in collection.query.call_args.kwargs

    def test_dimension_checked_before_query(self):
        collection = MagicMock()
        collection.get.return_value = {"ids": ["p1"], "embeddings": [[0.1, 0.2]]}
        adapter = ChromaCorpusAdapter(CorpusTag.PLAYBOOKS, collection, PLAYBOOK_FIELDS)

        with pytest.raises(DimensionMismatch):
            adapter.search(QUERY, limit=1)
        with pytest.raises(DimensionMismatch):
            adapter.search(QUERY, limit=1)
        collection.query.assert_not_called()
        collection.get.assert_called_once()

    def test_store_errors_propagate(self):
        collection = MagicMock()
        collection.query.side_effect = ConnectionError("store unreachable")
        adapter = ChromaCorpusAdapter(CorpusTag.PLAYBOOKS, collection, PLAYBOOK_FIELDS)

        with pytest.raises(ConnectionError):
            adapter.search(QUERY, limit=1)
