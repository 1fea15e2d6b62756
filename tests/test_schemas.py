"""
Tests for CATTO schemas: tolerant parsing of model output and invariants of
verified values.
"""

import pytest
from pydantic import ValidationError

from catto.core.enums import VerificationNote
from catto.core.schemas import (
    CaseInput,
    EvaluationResponse,
    PaperEvaluation,
    PaperRecord,
    PreAnalysis,
    VerifiedCitation,
)
from catto.parsing import Parsed, parse_model_response


class TestCaseInput:
    def test_requires_event_or_condition(self):
        with pytest.raises(ValidationError):
            CaseInput(anatomy="Trachea")

    def test_condition_alone_is_enough(self):
        case = CaseInput(condition_event="Airway fire", timing=None)
        assert case.timing == ""

    def test_prompt_dict_excludes_contact(self, sample_case):
        prompt = sample_case.to_prompt_dict()
        assert "submitter_email" not in prompt
        assert prompt["anatomy"] == "Trachea"

    def test_is_frozen(self, sample_case):
        with pytest.raises(ValidationError):
            sample_case.anatomy = "Larynx"


class TestPreAnalysis:
    def test_blocks_nested_under_pubmed_query(self):
        pre = PreAnalysis.model_validate(
            {"pubmed_query": {"blocks": [{"concept": "Event", "mesh": "Fires"}, "junk"]}}
        )
        assert len(pre.query_blocks) == 1
        assert pre.query_blocks[0].mesh_terms == ["Fires"]

    def test_missing_sections_default(self):
        pre = PreAnalysis.model_validate({"search_core": "not an object"})
        assert pre.search_core.mandatory == "N/A"
        assert pre.reconstructed_catto.timing == "N/A"
        assert pre.query_blocks == []


class TestPaperEvaluation:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Level 3", 3), (7, 4), (0, 1), ("high", 1), (None, 1), (2.9, 2),
            (float("inf"), 1), (float("-inf"), 1), (float("nan"), 1),
        ],
    )
    def test_match_level_coercion(self, raw, expected):
        assert PaperEvaluation(paper_id=1, match_level=raw).match_level == expected

    def test_quotes_coercion(self):
        assert PaperEvaluation(evidence_quotes=None).evidence_quotes == []
        assert PaperEvaluation(evidence_quotes="one quote").evidence_quotes == ["one quote"]
        assert PaperEvaluation(evidence_quotes=["a", None]).evidence_quotes == ["a"]

    def test_narrative_defaults(self):
        evaluation = PaperEvaluation(paper_id="P1", matched_elements="  ")
        assert evaluation.matched_elements == "N/A"
        assert evaluation.difference == "N/A"


class TestEvaluationResponse:
    def test_tolerates_loose_shapes(self):
        response = EvaluationResponse.model_validate(
            {
                "max_level_found": "Level 2",
                "selected_paper_ids": 3,
                "paper_evaluations": [{"paper_id": 1}, "bad entry"],
                "reasoning": "See [P1].",
            }
        )
        assert response.max_level_found == 2
        assert len(response.paper_evaluations) == 1
        assert response.reasoning_with_ids == "See [P1]."

    def test_non_finite_levels_do_not_fail_the_response(self):
        text = (
            '{"paper_evaluations": ['
            '{"paper_id": 1, "match_level": 1e999, "evidence_quotes": ["q"]},'
            '{"paper_id": 2, "match_level": NaN, "evidence_quotes": []},'
            '{"paper_id": 3, "match_level": 3}'
            '], "max_level_found": NaN, "reasoning_with_ids": "See [P3]."}'
        )

        result = parse_model_response(text, EvaluationResponse)

        assert isinstance(result, Parsed)
        assert [e.match_level for e in result.value.paper_evaluations] == [1, 1, 3]
        assert result.value.max_level_found is None


class TestPaperRecord:
    def test_default_url(self):
        record = PaperRecord(pmid="123", title="T")
        assert record.url == "https://pubmed.ncbi.nlm.nih.gov/123/"
        assert record.year == "unknown"

    def test_requires_pmid_and_title(self):
        with pytest.raises(ValidationError):
            PaperRecord(pmid="", title="T")
        with pytest.raises(ValidationError):
            PaperRecord(pmid="1", title="")


class TestVerifiedCitation:
    def test_verified_level_cannot_exceed_asserted(self):
        with pytest.raises(ValidationError):
            VerifiedCitation(
                paper_index=1,
                pmid="1",
                title="T",
                url="u",
                asserted_level=2,
                verified_level=3,
            )

    def test_downgraded_citation(self):
        citation = VerifiedCitation(
            paper_index=1,
            pmid="1",
            title="T",
            url="u",
            asserted_level=4,
            verified_level=3,
            verification_note=VerificationNote.PARTIAL,
        )
        assert citation.verification_note.value == "Partial evidence match"
