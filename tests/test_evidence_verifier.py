"""
Tests for evidence verification and level recalculation.
"""

import pytest

from catto.core.enums import VerificationNote
from catto.core.schemas import PaperEvaluation
from catto.verification import (
    clean_quote,
    confirmed_quotes,
    recalculate_level,
    resolve_reference,
    verify_evaluations,
)

P1_QUOTE = "airway fire that occurred during tracheostomy"


@pytest.mark.parametrize(
    "paper_id, expected",
    [(1, 1), ("3", 3), ("P5", 5), ("[P2]", 2), ("Paper 4", 4), (0, None), ("P6", None),
     ("none", None), (None, None), (True, None)],
)
def test_resolve_reference(paper_id, expected):
    assert resolve_reference(paper_id, 5) == expected


def test_clean_quote_removes_one_mark_per_side():
    assert clean_quote('  "Airway Fire"  ') == "airway fire"
    assert clean_quote("''nested''") == "'nested'"


class TestConfirmedQuotes:
    def test_case_insensitive_substring(self, sample_papers):
        abstract = sample_papers[0].abstract
        quotes = ['"Airway Fire that occurred"', "electrocautery was used"]
        assert confirmed_quotes(quotes, abstract) == quotes

    def test_short_quotes_never_confirm(self, sample_papers):
        # "fire" appears in the abstract but is not longer than five characters
        assert confirmed_quotes(["fire", "trach"], sample_papers[0].abstract) == []

    def test_paraphrase_is_rejected(self, sample_papers):
        assert confirmed_quotes(["an airway fire happened"], sample_papers[0].abstract) == []

    def test_empty_abstract(self):
        assert confirmed_quotes(["anything at all"], "") == []


@pytest.mark.parametrize(
    "asserted, offered, confirmed, expected",
    [
        (4, 0, 0, (1, VerificationNote.NO_EVIDENCE)),
        (2, 0, 0, (1, VerificationNote.NO_EVIDENCE)),
        (4, 2, 0, (0, VerificationNote.HALLUCINATED)),
        (4, 2, 1, (3, VerificationNote.PARTIAL)),
        (1, 2, 1, (1, VerificationNote.PARTIAL)),
        (3, 2, 2, (3, None)),
    ],
)
def test_recalculate_level(asserted, offered, confirmed, expected):
    assert recalculate_level(asserted, offered, confirmed) == expected


class TestVerifyEvaluations:
    def test_fully_confirmed_claim_is_kept(self, sample_papers):
        evaluation = PaperEvaluation(
            paper_id="P1",
            match_level=4,
            evidence_quotes=[P1_QUOTE],
            matched_elements="Condition, Anatomy",
        )

        outcome = verify_evaluations([evaluation], sample_papers)

        assert outcome.verified_max_level == 4
        [citation] = outcome.citations
        assert citation.pmid == "30000001"
        assert citation.doi == "10.1000/or-fire"
        assert citation.verified_level == 4
        assert citation.verification_note is None
        assert citation.evidence_quotes == [P1_QUOTE]
        assert outcome.system_notes == []

    def test_hallucinated_claim_is_invalidated(self, sample_papers):
        evaluation = PaperEvaluation(
            paper_id=2, match_level=4, evidence_quotes=["a fire broke out in the airway"]
        )

        outcome = verify_evaluations([evaluation], sample_papers)

        assert outcome.citations == []
        assert outcome.verified_max_level == 0
        assert outcome.system_notes == [
            "Paper [P2] invalidated: Hallucinated evidence invalidated."
        ]

    def test_retain_closest_matches_keeps_level_zero(self, sample_papers):
        evaluation = PaperEvaluation(
            paper_id=2, match_level=3, evidence_quotes=["a fire broke out in the airway"]
        )

        outcome = verify_evaluations([evaluation], sample_papers, retain_closest_matches=True)

        [citation] = outcome.citations
        assert citation.verified_level == 0
        assert citation.asserted_level == 3
        assert citation.evidence_quotes == []
        assert outcome.positive_citations == []
        assert len(outcome.system_notes) == 1

    def test_missing_quotes_cap_level_at_one(self, sample_papers):
        evaluation = PaperEvaluation(paper_id=3, match_level=4, evidence_quotes=[])

        outcome = verify_evaluations([evaluation], sample_papers)

        assert outcome.verified_max_level == 1
        assert outcome.citations[0].verification_note == VerificationNote.NO_EVIDENCE

    def test_partial_match_downgrades_by_one(self, sample_papers):
        evaluation = PaperEvaluation(
            paper_id=1,
            match_level=3,
            evidence_quotes=[P1_QUOTE, "the patient was fine afterwards"],
        )

        outcome = verify_evaluations([evaluation], sample_papers)

        assert outcome.verified_max_level == 2
        assert outcome.citations[0].evidence_quotes == [P1_QUOTE]

    def test_unresolvable_references_are_discarded(self, sample_papers):
        evaluations = [
            PaperEvaluation(paper_id=9, match_level=4, evidence_quotes=[P1_QUOTE]),
            PaperEvaluation(paper_id="unknown", match_level=4, evidence_quotes=[P1_QUOTE]),
        ]

        outcome = verify_evaluations(evaluations, sample_papers)

        assert outcome.citations == []
        assert outcome.verified_max_level == 0
        assert outcome.discarded_references == ["9", "unknown"]

    def test_paper_without_abstract_cannot_confirm(self, sample_papers):
        evaluation = PaperEvaluation(paper_id=4, match_level=4, evidence_quotes=[P1_QUOTE])

        outcome = verify_evaluations([evaluation], sample_papers)

        assert outcome.verified_max_level == 0
        assert outcome.system_notes == [
            "Paper [P4] invalidated: Hallucinated evidence invalidated."
        ]

    def test_citations_sorted_by_verified_level_stably(self, sample_papers):
        evaluations = [
            PaperEvaluation(paper_id=3, match_level=2, evidence_quotes=[]),
            PaperEvaluation(paper_id=1, match_level=4, evidence_quotes=[P1_QUOTE]),
            PaperEvaluation(
                paper_id=5,
                match_level=2,
                evidence_quotes=["ignition of the endotracheal tube"],
            ),
            PaperEvaluation(paper_id=2, match_level=1, evidence_quotes=[]),
        ]

        outcome = verify_evaluations(evaluations, sample_papers)

        assert [c.paper_index for c in outcome.citations] == [1, 5, 3, 2]
        assert [c.verified_level for c in outcome.citations] == [4, 2, 1, 1]
        assert outcome.verified_max_level == 4

    def test_deterministic(self, sample_papers):
        evaluations = [
            PaperEvaluation(paper_id=1, match_level=4, evidence_quotes=[P1_QUOTE]),
            PaperEvaluation(paper_id=2, match_level=3, evidence_quotes=["made up text"]),
        ]
        assert verify_evaluations(evaluations, sample_papers) == verify_evaluations(
            evaluations, sample_papers
        )
