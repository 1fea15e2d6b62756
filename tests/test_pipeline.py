"""
End-to-end tests of the CATTO workflow with scripted model output and
in-memory PubMed/MeSH doubles.
"""

from __future__ import annotations

import asyncio

import pytest

from catto.config import LLMSettings, RetrievalSettings, Settings
from catto.core.enums import Judgement, QueryStrength, RunStatus
from catto.core.exceptions import LLMProviderError, SourceUnavailableError
from catto.core.schemas import CATTOState
from catto.observability.metrics import metrics
from catto.orchestration import CATTORunner, should_evaluate
from catto.orchestration.nodes import NO_LITERATURE_REASONING
from conftest import FakeLLM, FakeMesh, FakePubMed

BLOCK_1 = '("Fires"[mh] OR "airway fire"[tiab])'
BLOCK_2 = '("Tracheostomy"[mh])'
NARROW = f"{BLOCK_1} AND {BLOCK_2}"
P1_QUOTE = "airway fire that occurred during tracheostomy"


@pytest.fixture
def evaluation_payload() -> dict:
    return {
        "max_level_found": 4,
        "judgement": "Low",
        "selected_paper_ids": [1, 2],
        "paper_evaluations": [
            {
                "paper_id": 2,
                "match_level": 3,
                "matched_elements": "Anatomy",
                "unmatched_elements": "Trigger",
                "difference": "Cuff rupture, no fire",
                "evidence_quotes": ["a fire ignited the cuff"],
            },
            {
                "paper_id": "P1",
                "match_level": 4,
                "matched_elements": "Condition, Anatomy, Trigger",
                "unmatched_elements": "Host factors",
                "difference": "Oxygen was not reduced",
                "evidence_quotes": [P1_QUOTE],
            },
        ],
        "reasoning": "The closest report is [P1]; [P2] describes a different event.",
    }


@pytest.fixture
def narrative_payload() -> dict:
    return {
        "knowledge_gap": "No report of ignition after FiO2 reduction.",
        "novelty_sharpeners": ["Report the measured FiO2 at ignition."],
    }


def make_pubmed(papers, **kwargs) -> FakePubMed:
    return FakePubMed(
        counts={NARROW: 20, BLOCK_1: 150},
        search_results=[p.pmid for p in papers],
        papers=papers,
        **kwargs,
    )


def run(runner: CATTORunner, case):
    return asyncio.run(runner.run(case, run_id="run-1"))


class TestHappyPath:
    def test_verified_report(
        self, sample_case, sample_papers, pre_analysis_payload, evaluation_payload,
        narrative_payload,
    ):
        llm = FakeLLM([pre_analysis_payload, evaluation_payload, narrative_payload])
        mesh = FakeMesh({"Fires", "Tracheostomy"})
        pubmed = make_pubmed(sample_papers)

        outcome = run(CATTORunner(llm, pubmed=pubmed, mesh=mesh), sample_case)

        assert outcome.succeeded
        assert outcome.status == RunStatus.COMPLETED
        assert outcome.run_id == "run-1"
        result = outcome.result

        assert result.compiled_query.narrow == NARROW
        assert result.compiled_query.broad == BLOCK_1
        assert result.compiled_query.strength == QueryStrength.NARROW
        assert result.query_display == NARROW
        assert pubmed.searches == [(NARROW, 100)]

        # P2's quote is fabricated, so only P1 survives
        assert result.verified_max_level == 4
        assert result.novelty_score == 15
        assert result.judgement == Judgement.LOW
        assert [c.pmid for c in result.citations] == ["30000001"]
        assert result.system_notes == [
            "Paper [P2] invalidated: Hallucinated evidence invalidated."
        ]
        assert result.reasoning == (
            "The closest report is Operating room fires during tracheostomy (PMID: 30000001); "
            "Endotracheal tube cuff rupture (PMID: 30000002) describes a different event."
            "\n\n[System Verification Note: Paper [P2] invalidated: "
            "Hallucinated evidence invalidated.]"
        )
        assert result.narrative.knowledge_gap.startswith("No report of ignition")
        assert result.paper_count == 5

        assert len(llm.calls) == 3
        assert all(call["json_mode"] for call in llm.calls)
        # Contact address never reaches the model
        assert "author@example.org" not in llm.calls[0]["messages"][1].content
        # The narrative only sees verified citations
        narrative_prompt = llm.calls[2]["messages"][1].content
        assert "30000001" in narrative_prompt
        assert "30000002" not in narrative_prompt

        counters = metrics.get_all()
        assert counters["catto.runs"] == 1
        assert counters["catto.verification.invalidated"] == 1

    def test_model_level_never_survives_unverified(
        self, sample_case, sample_papers, pre_analysis_payload
    ):
        evaluation = {
            "max_level_found": 4,
            "paper_evaluations": [
                {"paper_id": 1, "match_level": 4, "evidence_quotes": ["invented sentence here"]},
                {"paper_id": 3, "match_level": 4, "evidence_quotes": []},
            ],
            "reasoning": "Both [P1] and [P3] match exactly.",
        }
        llm = FakeLLM([pre_analysis_payload, evaluation, {"knowledge_gap": "gap"}])

        outcome = run(
            CATTORunner(llm, pubmed=make_pubmed(sample_papers), mesh=FakeMesh({"Fires"})),
            sample_case,
        )

        assert outcome.result.verified_max_level == 1
        assert outcome.result.novelty_score == 90
        assert outcome.result.judgement == Judgement.HIGH
        assert [c.paper_index for c in outcome.result.citations] == [3]

    def test_narrative_failure_is_not_fatal(
        self, sample_case, sample_papers, pre_analysis_payload, evaluation_payload
    ):
        llm = FakeLLM(
            [pre_analysis_payload, evaluation_payload, LLMProviderError("boom", provider="fake")]
        )

        outcome = run(
            CATTORunner(llm, pubmed=make_pubmed(sample_papers), mesh=FakeMesh()), sample_case
        )

        assert outcome.status == RunStatus.COMPLETED
        assert outcome.result.narrative is None
        assert metrics.get_all()["catto.narrative.failures"] == 1

    def test_narrative_can_be_disabled(
        self, monkeypatch, sample_case, sample_papers, pre_analysis_payload, evaluation_payload
    ):
        monkeypatch.setenv("CATTO_ENABLE_NARRATIVE", "false")
        llm = FakeLLM([pre_analysis_payload, evaluation_payload])

        outcome = run(
            CATTORunner(llm, pubmed=make_pubmed(sample_papers), mesh=FakeMesh()), sample_case
        )

        assert outcome.succeeded
        assert outcome.result.narrative is None
        assert len(llm.calls) == 2

    def test_runner_settings_reach_every_stage(
        self, sample_case, sample_papers, pre_analysis_payload, evaluation_payload,
        narrative_payload,
    ):
        settings = Settings(
            llm=LLMSettings(
                reconstruction_temperature=0.1,
                evaluation_temperature=0.7,
                narrative_temperature=0.9,
            ),
            retrieval=RetrievalSettings(min_narrow_count=50, search_limit=30),
        )
        llm = FakeLLM([pre_analysis_payload, evaluation_payload, narrative_payload])
        pubmed = make_pubmed(sample_papers)

        outcome = run(
            CATTORunner(
                llm, pubmed=pubmed, mesh=FakeMesh({"Fires", "Tracheostomy"}), settings=settings
            ),
            sample_case,
        )

        # 20 narrow hits is sparse under a threshold of 50
        assert outcome.result.compiled_query.strength == QueryStrength.BROAD
        assert pubmed.searches == [(BLOCK_1, 30)]
        assert [call["temperature"] for call in llm.calls] == [0.1, 0.7, 0.9]


class TestNoLiterature:
    def test_zero_candidates_skip_evaluation(self, sample_case, pre_analysis_payload):
        llm = FakeLLM([pre_analysis_payload])
        pubmed = FakePubMed()

        outcome = run(CATTORunner(llm, pubmed=pubmed, mesh=FakeMesh()), sample_case)

        assert len(llm.calls) == 1
        assert outcome.status == RunStatus.NO_LITERATURE
        result = outcome.result
        assert result.verified_max_level == 0
        assert result.novelty_score == 90
        assert result.judgement == Judgement.HIGH
        assert result.reasoning == NO_LITERATURE_REASONING
        assert result.citations == []
        assert result.system_notes == []

    def test_should_evaluate_routing(self, sample_case, sample_papers):
        empty = CATTOState(run_id="r", case=sample_case)
        full = CATTOState(run_id="r", case=sample_case, papers=sample_papers)
        assert should_evaluate(empty) == "finalize"
        assert should_evaluate(full) == "evaluate"


class TestFailures:
    def test_unparseable_reconstruction(self, sample_case):
        llm = FakeLLM(["Sorry, I cannot help with that."])

        outcome = run(CATTORunner(llm, pubmed=FakePubMed(), mesh=FakeMesh()), sample_case)

        assert outcome.status == RunStatus.FAILED
        assert outcome.result is None
        assert outcome.error_code == "parse"
        assert outcome.retryable is True
        assert outcome.error_message.startswith("An error occurred: ")
        assert metrics.get_all()["catto.failures"] == 1

    def test_no_usable_blocks_is_a_parse_failure(self, sample_case):
        llm = FakeLLM([{"search_core": {"mandatory": "x"}, "query_blocks": []}])

        outcome = run(CATTORunner(llm, pubmed=FakePubMed(), mesh=FakeMesh()), sample_case)

        assert outcome.error_code == "parse"

    def test_unparseable_evaluation(self, sample_case, sample_papers, pre_analysis_payload):
        llm = FakeLLM([pre_analysis_payload, "```json\n{broken\n```"])

        outcome = run(
            CATTORunner(llm, pubmed=make_pubmed(sample_papers), mesh=FakeMesh()), sample_case
        )

        assert outcome.error_code == "parse"
        assert outcome.result is None

    def test_japanese_message(self, monkeypatch, sample_case):
        monkeypatch.setenv("CATTO_UI_LANGUAGE", "ja")
        llm = FakeLLM(["no json"])

        outcome = run(CATTORunner(llm, pubmed=FakePubMed(), mesh=FakeMesh()), sample_case)

        assert outcome.error_message.startswith("エラーが発生しました: ")

    def test_pubmed_unavailable(self, sample_case, sample_papers, pre_analysis_payload):
        pubmed = make_pubmed(sample_papers, search_error=SourceUnavailableError("503"))
        llm = FakeLLM([pre_analysis_payload])

        outcome = run(CATTORunner(llm, pubmed=pubmed, mesh=FakeMesh()), sample_case)

        assert outcome.error_code == "source_unavailable"
        assert outcome.retryable is True

    def test_provider_failure(self, sample_case):
        llm = FakeLLM([LLMProviderError("timeout", provider="fake")])

        outcome = run(CATTORunner(llm, pubmed=FakePubMed(), mesh=FakeMesh()), sample_case)

        assert outcome.error_code == "llm"

    def test_unexpected_error(self, sample_case):
        llm = FakeLLM([RuntimeError("bug")])

        outcome = run(CATTORunner(llm, pubmed=FakePubMed(), mesh=FakeMesh()), sample_case)

        assert outcome.error_code == "unknown"
        assert outcome.retryable is True
