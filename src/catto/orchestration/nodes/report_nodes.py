"""
CATTO Report Node

Assembles the AnalysisResult from verified data. Also handles the
zero-paper path, where no evaluation ever ran.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from catto.core.enums import RunStatus
from catto.core.exceptions import OrchestrationError
from catto.core.schemas import AnalysisResult, CATTOState, ReconstructedCase, SearchCore
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.verification.citation_rewriter import append_system_notes, rewrite_references
from catto.verification.scoring import score_for_level

NO_LITERATURE_REASONING = (
    "Detailed analysis could not be performed because no relevant papers were found "
    "in PubMed matching the generated search queries. This suggests the case is likely "
    "novel (High Priority) or the search terms were too specific."
)


async def finalize_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Build the final report.

    Node: FINALIZE
    Input: papers, verification, narrative
    Output: result, status
    """
    with tracer.start_span("node.finalize") as span:
        pre_analysis = state.pre_analysis
        reconstructed = pre_analysis.reconstructed_catto if pre_analysis else ReconstructedCase()
        search_core = pre_analysis.search_core if pre_analysis else SearchCore()

        if not state.papers:
            level = 0
            reasoning = NO_LITERATURE_REASONING
            citations = []
            notes = []
            status = RunStatus.NO_LITERATURE
        else:
            if state.evaluation is None or state.verification is None:
                raise OrchestrationError("finalize reached with papers but no verification")
            level = state.verification.verified_max_level
            citations = list(state.verification.citations)
            notes = list(state.verification.system_notes)
            reasoning = append_system_notes(
                rewrite_references(state.evaluation.reasoning_with_ids, list(state.papers)),
                notes,
            )
            status = RunStatus.COMPLETED

        score, judgement = score_for_level(level)
        result = AnalysisResult(
            case=state.case,
            reconstructed_catto=reconstructed,
            search_core=search_core,
            compiled_query=state.compiled_query,
            verified_max_level=level,
            novelty_score=score,
            judgement=judgement,
            reasoning=reasoning,
            citations=citations,
            system_notes=notes,
            narrative=state.narrative,
            candidate_count=len(state.candidate_ids),
            paper_count=len(state.papers),
        )

        metrics.counter("catto.judgements", labels={"judgement": judgement.value})
        span.set_attribute("verified_max_level", level)
        span.set_attribute("judgement", judgement.value)
        span.set_attribute("status", status.value)
        return {"result": result, "status": status}
