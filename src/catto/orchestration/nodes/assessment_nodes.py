"""
CATTO Assessment Nodes

Node functions for model evaluation, evidence verification and the optional
knowledge-gap narrative.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from catto.core.exceptions import OrchestrationError
from catto.core.schemas import CATTOState
from catto.evaluation.novelty_evaluator import NoveltyEvaluator
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.orchestration.context import get_context
from catto.parsing import ParseFailure
from catto.synthesis.narrative import NarrativeWriter
from catto.verification.evidence_verifier import verify_evaluations


async def evaluate_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Ask the model to rate each paper with evidence quotes.

    Node: EVALUATE
    Input: pre_analysis.search_core, papers
    Output: evaluation
    """
    with tracer.start_span("node.evaluate") as span:
        if state.pre_analysis is None or not state.papers:
            raise OrchestrationError("evaluate reached without a search core or papers")

        context = get_context(config)
        result = await NoveltyEvaluator(context.llm, context.settings.llm).evaluate(
            state.pre_analysis.search_core, list(state.papers)
        )
        if isinstance(result, ParseFailure):
            span.set_attribute("error", result.reason)
            raise result.to_error()

        span.set_attribute("evaluations", len(result.value.paper_evaluations))
        return {"evaluation": result.value}


async def verify_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Check asserted levels against quotes and abstracts.

    Node: VERIFY
    Input: evaluation, papers
    Output: verification
    """
    with tracer.start_span("node.verify") as span:
        if state.evaluation is None:
            raise OrchestrationError("verify reached without an evaluation")

        settings = get_context(config).settings.verification
        outcome = verify_evaluations(
            list(state.evaluation.paper_evaluations),
            list(state.papers),
            min_quote_length=settings.min_quote_length,
            retain_closest_matches=settings.retain_closest_matches,
        )

        metrics.counter("catto.verification.invalidated", len(outcome.system_notes))
        metrics.counter("catto.verification.discarded", len(outcome.discarded_references))
        span.set_attribute("verified_max_level", outcome.verified_max_level)
        span.set_attribute("asserted_max_level", state.evaluation.max_level_found or 0)
        span.set_attribute("citations", len(outcome.citations))
        return {"verification": outcome}


async def narrate_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Generate the knowledge gap from verified citations only.

    Node: NARRATE
    Input: pre_analysis.search_core, verification
    Output: narrative (None when disabled or failed)
    """
    with tracer.start_span("node.narrate") as span:
        context = get_context(config)
        if not context.settings.verification.enable_narrative:
            span.set_attribute("skipped", True)
            return {}
        if state.pre_analysis is None or state.verification is None:
            raise OrchestrationError("narrate reached without verified citations")

        narrative = await NarrativeWriter(context.llm, context.settings.llm).write(
            state.pre_analysis.search_core,
            state.verification.positive_citations,
            state.verification.verified_max_level,
        )
        span.set_attribute("generated", narrative is not None)
        return {"narrative": narrative}
