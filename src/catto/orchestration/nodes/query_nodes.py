"""
CATTO Query Nodes

Node functions for case reconstruction, query construction and retrieval.
"""

from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from catto.core.enums import RunStatus
from catto.core.exceptions import OrchestrationError
from catto.core.schemas import CATTOState
from catto.interface.case_reconstructor import CaseReconstructor
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.orchestration.context import get_context
from catto.parsing import ParseFailure
from catto.retrieval.escalation import EscalationController
from catto.retrieval.query_builder import QueryBuilder

logger = logging.getLogger(__name__)


async def reconstruct_case_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Standardize the case and propose search facets.

    Node: RECONSTRUCT_CASE
    Input: case
    Output: pre_analysis
    """
    with tracer.start_span("node.reconstruct_case") as span:
        context = get_context(config)
        result = await CaseReconstructor(context.llm, context.settings.llm).reconstruct(state.case)

        if isinstance(result, ParseFailure):
            span.set_attribute("error", result.reason)
            raise result.to_error()

        span.set_attribute("query_blocks", len(result.value.query_blocks))
        return {"pre_analysis": result.value, "status": RunStatus.RUNNING}


async def build_query_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Validate controlled terms and assemble block clauses.

    Node: BUILD_QUERY
    Input: pre_analysis
    Output: validated_blocks
    """
    with tracer.start_span("node.build_query") as span:
        if state.pre_analysis is None:
            raise OrchestrationError("build_query reached without a pre-analysis")

        context = get_context(config)
        builder = QueryBuilder(context.mesh, context.vocabulary_cache)
        blocks = await builder.build(list(state.pre_analysis.query_blocks))

        demoted = sum(1 for b in blocks for valid in b.term_validity.values() if not valid)
        metrics.counter("catto.query.demoted_terms", demoted)
        span.set_attribute("blocks", len(blocks))
        span.set_attribute("demoted_terms", demoted)
        return {"validated_blocks": blocks}


async def retrieve_node(state: CATTOState, config: RunnableConfig) -> dict:
    """Escalate, expand and fetch paper details.

    Node: RETRIEVE
    Input: validated_blocks
    Output: compiled_query, candidate_ids, papers
    """
    with tracer.start_span("node.retrieve") as span:
        context = get_context(config)
        controller = EscalationController(context.pubmed, settings=context.settings)
        candidates = await controller.run(list(state.validated_blocks))
        papers = await context.pubmed.fetch_details(candidates.candidate_ids)

        span.set_attribute("strength", candidates.query.strength.value)
        span.set_attribute("candidates", len(candidates.candidate_ids))
        span.set_attribute("papers", len(papers))
        logger.info(
            "Run %s: %d candidates, %d papers with details",
            state.run_id,
            len(candidates.candidate_ids),
            len(papers),
        )
        return {
            "compiled_query": candidates.query,
            "candidate_ids": candidates.candidate_ids,
            "papers": papers,
        }
