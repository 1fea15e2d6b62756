"""
CATTO Orchestration Layer

LangGraph-based workflow for one case analysis:

    reconstruct_case -> build_query -> retrieve -+-> evaluate -> verify -> narrate -> finalize
                                                 +-> finalize (no papers)

CATTORunner.run() is the run boundary: every hard failure raised inside the
graph is turned into a failed AnalysisOutcome carrying a translated message.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Literal

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from catto.config import Settings, get_settings
from catto.core.enums import GraphNode, RunStatus, UILanguage
from catto.core.exceptions import CATTOError
from catto.core.schemas import AnalysisOutcome, CaseInput, CATTOState
from catto.interface.messages import ERROR_UNKNOWN, error_code_for, user_message
from catto.observability.metrics import metrics
from catto.observability.tracer import Span, tracer
from catto.orchestration.context import RunContext
from catto.orchestration.nodes import (
    build_query_node,
    evaluate_node,
    finalize_node,
    narrate_node,
    reconstruct_case_node,
    retrieve_node,
    verify_node,
)
from catto.retrieval.mesh_client import MeshClient
from catto.retrieval.pubmed_client import PubMedClient
from catto.retrieval.query_builder import VocabularyCache

if TYPE_CHECKING:
    from catto.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)


# =============================================================================
# CONDITIONAL EDGES
# =============================================================================


def should_evaluate(state: CATTOState) -> Literal["evaluate", "finalize"]:
    """Route an empty paper set straight to finalize; the model never sees it."""
    if not state.papers:
        return "finalize"
    return "evaluate"


# =============================================================================
# GRAPH BUILDER
# =============================================================================


def build_catto_graph() -> CompiledStateGraph:
    """Build the CATTO workflow graph."""
    graph = StateGraph(CATTOState)

    graph.add_node(GraphNode.RECONSTRUCT_CASE.value, reconstruct_case_node)
    graph.add_node(GraphNode.BUILD_QUERY.value, build_query_node)
    graph.add_node(GraphNode.RETRIEVE.value, retrieve_node)
    graph.add_node(GraphNode.EVALUATE.value, evaluate_node)
    graph.add_node(GraphNode.VERIFY.value, verify_node)
    graph.add_node(GraphNode.NARRATE.value, narrate_node)
    graph.add_node(GraphNode.FINALIZE.value, finalize_node)

    graph.add_edge(START, GraphNode.RECONSTRUCT_CASE.value)
    graph.add_edge(GraphNode.RECONSTRUCT_CASE.value, GraphNode.BUILD_QUERY.value)
    graph.add_edge(GraphNode.BUILD_QUERY.value, GraphNode.RETRIEVE.value)

    graph.add_conditional_edges(
        GraphNode.RETRIEVE.value,
        should_evaluate,
        {
            "evaluate": GraphNode.EVALUATE.value,
            "finalize": GraphNode.FINALIZE.value,
        },
    )

    graph.add_edge(GraphNode.EVALUATE.value, GraphNode.VERIFY.value)
    graph.add_edge(GraphNode.VERIFY.value, GraphNode.NARRATE.value)
    graph.add_edge(GraphNode.NARRATE.value, GraphNode.FINALIZE.value)
    graph.add_edge(GraphNode.FINALIZE.value, END)

    return graph.compile()


# =============================================================================
# RUNNER
# =============================================================================


class CATTORunner:
    """Run the CATTO workflow for one case at a time.

    PubMed and MeSH clients may be injected (tests, shared connection pools);
    otherwise fresh clients are opened for each run and closed afterwards.
    A new VocabularyCache is created for every run.
    """

    def __init__(
        self,
        llm_provider: "BaseLLMProvider",
        pubmed: PubMedClient | None = None,
        mesh: MeshClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.llm_provider = llm_provider
        self.pubmed = pubmed
        self.mesh = mesh
        self.settings = settings or get_settings()
        self.graph = build_catto_graph()

    async def run(self, case: CaseInput, run_id: str | None = None) -> AnalysisOutcome:
        """Analyse a case.

        Returns:
            AnalysisOutcome with a result, or with a translated error and
            retryable flag. No partial report is returned on failure.
        """
        run_id = run_id or uuid.uuid4().hex[:8]
        language = self.settings.features.ui_language

        pubmed = self.pubmed or PubMedClient(settings=self.settings.retrieval)
        mesh = self.mesh or MeshClient(settings=self.settings.retrieval)
        context = RunContext(
            llm=self.llm_provider,
            pubmed=pubmed,
            mesh=mesh,
            vocabulary_cache=VocabularyCache(),
            settings=self.settings,
        )

        with tracer.start_span("catto.run", attributes={"run_id": run_id}) as span:
            logger.info("Starting run %s", run_id)
            in_flight = metrics.gauge("catto.runs_in_flight")
            in_flight.inc()
            try:
                final = await self.graph.ainvoke(
                    CATTOState(run_id=run_id, case=case, status=RunStatus.RUNNING),
                    config={"configurable": {"context": context}},
                )
                state = CATTOState.model_validate(final) if isinstance(final, dict) else final

            except CATTOError as e:
                code = error_code_for(e)
                logger.error("Run %s failed (%s): %s", run_id, code, e)
                return self._failed(run_id, code, language, e.retryable, span)

            except Exception as e:
                logger.exception("Run %s failed with an unexpected error", run_id)
                span.set_attribute("error", str(e))
                return self._failed(run_id, ERROR_UNKNOWN, language, True, span)

            finally:
                in_flight.dec()
                if self.pubmed is None:
                    await pubmed.close()
                if self.mesh is None:
                    await mesh.close()

            span.set_attribute("status", state.status.value)
            metrics.counter("catto.runs", labels={"status": state.status.value})
            logger.info(
                "Run %s finished: %s, verified level %s",
                run_id,
                state.status.value,
                state.result.verified_max_level if state.result else "n/a",
            )
            return AnalysisOutcome(run_id=run_id, status=state.status, result=state.result)

    @staticmethod
    def _failed(
        run_id: str, code: str, language: UILanguage, retryable: bool, span: Span
    ) -> AnalysisOutcome:
        span.set_attribute("error_code", code)
        metrics.counter("catto.runs", labels={"status": RunStatus.FAILED.value})
        metrics.counter("catto.failures", labels={"code": code})
        return AnalysisOutcome(
            run_id=run_id,
            status=RunStatus.FAILED,
            error_code=code,
            error_message=user_message(code, language),
            retryable=retryable,
        )
