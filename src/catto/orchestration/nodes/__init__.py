"""CATTO Orchestration Nodes Package."""

from catto.orchestration.nodes.assessment_nodes import (
    evaluate_node,
    narrate_node,
    verify_node,
)
from catto.orchestration.nodes.query_nodes import (
    build_query_node,
    reconstruct_case_node,
    retrieve_node,
)
from catto.orchestration.nodes.report_nodes import NO_LITERATURE_REASONING, finalize_node

__all__ = [
    "reconstruct_case_node",
    "build_query_node",
    "retrieve_node",
    "evaluate_node",
    "verify_node",
    "narrate_node",
    "finalize_node",
    "NO_LITERATURE_REASONING",
]
