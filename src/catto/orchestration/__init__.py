"""
CATTO Orchestration Layer

LangGraph workflow and the run boundary.
"""

from catto.orchestration.context import RunContext, get_context
from catto.orchestration.graph import CATTORunner, build_catto_graph, should_evaluate

__all__ = [
    "CATTORunner",
    "RunContext",
    "build_catto_graph",
    "get_context",
    "should_evaluate",
]
