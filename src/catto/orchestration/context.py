"""
Per-run dependencies handed to graph nodes through the LangGraph config.

    config={"configurable": {"context": RunContext(...)}}

The vocabulary cache is the only mutable state shared between nodes and it
lives here, so two concurrent runs never see each other's lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from langchain_core.runnables import RunnableConfig

from catto.config import Settings, get_settings
from catto.core.exceptions import OrchestrationError
from catto.retrieval.query_builder import VocabularyCache

if TYPE_CHECKING:
    from catto.llm.base import BaseLLMProvider
    from catto.retrieval.mesh_client import MeshClient
    from catto.retrieval.pubmed_client import PubMedClient


@dataclass
class RunContext:
    llm: "BaseLLMProvider"
    pubmed: "PubMedClient"
    mesh: "MeshClient"
    vocabulary_cache: VocabularyCache = field(default_factory=VocabularyCache)
    settings: Settings = field(default_factory=get_settings)


def get_context(config: RunnableConfig) -> RunContext:
    """RunContext from a node's config."""
    context = config.get("configurable", {}).get("context")
    if not isinstance(context, RunContext):
        raise OrchestrationError("Graph invoked without a RunContext in config['configurable']")
    return context
