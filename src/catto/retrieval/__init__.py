"""
CATTO Retrieval Layer

Literature search against PubMed and controlled-vocabulary validation.
"""

from catto.retrieval.escalation import (
    CandidateSet,
    EscalationController,
    broad_clause,
    choose_strength,
)
from catto.retrieval.mesh_client import MeshClient
from catto.retrieval.pubmed_client import PubMedClient
from catto.retrieval.query_builder import (
    QueryBuilder,
    VocabularyCache,
    VocabularyService,
    clean_term,
    narrow_clause,
)

__all__ = [
    # PubMed
    "PubMedClient",
    # MeSH
    "MeshClient",
    # Query construction
    "QueryBuilder",
    "VocabularyCache",
    "VocabularyService",
    "clean_term",
    "narrow_clause",
    # Escalation
    "EscalationController",
    "CandidateSet",
    "broad_clause",
    "choose_strength",
]
