"""
CATTO Verification Layer

Evidence checking of model-asserted match levels, scoring, and citation
rewriting.
"""

from catto.verification.citation_rewriter import append_system_notes, rewrite_references
from catto.verification.evidence_verifier import (
    clean_quote,
    confirmed_quotes,
    recalculate_level,
    resolve_reference,
    verify_evaluations,
)
from catto.verification.scoring import score_for_level

__all__ = [
    "verify_evaluations",
    "resolve_reference",
    "clean_quote",
    "confirmed_quotes",
    "recalculate_level",
    "score_for_level",
    "rewrite_references",
    "append_system_notes",
]
