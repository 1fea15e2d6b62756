"""
CATTO Evaluation Layer

Per-paper CATTO level assessment by the generative model (untrusted until
verified).
"""

from catto.evaluation.novelty_evaluator import (
    EVALUATION_PROMPT,
    NO_ABSTRACT,
    NoveltyEvaluator,
    format_papers,
)

__all__ = [
    "NoveltyEvaluator",
    "EVALUATION_PROMPT",
    "NO_ABSTRACT",
    "format_papers",
]
