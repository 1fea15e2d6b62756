"""
CATTO Synthesis Layer

Knowledge-gap narrative built from verified citations.
"""

from catto.synthesis.narrative import NARRATIVE_PROMPT, NarrativeWriter

__all__ = ["NarrativeWriter", "NARRATIVE_PROMPT"]
