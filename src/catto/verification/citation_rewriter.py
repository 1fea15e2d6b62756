"""
Citation Reference Rewriter

Replaces the model's positional paper references in free text with the
paper's title and PMID. Recognised forms (case-insensitive):

    [3]  (3)  [P3]  (P 3)  [Paper 3]  (Paper 3)  P3  Paper 3

All forms are matched in a single pass, so inserted titles are never
rescanned for further references.
"""

from __future__ import annotations

import re

from catto.core.schemas import PaperRecord

_REFERENCE = re.compile(
    r"[\[(]\s*(?:Paper|P)?\s*(\d+)\s*[\])]|\b(?:Paper|P)\s*(\d+)\b",
    re.IGNORECASE,
)


def rewrite_references(text: str, papers: list[PaperRecord]) -> str:
    """Resolve every reference against the 1-based paper list."""
    if not text:
        return text

    def replace(match: re.Match[str]) -> str:
        number = match.group(1) or match.group(2)
        index = int(number)
        if 1 <= index <= len(papers):
            paper = papers[index - 1]
            return f"{paper.title} (PMID: {paper.pmid})"
        return f"(Citation Error: Paper ID #{number} not found)"

    return _REFERENCE.sub(replace, text)


def append_system_notes(text: str, notes: list[str]) -> str:
    if not notes:
        return text
    return f"{text}\n\n[System Verification Note: {' '.join(notes)}]"
