"""
Evidence Verifier & Level Recalculator

Treats every PaperEvaluation as an unverified claim. Each asserted level is
checked against the quotes the model offered as evidence and the abstract of
the paper it referenced:

    quotes offered   quotes confirmed   verified level          note
    --------------   ----------------   ---------------------   ---------------------------------
    none             -                  1                       No evidence provided
    some             none               0                       Hallucinated evidence invalidated
    some             some, not all      max(1, asserted - 1)    Partial evidence match
    some             all                asserted                (none)

A quote is confirmed when, after trimming, lower-casing and removing one
surrounding quote mark on each side, it is longer than the minimum length and
occurs verbatim in the lower-cased abstract.

verify_evaluations() is pure: the same evaluations and papers always give the
same outcome.
"""

from __future__ import annotations

import logging
import re

from catto.core.enums import VerificationNote
from catto.core.schemas import (
    PaperEvaluation,
    PaperRecord,
    VerificationOutcome,
    VerifiedCitation,
)

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")
_QUOTE_MARKS = "\"'"


def resolve_reference(paper_id: object, paper_count: int) -> int | None:
    """
    1-based paper index from a model-supplied reference such as 3, "3" or "P3".

    The first run of digits is used; anything outside 1..paper_count is None.
    """
    if paper_id is None or isinstance(paper_id, bool):
        return None
    found = _DIGITS.search(str(paper_id))
    if not found:
        return None
    index = int(found.group(0))
    return index if 1 <= index <= paper_count else None


def clean_quote(quote: str) -> str:
    """Normalise a quote for substring matching."""
    text = quote.strip().lower()
    if text[:1] in _QUOTE_MARKS:
        text = text[1:]
    if text[-1:] in _QUOTE_MARKS:
        text = text[:-1]
    return text


def confirmed_quotes(quotes: list[str], abstract: str, min_length: int = 5) -> list[str]:
    """Quotes (original text) that occur in the abstract."""
    haystack = abstract.lower()
    confirmed = []
    for quote in quotes:
        needle = clean_quote(quote)
        if len(needle) > min_length and needle in haystack:
            confirmed.append(quote)
    return confirmed


def recalculate_level(
    asserted_level: int, offered: int, confirmed: int
) -> tuple[int, VerificationNote | None]:
    """Apply the downgrade table to one evaluation."""
    if offered == 0:
        return 1, VerificationNote.NO_EVIDENCE
    if confirmed == 0:
        return 0, VerificationNote.HALLUCINATED
    if confirmed < offered:
        return max(1, asserted_level - 1), VerificationNote.PARTIAL
    return asserted_level, None


def verify_evaluations(
    evaluations: list[PaperEvaluation],
    papers: list[PaperRecord],
    min_quote_length: int = 5,
    retain_closest_matches: bool = False,
) -> VerificationOutcome:
    """
    Verify every evaluation against the paper list it was produced from.

    Args:
        evaluations: Evaluations as returned by the model.
        papers: The papers shown to the model, in [P1]..[Pn] order.
        min_quote_length: A cleaned quote must be longer than this.
        retain_closest_matches: Keep invalidated papers as level-0 citations
            instead of reporting them only as system notes.

    Returns:
        Citations sorted by verified level (descending, stable), the verified
        maximum level, system notes and the discarded references.
    """
    citations: list[VerifiedCitation] = []
    system_notes: list[str] = []
    discarded: list[str] = []
    max_level = 0

    for evaluation in evaluations:
        index = resolve_reference(evaluation.paper_id, len(papers))
        if index is None:
            discarded.append(str(evaluation.paper_id))
            continue

        paper = papers[index - 1]
        confirmed = confirmed_quotes(evaluation.evidence_quotes, paper.abstract, min_quote_length)
        level, note = recalculate_level(
            evaluation.match_level, len(evaluation.evidence_quotes), len(confirmed)
        )
        max_level = max(max_level, level)

        if level == 0:
            system_notes.append(f"Paper [P{index}] invalidated: {note.value}.")
            if not retain_closest_matches:
                continue

        citations.append(
            VerifiedCitation(
                paper_index=index,
                pmid=paper.pmid,
                doi=paper.doi or "",
                title=paper.title,
                url=paper.url,
                asserted_level=evaluation.match_level,
                verified_level=level,
                matched_elements=evaluation.matched_elements,
                unmatched_elements=evaluation.unmatched_elements,
                difference=evaluation.difference,
                evidence_quotes=confirmed,
                verification_note=note,
            )
        )

    if discarded:
        logger.info("Discarded evaluations with unresolvable references: %s", discarded)
    if system_notes:
        logger.info("Invalidated %d evaluations", len(system_notes))

    # sorted() is stable, so equal levels keep the model's order
    citations = sorted(citations, key=lambda c: c.verified_level, reverse=True)
    return VerificationOutcome(
        citations=citations,
        verified_max_level=max_level,
        system_notes=system_notes,
        discarded_references=discarded,
    )
