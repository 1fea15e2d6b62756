"""
Email Report Composer

Builds the plain-text email draft and mailto: link handed to the author.
Only the verified AnalysisResult and the submitted case are used.
"""

from __future__ import annotations

from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from catto.core.schemas import AnalysisResult, CaseInput, VerifiedCitation

_RULE = "=" * 40
_SECTION_RULE = "-" * 30

# Submitted case fields, in form order
_CASE_FIELDS = [
    ("A. Main Event", "main_event_1line"),
    ("B. Condition/Event", "condition_event"),
    ("C. Anatomy", "anatomy"),
    ("D. Trigger/Exposure", "trigger_exposure"),
    ("E. Timing", "timing"),
    ("F. Host Factors", "host_factors"),
    ("G. Key Findings", "key_findings"),
    ("H. Management/Outcome", "management_outcome"),
    ("I. Novelty/Differences", "novelty_differences"),
]


class EmailDraft(BaseModel):
    """Email ready to open in the author's mail client."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    subject: str
    body: str
    mailto_url: str


def build_subject(result: AnalysisResult) -> str:
    return (
        f"Case report screening result: {result.judgement.value} Priority "
        f"(Novelty {result.novelty_score}%)"
    )


def _citation_text(index: int, citation: VerifiedCitation) -> str:
    lines = [f"[{index}] {citation.title}", f"    PMID: {citation.pmid}"]
    if citation.doi:
        lines.append(f"    DOI: {citation.doi}")
    if citation.evidence_quotes:
        lines.append('    Evidence: "' + '", "'.join(citation.evidence_quotes) + '"')
    lines.extend(
        [
            f"    Matched Elements: {citation.matched_elements}",
            f"    Unmatched Elements: {citation.unmatched_elements}",
            f"    Difference: {citation.difference}",
        ]
    )
    return "\n".join(lines)


def _section(title: str, content: str) -> list[str]:
    return [f"[{title}]", _SECTION_RULE, content, ""]


def build_body(result: AnalysisResult, case: CaseInput) -> str:
    """Plain-text report body."""
    lines = [_RULE, "Case Report Analysis", _RULE, ""]

    lines += _section(
        "Judgement",
        f"Priority: {result.judgement.value}\n"
        f"Novelty Score: {result.novelty_score}% "
        f"(based on CATTO Level {result.verified_max_level})",
    )
    lines += _section("Reasoning", result.reasoning)
    lines += _section("Search Query", result.query_display)

    if result.citations:
        literature = "\n\n".join(_citation_text(i, c) for i, c in enumerate(result.citations, 1))
    else:
        literature = "No specific papers found."
    lines += _section("Quick Literature Check", literature)

    if result.narrative is not None:
        lines += _section("Knowledge Gap", result.narrative.knowledge_gap)
        if result.narrative.novelty_sharpeners:
            lines += _section(
                "Novelty Sharpeners",
                "\n".join(f"- {s}" for s in result.narrative.novelty_sharpeners),
            )

    submitted = [f"{label}:\n{getattr(case, name) or 'N/A'}" for label, name in _CASE_FIELDS]
    lines += _section("Submitted CATTO Data", "\n\n".join(submitted))

    return "\n".join(lines).strip()


def build_email_draft(result: AnalysisResult, case: CaseInput) -> EmailDraft:
    """Subject, body and a mailto: URL addressed to the case contact."""
    subject = build_subject(result)
    body = build_body(result, case)
    mailto_url = (
        f"mailto:{quote(case.submitter_email, safe='@')}"
        f"?subject={quote(subject, safe='')}&body={quote(body, safe='')}"
    )
    return EmailDraft(
        recipient=case.submitter_email, subject=subject, body=body, mailto_url=mailto_url
    )
