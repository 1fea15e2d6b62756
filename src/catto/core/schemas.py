"""
CATTO Core Schemas

This module defines all Pydantic models (schemas) used throughout the CATTO system.

Key Design Principles:
1. Values produced by this system are immutable (frozen=True)
2. Values produced by the generative model are untrusted: optional fields are
   coerced to defaults ("N/A", empty lists) instead of failing validation
3. Only verified levels flow downstream of the evidence verifier
"""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from catto.core.enums import Judgement, QueryStrength, RunStatus, VerificationNote

NOT_AVAILABLE = "N/A"
UNKNOWN_YEAR = "unknown"

_DIGITS = re.compile(r"\d+")


def _text_or_default(v: Any, default: str = NOT_AVAILABLE) -> str:
    """Coerce model-supplied scalars to stripped text, substituting a default."""
    if v is None:
        return default
    if isinstance(v, (list, tuple)):
        v = ", ".join(str(item) for item in v if item is not None)
    text = str(v).strip()
    return text or default


def _string_list(v: Any) -> list[str]:
    """Coerce a model-supplied value to a list of non-empty strings."""
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    if not isinstance(v, (list, tuple)):
        return [str(v)]
    return [str(item) for item in v if item is not None and str(item).strip()]


# =============================================================================
# CASE INPUT
# =============================================================================


class CaseInput(BaseModel):
    """
    Structured case attributes submitted by the author.

    Field names follow the submission form so saved drafts can be replayed
    unchanged.
    """

    model_config = ConfigDict(frozen=True)

    submitter_email: str = Field(default="", description="Contact address for the email draft")
    main_event_1line: str = Field(default="", description="One-line summary of the main event")
    condition_event: str = ""
    anatomy: str = ""
    trigger_exposure: str = ""
    timing: str = ""
    host_factors: str = ""
    key_findings: str = ""
    management_outcome: str = ""
    novelty_differences: str = Field(default="", description="Author's novelty claim")

    @field_validator("*", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        """Treat missing form fields as empty text."""
        return "" if v is None else v

    @model_validator(mode="after")
    def require_event(self) -> CaseInput:
        """A case needs at least a main event or a condition to search for."""
        if not (self.main_event_1line.strip() or self.condition_event.strip()):
            raise ValueError("main_event_1line or condition_event is required")
        return self

    def to_prompt_dict(self) -> dict[str, str]:
        """Case attributes for the reconstruction prompt (contact address excluded)."""
        return self.model_dump(exclude={"submitter_email"})


# =============================================================================
# PRE-ANALYSIS (model call #1)
# =============================================================================


class ReconstructedCase(BaseModel):
    """Model-standardized CATTO definition of the case."""

    model_config = ConfigDict(frozen=True)

    condition_event: str = NOT_AVAILABLE
    anatomy: str = NOT_AVAILABLE
    trigger_exposure: str = NOT_AVAILABLE
    timing: str = NOT_AVAILABLE
    host_factors: str = NOT_AVAILABLE
    key_findings: str = NOT_AVAILABLE
    management_outcome: str = NOT_AVAILABLE

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text_or_default(v)


class SearchCore(BaseModel):
    """Four-part summary of the case used to steer searching and evaluation."""

    model_config = ConfigDict(frozen=True)

    mandatory: str = NOT_AVAILABLE
    structural: str = NOT_AVAILABLE
    contextual: str = NOT_AVAILABLE
    modifier: str = NOT_AVAILABLE

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text_or_default(v)


class QueryBlock(BaseModel):
    """One search facet proposed by the model (e.g. condition, anatomy)."""

    model_config = ConfigDict(frozen=True)

    concept: str = Field(default="", validation_alias=AliasChoices("concept", "label", "facet"))
    mesh_terms: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mesh_terms", "controlled_terms", "mesh"),
    )
    free_terms: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("free_terms", "free_text_terms", "tiab_terms", "keywords"),
    )

    @field_validator("concept", mode="before")
    @classmethod
    def coerce_concept(cls, v: Any) -> str:
        return _text_or_default(v, default="")

    @field_validator("mesh_terms", "free_terms", mode="before")
    @classmethod
    def coerce_terms(cls, v: Any) -> list[str]:
        return _string_list(v)


class PreAnalysis(BaseModel):
    """Parsed output of the case reconstruction call."""

    model_config = ConfigDict(frozen=True)

    reconstructed_catto: ReconstructedCase = Field(default_factory=ReconstructedCase)
    search_core: SearchCore = Field(default_factory=SearchCore)
    query_blocks: list[QueryBlock] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def lift_nested_blocks(cls, data: Any) -> Any:
        """Accept blocks nested under pubmed_query and drop malformed sections."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "query_blocks" not in data and isinstance(data.get("pubmed_query"), dict):
            data["query_blocks"] = data["pubmed_query"].get("blocks")
        for key in ("reconstructed_catto", "search_core"):
            if not isinstance(data.get(key), dict):
                data.pop(key, None)
        blocks = data.get("query_blocks")
        data["query_blocks"] = (
            [b for b in blocks if isinstance(b, dict)] if isinstance(blocks, list) else []
        )
        return data


# =============================================================================
# QUERY CONSTRUCTION
# =============================================================================


class ValidatedBlock(BaseModel):
    """
    QueryBlock after vocabulary validation.

    Invariants:
    - controlled_terms only holds terms with a confirmed-valid lookup
    - rejected controlled terms are demoted into free_terms, never dropped
    """

    model_config = ConfigDict(frozen=True)

    concept: str
    term_validity: dict[str, bool] = Field(default_factory=dict)
    controlled_terms: list[str] = Field(default_factory=list)
    free_terms: list[str] = Field(default_factory=list)
    controlled_clause: str = ""
    free_text_clause: str = ""
    clause: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.clause


class CompiledQuery(BaseModel):
    """
    Narrow and broad boolean queries with their audit counts.

    Invariant: the broad query is built from a subset of the narrow query's blocks.
    """

    model_config = ConfigDict(frozen=True)

    narrow: str
    broad: str
    chosen: str
    strength: QueryStrength
    narrow_count: int = 0
    broad_count: int = 0
    block_count: int = 0
    broad_block_count: int = 0


# =============================================================================
# LITERATURE
# =============================================================================


class PaperRecord(BaseModel):
    """Canonical PubMed record. Records without a PMID or title are never built."""

    model_config = ConfigDict(frozen=True)

    pmid: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    abstract: str = ""
    journal: str = NOT_AVAILABLE
    year: str = UNKNOWN_YEAR
    doi: str | None = None
    url: str = ""

    @model_validator(mode="before")
    @classmethod
    def default_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("url") and data.get("pmid"):
            data = {**data, "url": f"https://pubmed.ncbi.nlm.nih.gov/{data['pmid']}/"}
        return data


# =============================================================================
# EVALUATION (model call #2, untrusted)
# =============================================================================


class PaperEvaluation(BaseModel):
    """AI-asserted similarity claim for one paper. A claim, not a fact."""

    model_config = ConfigDict(frozen=True)

    paper_id: Any = None
    match_level: int = 1
    matched_elements: str = NOT_AVAILABLE
    unmatched_elements: str = NOT_AVAILABLE
    difference: str = NOT_AVAILABLE
    evidence_quotes: list[str] = Field(default_factory=list)

    @field_validator("match_level", mode="before")
    @classmethod
    def coerce_level(cls, v: Any) -> int:
        """Clamp asserted levels into 1..4; unreadable levels count as 1."""
        if isinstance(v, bool):
            level = 1
        elif isinstance(v, float) and not math.isfinite(v):
            level = 1
        elif isinstance(v, (int, float)):
            level = int(v)
        else:
            found = _DIGITS.search(str(v)) if v is not None else None
            level = int(found.group(0)) if found else 1
        return min(4, max(1, level))

    @field_validator("matched_elements", "unmatched_elements", "difference", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _text_or_default(v)

    @field_validator("evidence_quotes", mode="before")
    @classmethod
    def coerce_quotes(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            return [str(v)]
        return [str(q) for q in v if q is not None]


class EvaluationResponse(BaseModel):
    """Parsed output of the evaluation call.

    max_level_found and judgement are recorded for auditing only; the
    verified level is always recomputed.
    """

    model_config = ConfigDict(frozen=True)

    max_level_found: int | None = None
    judgement: str | None = None
    paper_evaluations: list[PaperEvaluation] = Field(default_factory=list)
    reasoning_with_ids: str = ""

    @model_validator(mode="before")
    @classmethod
    def tolerate_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        evaluations = data.get("paper_evaluations")
        data["paper_evaluations"] = (
            [e for e in evaluations if isinstance(e, dict)] if isinstance(evaluations, list) else []
        )
        if not data.get("reasoning_with_ids"):
            data["reasoning_with_ids"] = data.get("reasoning") or ""
        if not isinstance(data["reasoning_with_ids"], str):
            data["reasoning_with_ids"] = str(data["reasoning_with_ids"])
        level = data.get("max_level_found")
        if level is not None and not isinstance(level, int):
            found = _DIGITS.search(str(level))
            data["max_level_found"] = int(found.group(0)) if found else None
        judgement = data.get("judgement")
        if judgement is not None and not isinstance(judgement, str):
            data["judgement"] = str(judgement)
        return data


# =============================================================================
# VERIFICATION
# =============================================================================


class VerifiedCitation(BaseModel):
    """PaperEvaluation after verification. The only per-paper claim shown downstream."""

    model_config = ConfigDict(frozen=True)

    paper_index: int = Field(..., ge=1, description="1-based position in the paper list")
    pmid: str
    doi: str = ""
    title: str
    url: str
    asserted_level: int = Field(..., ge=1, le=4)
    verified_level: int = Field(..., ge=0, le=4)
    matched_elements: str = NOT_AVAILABLE
    unmatched_elements: str = NOT_AVAILABLE
    difference: str = NOT_AVAILABLE
    evidence_quotes: list[str] = Field(default_factory=list)
    verification_note: VerificationNote | None = None

    @model_validator(mode="after")
    def level_not_raised(self) -> VerifiedCitation:
        if self.verified_level > self.asserted_level:
            raise ValueError("verified_level cannot exceed asserted_level")
        return self


class VerificationOutcome(BaseModel):
    """Result of verifying every evaluation of a run."""

    model_config = ConfigDict(frozen=True)

    citations: list[VerifiedCitation] = Field(default_factory=list)
    verified_max_level: int = Field(default=0, ge=0, le=4)
    system_notes: list[str] = Field(default_factory=list)
    discarded_references: list[str] = Field(default_factory=list)

    @property
    def positive_citations(self) -> list[VerifiedCitation]:
        return [c for c in self.citations if c.verified_level > 0]


# =============================================================================
# NARRATIVE (model call #3)
# =============================================================================


class NoveltyNarrative(BaseModel):
    """Knowledge gap and novelty sharpeners generated from verified data only."""

    model_config = ConfigDict(frozen=True)

    knowledge_gap: str = NOT_AVAILABLE
    novelty_sharpeners: list[str] = Field(default_factory=list)

    @field_validator("knowledge_gap", mode="before")
    @classmethod
    def coerce_gap(cls, v: Any) -> str:
        return _text_or_default(v)

    @field_validator("novelty_sharpeners", mode="before")
    @classmethod
    def coerce_sharpeners(cls, v: Any) -> list[str]:
        return _string_list(v)


# =============================================================================
# RESULT
# =============================================================================


class AnalysisResult(BaseModel):
    """Final report of one analysis run."""

    model_config = ConfigDict(frozen=True)

    case: CaseInput
    reconstructed_catto: ReconstructedCase = Field(default_factory=ReconstructedCase)
    search_core: SearchCore = Field(default_factory=SearchCore)
    compiled_query: CompiledQuery | None = None
    verified_max_level: int = Field(..., ge=0, le=4)
    novelty_score: int = Field(..., ge=0, le=100)
    judgement: Judgement
    reasoning: str
    citations: list[VerifiedCitation] = Field(default_factory=list)
    system_notes: list[str] = Field(default_factory=list)
    narrative: NoveltyNarrative | None = None
    candidate_count: int = 0
    paper_count: int = 0

    @property
    def query_display(self) -> str:
        if self.compiled_query is None:
            return NOT_AVAILABLE
        return self.compiled_query.chosen or NOT_AVAILABLE


class AnalysisOutcome(BaseModel):
    """What the run boundary hands back: a result, or a translated failure."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    result: AnalysisResult | None = None
    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False

    @property
    def succeeded(self) -> bool:
        return self.result is not None


# =============================================================================
# LANGGRAPH STATE
# =============================================================================


class CATTOState(BaseModel):
    """
    State flowing through the LangGraph workflow.

    Holds every artifact of a single run; discarded once the report is built.
    """

    model_config = ConfigDict(validate_assignment=True)

    run_id: str
    case: CaseInput
    status: RunStatus = RunStatus.PENDING

    pre_analysis: PreAnalysis | None = None
    validated_blocks: list[ValidatedBlock] = Field(default_factory=list)
    compiled_query: CompiledQuery | None = None
    candidate_ids: list[str] = Field(default_factory=list)
    papers: list[PaperRecord] = Field(default_factory=list)

    evaluation: EvaluationResponse | None = None
    verification: VerificationOutcome | None = None
    narrative: NoveltyNarrative | None = None

    result: AnalysisResult | None = None
