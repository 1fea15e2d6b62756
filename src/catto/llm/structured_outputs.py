"""
Structured Output Schemas for LLM Responses

JSON schemas for the three model calls of a run, embedded in the prompts.
Responses are still validated by the pydantic models in catto.core.schemas,
which tolerate missing optional fields.
"""

import json
from typing import Any

# CRITICAL: property names MUST match catto.core.schemas field names


# =============================================================================
# PRE-ANALYSIS SCHEMA (call #1)
# =============================================================================

_TEXT = {"type": "string"}

RECONSTRUCTED_CATTO_SCHEMA = {
    "type": "object",
    "properties": {
        "condition_event": _TEXT,
        "anatomy": _TEXT,
        "trigger_exposure": _TEXT,
        "timing": _TEXT,
        "host_factors": _TEXT,
        "key_findings": _TEXT,
        "management_outcome": _TEXT,
    },
    "required": ["condition_event", "anatomy", "trigger_exposure", "timing"],
}

SEARCH_CORE_SCHEMA = {
    "type": "object",
    "properties": {
        "mandatory": {**_TEXT, "description": "Elements every matching paper must share"},
        "structural": {**_TEXT, "description": "Anatomy or structure involved"},
        "contextual": {**_TEXT, "description": "Trigger, exposure or clinical setting"},
        "modifier": {**_TEXT, "description": "Timing and host factors"},
    },
    "required": ["mandatory", "structural", "contextual", "modifier"],
}

QUERY_BLOCK_SCHEMA = {
    "type": "object",
    "properties": {
        "concept": {**_TEXT, "description": "Search facet, e.g. Condition/Event or Anatomy"},
        "mesh_terms": {
            "type": "array",
            "items": _TEXT,
            "description": "Candidate MeSH headings, exact descriptor names without tags",
        },
        "free_terms": {
            "type": "array",
            "items": _TEXT,
            "description": "Title/abstract keywords and synonyms",
        },
    },
    "required": ["concept", "mesh_terms", "free_terms"],
}

PRE_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "reconstructed_catto": RECONSTRUCTED_CATTO_SCHEMA,
        "search_core": SEARCH_CORE_SCHEMA,
        "query_blocks": {
            "type": "array",
            "items": QUERY_BLOCK_SCHEMA,
            "minItems": 1,
            "maxItems": 5,
            "description": "Search facets from most to least essential",
        },
    },
    "required": ["reconstructed_catto", "search_core", "query_blocks"],
}


# =============================================================================
# EVALUATION SCHEMA (call #2)
# =============================================================================

PAPER_EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "paper_id": {"type": "integer", "description": "Number from the [P#] label"},
        "match_level": {"type": "integer", "minimum": 1, "maximum": 4},
        "matched_elements": _TEXT,
        "unmatched_elements": _TEXT,
        "difference": _TEXT,
        "evidence_quotes": {
            "type": "array",
            "items": {**_TEXT, "minLength": 20, "maxLength": 120},
            "maxItems": 2,
            "description": "Verbatim phrases copied from the paper's abstract",
        },
    },
    "required": ["paper_id", "match_level", "evidence_quotes"],
}

EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "max_level_found": {"type": "integer", "minimum": 0, "maximum": 4},
        "judgement": {"type": "string", "enum": ["High", "Moderate", "Low"]},
        "paper_evaluations": {"type": "array", "items": PAPER_EVALUATION_SCHEMA},
        "reasoning_with_ids": {
            **_TEXT,
            "description": "Explanation citing papers only as [P1], [P2], ...",
        },
    },
    "required": ["paper_evaluations", "reasoning_with_ids"],
}


# =============================================================================
# NARRATIVE SCHEMA (call #3)
# =============================================================================

NARRATIVE_SCHEMA = {
    "type": "object",
    "properties": {
        "knowledge_gap": {
            **_TEXT,
            "description": "What the verified literature does not yet describe",
        },
        "novelty_sharpeners": {
            "type": "array",
            "items": _TEXT,
            "maxItems": 5,
            "description": "Concrete points the author should emphasise",
        },
    },
    "required": ["knowledge_gap", "novelty_sharpeners"],
}

SCHEMAS: dict[str, dict[str, Any]] = {
    "pre_analysis": PRE_ANALYSIS_SCHEMA,
    "evaluation": EVALUATION_SCHEMA,
    "narrative": NARRATIVE_SCHEMA,
}


def describe_schema(name: str) -> str:
    """Render a schema for inclusion in a prompt."""
    return json.dumps(SCHEMAS[name], indent=2)

