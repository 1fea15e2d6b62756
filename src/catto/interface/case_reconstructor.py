"""
CATTO Case Reconstructor

Model call #1: standardize the submitted case into CATTO fields, define the
search core and propose the search facets used to build PubMed queries.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from catto.config import LLMSettings, get_settings
from catto.core.schemas import CaseInput, PreAnalysis
from catto.llm.base import build_messages
from catto.llm.structured_outputs import describe_schema
from catto.observability.tracer import tracer
from catto.parsing import ParseFailure, Parsed, parse_model_response

if TYPE_CHECKING:
    from catto.llm.base import BaseLLMProvider


# =============================================================================
# SYSTEM PROMPT
# =============================================================================

CASE_RECONSTRUCTION_PROMPT = """You are an expert Anesthesiologist and Researcher.
Perform the following 3 STEPS based on the input Case Report data.
Output strictly in JSON format, nothing else.

STEP 1: CATTO Reconstruction
Reconstruct the case event into a standardized definition:
condition/event, anatomy, trigger/exposure, timing, host factors,
key findings, management/outcome. Use "N/A" for anything not reported.

STEP 2: Search Core Definition
Define the "Search Core" for PubMed:
- mandatory: what every matching report must describe
- structural: the anatomy or structure involved
- contextual: the trigger, exposure or clinical setting
- modifier: timing and host factors

STEP 3: PubMed Search Facets
Propose 2 to 4 search facets, ordered from most to least essential
(Condition/Event first, then Anatomy, then Trigger/Exposure, then Timing).
For each facet give:
- mesh_terms: candidate MeSH descriptor names, spelled exactly as the MeSH
  heading, WITHOUT field tags such as [mh]
- free_terms: title/abstract keywords and common synonyms, WITHOUT field tags
Do not write boolean queries; they are assembled and validated for you.

OUTPUT JSON SCHEMA:
{schema}"""


# =============================================================================
# RECONSTRUCTOR CLASS
# =============================================================================


class CaseReconstructor:
    """Run the case reconstruction call and parse its output."""

    def __init__(
        self, llm_provider: "BaseLLMProvider", settings: LLMSettings | None = None
    ) -> None:
        self.llm = llm_provider
        self.settings = settings or get_settings().llm

    def build_prompt(self, case: CaseInput) -> str:
        """User message carrying the case data (contact address excluded)."""
        case_json = json.dumps(case.to_prompt_dict(), indent=2, ensure_ascii=False)
        return f"INPUT DATA:\n{case_json}"

    async def reconstruct(self, case: CaseInput) -> Parsed[PreAnalysis] | ParseFailure:
        """Call the model and parse the pre-analysis.

        Returns:
            Parsed pre-analysis, or ParseFailure when the output is unusable.

        Raises:
            LLMError: The provider call itself failed.
        """
        with tracer.start_span("case_reconstructor.reconstruct") as span:
            messages = build_messages(
                system=CASE_RECONSTRUCTION_PROMPT.format(schema=describe_schema("pre_analysis")),
                user=self.build_prompt(case),
            )
            response = await self.llm.acomplete(
                messages=messages,
                temperature=self.settings.reconstruction_temperature,
                max_tokens=self.settings.max_tokens,
                json_mode=True,
            )

            result = parse_model_response(response.content, PreAnalysis)
            if isinstance(result, Parsed):
                span.set_attribute("query_blocks", len(result.value.query_blocks))
            else:
                span.set_attribute("parse_failure", result.reason)
            return result
