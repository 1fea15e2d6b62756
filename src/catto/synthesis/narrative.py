"""
CATTO Narrative Writer

Optional model call #3: describe the knowledge gap and suggest novelty
sharpeners. The prompt is built from verified data only (search core,
verified citations with their confirmed quotes, verified max level); raw
model evaluations never reach it.

A failed call is not fatal: the report is produced without a narrative.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from catto.config import LLMSettings, get_settings
from catto.core.exceptions import LLMError
from catto.core.schemas import NoveltyNarrative, SearchCore, VerifiedCitation
from catto.llm.base import build_messages
from catto.llm.structured_outputs import describe_schema
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.parsing import Parsed, parse_model_response

if TYPE_CHECKING:
    from catto.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

NARRATIVE_PROMPT = """You are an expert clinical case report editor.
Using ONLY the verified literature summary below, write:
- knowledge_gap: 2-3 sentences on what the published reports do not yet describe
  about this case.
- novelty_sharpeners: up to 5 concrete points the author should emphasise to make
  the novelty of the case explicit.
Do not cite papers that are not listed. Output strictly in JSON format.

OUTPUT JSON SCHEMA:
{schema}"""


def _citation_summary(citation: VerifiedCitation) -> dict:
    return {
        "title": citation.title,
        "pmid": citation.pmid,
        "verified_level": citation.verified_level,
        "matched_elements": citation.matched_elements,
        "unmatched_elements": citation.unmatched_elements,
        "difference": citation.difference,
        "evidence_quotes": citation.evidence_quotes,
    }


class NarrativeWriter:
    """Generate the knowledge gap and novelty sharpeners."""

    def __init__(
        self, llm_provider: "BaseLLMProvider", settings: LLMSettings | None = None
    ) -> None:
        self.llm = llm_provider
        self.settings = settings or get_settings().llm

    def build_prompt(
        self,
        search_core: SearchCore,
        citations: list[VerifiedCitation],
        verified_max_level: int,
    ) -> str:
        payload = {
            "search_core": search_core.model_dump(),
            "verified_max_level": verified_max_level,
            "verified_citations": [_citation_summary(c) for c in citations],
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    async def write(
        self,
        search_core: SearchCore,
        citations: list[VerifiedCitation],
        verified_max_level: int,
    ) -> NoveltyNarrative | None:
        """Narrative, or None when the call or its output failed."""
        with tracer.start_span("narrative_writer.write") as span:
            span.set_attribute("citations", len(citations))
            messages = build_messages(
                system=NARRATIVE_PROMPT.format(schema=describe_schema("narrative")),
                user=self.build_prompt(search_core, citations, verified_max_level),
            )
            try:
                response = await self.llm.acomplete(
                    messages=messages,
                    temperature=self.settings.narrative_temperature,
                    max_tokens=self.settings.max_tokens,
                    json_mode=True,
                )
            except LLMError as e:
                logger.warning("Narrative generation failed, continuing without it: %s", e)
                metrics.counter("catto.narrative.failures", labels={"reason": "llm"})
                span.set_attribute("error", str(e))
                return None

            result = parse_model_response(response.content, NoveltyNarrative)
            if not isinstance(result, Parsed):
                metrics.counter("catto.narrative.failures", labels={"reason": "parse"})
                span.set_attribute("error", result.reason)
                return None
            return result.value
