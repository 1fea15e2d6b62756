"""
CATTO Novelty Evaluator

Model call #2: rate each retrieved paper against the search core on the
CATTO scale and return verbatim evidence quotes for each rating.

The model only ever sees papers as [P1]..[Pn]; identifiers, titles and links
are re-attached from trusted records after verification.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from catto.config import LLMSettings, get_settings
from catto.core.schemas import EvaluationResponse, PaperRecord, SearchCore
from catto.llm.base import build_messages
from catto.llm.structured_outputs import describe_schema
from catto.observability.tracer import tracer
from catto.parsing import ParseFailure, Parsed, parse_model_response

if TYPE_CHECKING:
    from catto.llm.base import BaseLLMProvider

NO_ABSTRACT = "No abstract available"


EVALUATION_PROMPT = """You are an expert Anesthesiologist.
Perform STEPS 4, 5, 6 based on the Search Core and Retrieved Papers.
The papers are provided with IDs [P1], [P2], etc.
You must refer to papers ONLY by their ID (e.g., [P1]).
Output strictly in JSON format.

STEP 4: CATTO Level Evaluation
Evaluate EACH relevant paper's match level (1-4).
- Level 1: Condition/Event matches: the abstract describes the same condition or event.
- Level 2: + Anatomy matches: the anatomy is also consistent.
- Level 3: + Trigger/Exposure matches: the trigger or context is also consistent.
- Level 4: + Timing matches: the timing (intra-op/post-op phase) is also consistent.

STEP 5: Novelty Assessment
Determine "max_level_found" (integer 0-4), the highest match found in the
literature (0 means no matches found).

STEP 6: Quick Literature Check
Select the papers that support your evaluation (highest matches or close calls)
and return "paper_evaluations" for each selected paper.

IMPORTANT: You MUST provide "evidence_quotes" for EACH paper evaluation.
- evidence_quotes: 1-2 short phrases DIRECTLY COPIED from the paper's abstract.
- Phrases must be 20-120 characters.
- NO paraphrasing. Quotes are checked by exact substring match.
- If no direct evidence exists, return an empty array [].
- DO NOT assign a high match level (3-4) without clear quote evidence. Be conservative.

In "reasoning_with_ids", WHEN CITING PAPERS, YOU MUST USE THE FORMAT [P1], [P2], etc.

OUTPUT JSON SCHEMA:
{schema}"""


def format_papers(papers: list[PaperRecord]) -> str:
    """Render papers as the [P#] listing shown to the model."""
    return "\n\n".join(
        f"[P{i}] Abstract: {paper.abstract or NO_ABSTRACT}" for i, paper in enumerate(papers, 1)
    )


class NoveltyEvaluator:
    """Run the per-paper evaluation call."""

    def __init__(
        self, llm_provider: "BaseLLMProvider", settings: LLMSettings | None = None
    ) -> None:
        self.llm = llm_provider
        self.settings = settings or get_settings().llm

    def build_prompt(self, search_core: SearchCore, papers: list[PaperRecord]) -> str:
        core_json = json.dumps(search_core.model_dump(), indent=2, ensure_ascii=False)
        return (
            f"SEARCH CORE:\n{core_json}\n\n"
            f"RETRIEVED PAPERS (Top candidates):\n{format_papers(papers)}"
        )

    async def evaluate(
        self, search_core: SearchCore, papers: list[PaperRecord]
    ) -> Parsed[EvaluationResponse] | ParseFailure:
        """
        Evaluate a non-empty paper list.

        Raises:
            ValueError: papers is empty (the caller short-circuits that case).
            LLMError: The provider call failed.
        """
        if not papers:
            raise ValueError("NoveltyEvaluator.evaluate requires at least one paper")

        with tracer.start_span("novelty_evaluator.evaluate") as span:
            span.set_attribute("paper_count", len(papers))
            messages = build_messages(
                system=EVALUATION_PROMPT.format(schema=describe_schema("evaluation")),
                user=self.build_prompt(search_core, papers),
            )
            response = await self.llm.acomplete(
                messages=messages,
                temperature=self.settings.evaluation_temperature,
                max_tokens=self.settings.max_tokens,
                json_mode=True,
            )

            result = parse_model_response(response.content, EvaluationResponse)
            if isinstance(result, Parsed):
                span.set_attribute("evaluations", len(result.value.paper_evaluations))
                span.set_attribute("asserted_max_level", result.value.max_level_found or 0)
            return result
