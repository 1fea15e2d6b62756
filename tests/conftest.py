"""
CATTO Test Configuration

Shared fixtures and test doubles.
"""

from __future__ import annotations

import json
import os
from typing import Any, Generator

import pytest

# Set test environment before any imports
os.environ.setdefault("CATTO_DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("NCBI_EMAIL", "test@example.com")

from catto.core.schemas import CaseInput, PaperRecord  # noqa: E402
from catto.llm.base import BaseLLMProvider, LLMResponse, Message  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset settings and metrics around each test."""
    from catto.config import reset_settings
    from catto.observability.metrics import reset_metrics

    reset_settings()
    reset_metrics()
    yield
    reset_settings()
    reset_metrics()


# =============================================================================
# DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_case() -> CaseInput:
    return CaseInput(
        submitter_email="author@example.org",
        main_event_1line="Airway fire during tracheostomy with electrocautery",
        condition_event="Airway fire",
        anatomy="Trachea",
        trigger_exposure="Electrocautery in oxygen-enriched atmosphere",
        timing="Intraoperative",
        host_factors="COPD",
        key_findings="Endotracheal tube cuff ignition",
        management_outcome="Tube removed, full recovery",
        novelty_differences="FiO2 already reduced to 0.3",
    )


@pytest.fixture
def sample_papers() -> list[PaperRecord]:
    """Five papers in [P1]..[P5] order."""
    return [
        PaperRecord(
            pmid="30000001",
            title="Operating room fires during tracheostomy",
            abstract=(
                "We describe an airway fire that occurred during tracheostomy when "
                "electrocautery was used to enter the trachea under high inspired oxygen."
            ),
            journal="Anesth Analg",
            year="2019",
            doi="10.1000/or-fire",
        ),
        PaperRecord(
            pmid="30000002",
            title="Endotracheal tube cuff rupture",
            abstract="A cuff rupture was noted after prolonged intubation in the ICU.",
            journal="J Clin Anesth",
            year="2020",
        ),
        PaperRecord(
            pmid="30000003",
            title="Surgical fires: a review",
            abstract="Surgical fires remain a rare but devastating complication.",
            year="2018",
        ),
        PaperRecord(pmid="30000004", title="Case without abstract"),
        PaperRecord(
            pmid="30000005",
            title="Laser airway surgery complications",
            abstract="Laser-induced ignition of the endotracheal tube was reported in two patients.",
            year="2021",
        ),
    ]


# =============================================================================
# TEST DOUBLES
# =============================================================================


class FakeLLM(BaseLLMProvider):
    """Provider returning scripted responses in order.

    A scripted item may be a dict (sent as JSON), a string (sent verbatim) or
    an exception instance (raised).
    """

    def __init__(self, script: list[Any]) -> None:
        super().__init__(model="fake-model")
        self._script = list(script)
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append(
            {"messages": messages, "json_mode": json_mode, "temperature": temperature}
        )
        if not self._script:
            raise AssertionError("FakeLLM called more times than scripted")
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        content = json.dumps(item) if isinstance(item, dict) else item
        return LLMResponse(content=content, model=self.model, provider=self.name)


class FakeMesh:
    """Vocabulary service accepting a fixed set of descriptors."""

    def __init__(self, valid: set[str] | None = None) -> None:
        self.valid = {t.casefold() for t in (valid or set())}
        self.lookups: list[str] = []

    async def is_valid_descriptor(self, term: str) -> bool:
        self.lookups.append(term)
        return term.casefold() in self.valid

    async def close(self) -> None:
        pass


class FakePubMed:
    """In-memory stand-in for PubMedClient."""

    def __init__(
        self,
        counts: dict[str, int] | None = None,
        search_results: list[str] | None = None,
        neighbours: list[str] | None = None,
        papers: list[PaperRecord] | None = None,
        search_error: Exception | None = None,
    ) -> None:
        self.counts = counts or {}
        self.search_results = search_results or []
        self.neighbours = neighbours or []
        self.papers = papers or []
        self.search_error = search_error
        self.count_queries: list[str] = []
        self.searches: list[tuple[str, int]] = []
        self.fetched: list[list[str]] = []

    async def count(self, query: str) -> int:
        self.count_queries.append(query)
        return self.counts.get(query, 0)

    async def search(self, query: str, limit: int) -> list[str]:
        self.searches.append((query, limit))
        if self.search_error is not None:
            raise self.search_error
        return list(self.search_results[:limit])

    async def expand_by_network(self, seeds: list[str], per_seed_limit: int) -> list[str]:
        return [pmid for pmid in self.neighbours if pmid not in seeds]

    async def fetch_details(self, ids: list[str]) -> list[PaperRecord]:
        self.fetched.append(list(ids))
        by_id = {p.pmid: p for p in self.papers}
        return [by_id[i] for i in ids if i in by_id]

    async def close(self) -> None:
        pass


@pytest.fixture
def pre_analysis_payload() -> dict:
    """Model call #1 output with two facets."""
    return {
        "reconstructed_catto": {
            "condition_event": "Airway fire",
            "anatomy": "Trachea",
            "trigger_exposure": "Electrocautery",
            "timing": "Intraoperative",
        },
        "search_core": {
            "mandatory": "Airway fire",
            "structural": "Trachea",
            "contextual": "Electrocautery with oxygen",
            "modifier": "Intraoperative",
        },
        "query_blocks": [
            {
                "concept": "Condition/Event",
                "mesh_terms": ["Fires[mh]", "Airway Fire"],
                "free_terms": ["airway fire"],
            },
            {"concept": "Anatomy", "mesh_terms": ["Tracheostomy"], "free_terms": []},
        ],
    }
