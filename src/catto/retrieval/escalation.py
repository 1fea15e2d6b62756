"""
Query Escalation Controller

Chooses between the narrow and broad query from result counts, runs the
primary search, appends citation-network neighbours and caps the candidate
list before detail fetching.

Decision rule, in order:
1. narrow count >= minimum (5)           -> narrow
2. narrow < minimum and broad count > 0  -> broad
3. narrow < minimum and broad == 0       -> narrow (surface the empty result)
Counts between the "large" bounds (300 < n <= 500) also use narrow and are
logged as oversized.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from catto.config import Settings, get_settings
from catto.core.enums import BroadQueryPolicy, QueryStrength
from catto.core.schemas import CompiledQuery, ValidatedBlock
from catto.observability.metrics import metrics
from catto.observability.tracer import tracer
from catto.retrieval.pubmed_client import PubMedClient
from catto.retrieval.query_builder import narrow_clause

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateSet:
    """Outcome of escalation: the audited query and ordered candidate PMIDs."""

    query: CompiledQuery
    primary_ids: list[str] = field(default_factory=list)
    expansion_ids: list[str] = field(default_factory=list)
    candidate_ids: list[str] = field(default_factory=list)


def broad_clause(
    blocks: list[ValidatedBlock], policy: BroadQueryPolicy = BroadQueryPolicy.DROP_LAST
) -> tuple[str, int]:
    """
    Broad clause and the number of blocks it uses.

    drop_last: every block but the last when there are more than two blocks,
    otherwise the first block alone. first_block: the first block alone.
    """
    clauses = [b.clause for b in blocks if not b.is_empty]
    if not clauses:
        return "", 0
    if policy == BroadQueryPolicy.DROP_LAST and len(clauses) > 2:
        kept = clauses[:-1]
    else:
        kept = clauses[:1]
    return " AND ".join(kept), len(kept)


def choose_strength(
    narrow_count: int,
    broad_count: int,
    min_count: int = 5,
    max_count: int = 300,
    large_threshold: int = 500,
) -> QueryStrength:
    """Apply the escalation decision rule to a pair of counts."""
    if narrow_count < min_count:
        return QueryStrength.BROAD if broad_count > 0 else QueryStrength.NARROW
    if max_count < narrow_count <= large_threshold:
        logger.info("Narrow query returned %d hits; keeping it despite the size", narrow_count)
    return QueryStrength.NARROW


class EscalationController:
    """Run counts, the primary search and network expansion for validated blocks."""

    def __init__(
        self,
        client: PubMedClient,
        policy: BroadQueryPolicy | None = None,
        search_limit: int | None = None,
        candidate_cap: int | None = None,
        neighbors_per_seed: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = client
        self._policy = policy or settings.verification.broad_query_policy
        self._search_limit = search_limit or settings.retrieval.search_limit
        self._candidate_cap = candidate_cap or settings.retrieval.candidate_cap
        self._neighbors_per_seed = (
            neighbors_per_seed
            if neighbors_per_seed is not None
            else settings.retrieval.neighbors_per_seed
        )
        self._min_count = settings.retrieval.min_narrow_count
        self._max_count = settings.retrieval.max_narrow_count
        self._large_threshold = settings.retrieval.large_result_threshold

    async def compile(self, blocks: list[ValidatedBlock]) -> CompiledQuery:
        """Build narrow/broad clauses, count both and pick one."""
        narrow = narrow_clause(blocks)
        broad, broad_blocks = broad_clause(blocks, self._policy)

        if broad == narrow:
            narrow_count = await self._client.count(narrow)
            broad_count = narrow_count
        else:
            narrow_count, broad_count = await asyncio.gather(
                self._client.count(narrow), self._client.count(broad)
            )

        strength = choose_strength(
            narrow_count, broad_count, self._min_count, self._max_count, self._large_threshold
        )
        logger.info(
            "Query counts narrow=%d broad=%d -> %s", narrow_count, broad_count, strength.value
        )
        return CompiledQuery(
            narrow=narrow,
            broad=broad,
            chosen=narrow if strength == QueryStrength.NARROW else broad,
            strength=strength,
            narrow_count=narrow_count,
            broad_count=broad_count,
            block_count=len([b for b in blocks if not b.is_empty]),
            broad_block_count=broad_blocks,
        )

    async def run(self, blocks: list[ValidatedBlock]) -> CandidateSet:
        """
        Compile, search and expand.

        Raises:
            SourceUnavailableError: The primary search failed.
        """
        with tracer.start_span("escalation.run") as span:
            query = await self.compile(blocks)
            span.set_attribute("strength", query.strength.value)

            primary = await self._client.search(query.chosen, self._search_limit)
            expansion = await self._client.expand_by_network(primary, self._neighbors_per_seed)

            seen = set(primary)
            appended = []
            for pmid in expansion:
                if pmid not in seen:
                    seen.add(pmid)
                    appended.append(pmid)
            candidates = (primary + appended)[: self._candidate_cap]

            metrics.counter("catto.retrieval.candidates", len(candidates))
            span.set_attribute("primary_count", len(primary))
            span.set_attribute("expansion_count", len(appended))
            span.set_attribute("candidate_count", len(candidates))
            logger.info(
                "Candidates: %d primary + %d neighbours, using %d",
                len(primary),
                len(appended),
                len(candidates),
            )
            return CandidateSet(
                query=query,
                primary_ids=primary,
                expansion_ids=appended,
                candidate_ids=candidates,
            )
