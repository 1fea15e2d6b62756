"""
Query Builder & Validator

Turns the model's loose search facets into validated PubMed boolean clauses.

Invariants:
- A controlled term reaches the query as "term"[mh] only after an exact-match
  lookup confirmed it. Lookup errors count as "not found" (fail closed).
- Rejected controlled terms are demoted to "term"[tiab], never dropped.
- Block order is preserved; empty blocks are omitted.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Protocol

from catto.core.exceptions import QueryConstructionError
from catto.core.schemas import QueryBlock, ValidatedBlock
from catto.observability.tracer import tracer

logger = logging.getLogger(__name__)

_TAG = re.compile(r"\[[^\]]*\]")
_QUOTES = "\"'“”‘’"


class VocabularyService(Protocol):
    """Anything that can confirm a controlled-vocabulary heading."""

    async def is_valid_descriptor(self, term: str) -> bool: ...


class VocabularyCache:
    """
    Per-run term validity cache.

    Keyed by cleaned, case-folded term text. Write-once per key: the first
    recorded answer wins and later writes are ignored.
    """

    def __init__(self) -> None:
        self._entries: dict[str, bool] = {}

    @staticmethod
    def key(term: str) -> str:
        return term.casefold()

    def get(self, term: str) -> bool | None:
        return self._entries.get(self.key(term))

    def record(self, term: str, valid: bool) -> bool:
        """Store a lookup result unless one exists; return the stored value."""
        return self._entries.setdefault(self.key(term), valid)

    def __contains__(self, term: str) -> bool:
        return self.key(term) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def clean_term(raw: str) -> str:
    """Strip field tags such as [mh] or [MeSH Terms] and surrounding quotes."""
    text = _TAG.sub("", raw)
    text = " ".join(text.split())
    return text.strip(_QUOTES + " ").strip()


def _quoted(term: str) -> str:
    # Embedded double quotes would break the PubMed phrase syntax
    return '"' + term.replace('"', "") + '"'


def _unique(terms: list[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for term in terms:
        if term and term.casefold() not in seen:
            seen.add(term.casefold())
            unique.append(term)
    return unique


class QueryBuilder:
    """
    Validate query blocks against a vocabulary service.

    Usage:
        builder = QueryBuilder(mesh_client, VocabularyCache())
        blocks = await builder.build(pre_analysis.query_blocks)
        narrow = narrow_clause(blocks)
    """

    def __init__(self, vocabulary: VocabularyService, cache: VocabularyCache | None = None) -> None:
        self._vocabulary = vocabulary
        self._cache = cache if cache is not None else VocabularyCache()

    @property
    def cache(self) -> VocabularyCache:
        return self._cache

    async def _lookup(self, term: str) -> bool:
        cached = self._cache.get(term)
        if cached is not None:
            return cached
        try:
            valid = bool(await self._vocabulary.is_valid_descriptor(term))
        except Exception as e:
            logger.warning("Vocabulary lookup raised for %r, treating as invalid: %s", term, e)
            valid = False
        return self._cache.record(term, valid)

    async def validate_block(self, block: QueryBlock) -> ValidatedBlock:
        """Validate one block's controlled terms and build its clause."""
        candidates = _unique([clean_term(t) for t in block.mesh_terms])
        # Lookups are independent; the cache makes the outcome order-free
        results = await asyncio.gather(*(self._lookup(t) for t in candidates))
        validity = dict(zip(candidates, results))

        controlled = [t for t in candidates if validity[t]]
        demoted = [t for t in candidates if not validity[t]]
        free = _unique([clean_term(t) for t in block.free_terms] + demoted)

        controlled_clause = " OR ".join(f"{_quoted(t)}[mh]" for t in controlled)
        free_text_clause = " OR ".join(f"{_quoted(t)}[tiab]" for t in free)
        sides = [side for side in (controlled_clause, free_text_clause) if side]

        if demoted:
            logger.info("Block %r: demoted %s to free text", block.concept, demoted)

        return ValidatedBlock(
            concept=block.concept,
            term_validity=validity,
            controlled_terms=controlled,
            free_terms=free,
            controlled_clause=controlled_clause,
            free_text_clause=free_text_clause,
            clause=f"({' OR '.join(sides)})" if sides else "",
        )

    async def build(self, blocks: list[QueryBlock]) -> list[ValidatedBlock]:
        """
        Validate all blocks in order and drop the empty ones.

        Raises:
            QueryConstructionError: No block produced a clause.
        """
        with tracer.start_span("query_builder.build", attributes={"blocks": len(blocks)}) as span:
            validated = []
            for block in blocks:
                result = await self.validate_block(block)
                if result.is_empty:
                    logger.info("Dropping empty query block %r", block.concept)
                    continue
                validated.append(result)

            span.set_attribute("validated_blocks", len(validated))
            span.set_attribute("cached_terms", len(self._cache))
            if not validated:
                raise QueryConstructionError("The model proposed no usable search terms")
            return validated


def narrow_clause(blocks: list[ValidatedBlock]) -> str:
    """AND of every non-empty block clause, in block order."""
    return " AND ".join(b.clause for b in blocks if not b.is_empty)
