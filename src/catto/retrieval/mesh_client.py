"""
MeSH Lookup Client

Exact-match descriptor lookup against the NLM MeSH RDF lookup API:
https://id.nlm.nih.gov/mesh/lookup/descriptor?label=<term>&match=exact

A term is valid only when the service answers with at least one descriptor.
Every failure is reported as "invalid" so an unverified heading never reaches
a query.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from catto.config import RetrievalSettings, get_settings
from catto.observability.metrics import metrics
from catto.observability.tracer import SpanKind, get_tracer

logger = logging.getLogger(__name__)


class MeshClient:
    """Vocabulary service used by the query builder."""

    def __init__(
        self,
        lookup_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: RetrievalSettings | None = None,
    ) -> None:
        settings = settings or get_settings().retrieval
        self._lookup_url = lookup_url or settings.mesh_lookup_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.http_timeout)
        self._tracer = get_tracer("catto.retrieval.mesh")

    async def __aenter__(self) -> MeshClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def is_valid_descriptor(self, term: str) -> bool:
        """True only for a confirmed exact descriptor match."""
        if not term:
            return False

        with self._tracer.start_span("lookup", SpanKind.CLIENT, {"term": term}) as span:
            metrics.counter("catto.mesh.lookups")
            try:
                response = await self._client.get(
                    self._lookup_url, params={"label": term, "match": "exact", "limit": "1"}
                )
                response.raise_for_status()
                matches = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("MeSH lookup failed for %r: %s", term, e)
                metrics.counter("catto.mesh.lookup_failures")
                span.set_attribute("error", str(e))
                return False

            valid = isinstance(matches, list) and len(matches) > 0
            span.set_attribute("valid", valid)
            return valid
