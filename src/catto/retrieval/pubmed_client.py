"""
PubMed Client

Async client for the NCBI E-utilities API.

Implements:
- ESearch: relevance-ordered PMIDs, and result counts for query auditing
- ELink: citation-network neighbours (pubmed_pubmed, neighbor_score)
- EFetch: article metadata as canonical PaperRecord values
- Rate limiting per NCBI guidelines (3/sec without key, 10/sec with key)

Documentation: https://www.ncbi.nlm.nih.gov/books/NBK25501/
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
import xml.etree.ElementTree as ET
from typing import Any, Iterable

import httpx
from pydantic import ValidationError

from catto.config import RetrievalSettings, get_settings
from catto.core.exceptions import SourceUnavailableError
from catto.core.schemas import NOT_AVAILABLE, UNKNOWN_YEAR, PaperRecord
from catto.observability.metrics import metrics
from catto.observability.tracer import SpanKind, get_tracer

logger = logging.getLogger(__name__)

_YEAR = re.compile(r"\d{4}")


class PubMedClient:
    """
    Client for PubMed E-utilities.

    Usage:
        async with PubMedClient() as client:
            pmids = await client.search('"Airway Obstruction"[mh]', 100)
            papers = await client.fetch_details(pmids)

    Only search() and fetch_details() raise; count() and expand_by_network()
    degrade to 0 and [] because they are auditing and best-effort steps.
    """

    def __init__(
        self,
        api_key: str | None = None,
        email: str | None = None,
        tool: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        request_interval: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: RetrievalSettings | None = None,
    ) -> None:
        """
        Initialize PubMed client.

        Args:
            api_key: NCBI API key (increases rate limit).
            email: Contact email (required by NCBI).
            tool: Tool name reported to NCBI.
            base_url: E-utilities base URL.
            timeout: HTTP timeout in seconds.
            request_interval: Override the minimum delay between requests.
            http_client: Shared client; the caller keeps ownership.
            settings: Retrieval settings; defaults to the process settings.
        """
        settings = settings or get_settings().retrieval
        self._api_key = api_key or settings.ncbi_api_key
        self._email = email or settings.ncbi_email
        self._tool = tool or settings.ncbi_tool
        self._base_url = (base_url or settings.eutils_base_url).rstrip("/")
        self._seed_limit = settings.expansion_seed_limit

        if request_interval is None:
            request_interval = 0.1 if self._api_key else 0.34
        self._request_interval = request_interval
        self._last_request = 0.0
        self._throttle = asyncio.Lock()

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.http_timeout)
        self._tracer = get_tracer("catto.retrieval.pubmed")

    async def __aenter__(self) -> PubMedClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _rate_limit(self) -> None:
        async with self._throttle:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self._request_interval:
                await asyncio.sleep(self._request_interval - elapsed)
            self._last_request = time.monotonic()

    def _build_params(self, **kwargs: Any) -> dict[str, Any]:
        """Build request parameters, dropping None values."""
        params: dict[str, Any] = {"db": "pubmed", "tool": self._tool}
        if self._api_key:
            params["api_key"] = self._api_key
        if self._email:
            params["email"] = self._email
        params.update({k: v for k, v in kwargs.items() if v is not None})
        return params

    async def _get(self, endpoint: str, params: dict[str, Any]) -> httpx.Response:
        await self._rate_limit()
        metrics.counter("catto.pubmed.requests", labels={"endpoint": endpoint})
        response = await self._client.get(f"{self._base_url}/{endpoint}.fcgi", params=params)
        response.raise_for_status()
        return response

    async def search(self, query: str, limit: int) -> list[str]:
        """
        Relevance-ordered PMIDs for a query.

        Raises:
            SourceUnavailableError: The request failed or the response was unreadable.
        """
        with self._tracer.start_span("search", SpanKind.CLIENT, {"query": query}) as span:
            params = self._build_params(
                term=query, retmode="json", sort="relevance", retmax=str(limit)
            )
            try:
                response = await self._get("esearch", params)
                result = response.json()["esearchresult"]
                pmids = [str(pmid) for pmid in result["idlist"]]
            except httpx.HTTPStatusError as e:
                raise SourceUnavailableError(
                    f"PubMed search failed: {e}", status_code=e.response.status_code
                ) from e
            except httpx.HTTPError as e:
                raise SourceUnavailableError(f"PubMed search failed: {e}") from e
            except (ValueError, KeyError, TypeError) as e:
                raise SourceUnavailableError(f"Unreadable PubMed search response: {e}") from e

            span.set_attribute("result_count", len(pmids))
            return pmids

    async def count(self, query: str) -> int:
        """Number of hits for a query; 0 on any failure."""
        with self._tracer.start_span("count", SpanKind.CLIENT, {"query": query}) as span:
            params = self._build_params(term=query, retmode="json", retmax="0")
            try:
                response = await self._get("esearch", params)
                total = int(response.json()["esearchresult"]["count"])
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                logger.warning("PubMed count failed for %r: %s", query, e)
                span.set_attribute("error", str(e))
                return 0

            span.set_attribute("count", total)
            return total

    async def expand_by_network(self, seeds: Iterable[str], per_seed_limit: int) -> list[str]:
        """
        Citation-network neighbours of the first seeds, excluding the seeds.

        At most five seeds are sent (URL length); up to per_seed_limit
        neighbours are taken per seed in score order. Returns [] on failure.
        """
        seeds = [str(s) for s in seeds][: self._seed_limit]
        if not seeds or per_seed_limit <= 0:
            return []

        with self._tracer.start_span("expand", SpanKind.CLIENT, {"seeds": len(seeds)}) as span:
            # Repeated id parameters give one linkset per seed
            params = self._build_params(
                dbfrom="pubmed",
                linkname="pubmed_pubmed",
                cmd="neighbor_score",
                retmode="json",
                id=seeds,
            )
            try:
                response = await self._get("elink", params)
                linksets = response.json().get("linksets") or []
                neighbours = self._collect_neighbours(linksets, per_seed_limit)
            except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("PubMed neighbour expansion failed: %s", e)
                span.set_attribute("error", str(e))
                return []

            excluded = set(seeds)
            expanded: list[str] = []
            for pmid in neighbours:
                if pmid not in excluded:
                    excluded.add(pmid)
                    expanded.append(pmid)

            span.set_attribute("expanded_count", len(expanded))
            return expanded

    @staticmethod
    def _collect_neighbours(linksets: list[dict[str, Any]], per_seed_limit: int) -> list[str]:
        neighbours: list[str] = []
        for linkset in linksets:
            for linksetdb in linkset.get("linksetdbs") or []:
                if linksetdb.get("linkname") != "pubmed_pubmed":
                    continue
                for link in (linksetdb.get("links") or [])[:per_seed_limit]:
                    # neighbor_score returns {"id": ..., "score": ...}; plain neighbor returns ids
                    pmid = link.get("id") if isinstance(link, dict) else link
                    if pmid:
                        neighbours.append(str(pmid))
        return neighbours

    async def fetch_details(self, ids: list[str]) -> list[PaperRecord]:
        """
        Batch-fetch article metadata.

        Articles without a PMID or title are skipped rather than aborting the batch.

        Raises:
            SourceUnavailableError: The batch request failed or returned invalid XML.
        """
        if not ids:
            return []

        with self._tracer.start_span("fetch_details", SpanKind.CLIENT, {"count": len(ids)}) as span:
            params = self._build_params(id=",".join(ids), retmode="xml", rettype="abstract")
            try:
                response = await self._get("efetch", params)
                root = ET.fromstring(response.text)
            except httpx.HTTPError as e:
                raise SourceUnavailableError(f"PubMed fetch failed: {e}") from e
            except ET.ParseError as e:
                raise SourceUnavailableError(f"Failed to parse PubMed XML: {e}") from e

            articles = root.findall(".//PubmedArticle")
            records = [r for r in (self._parse_article(a) for a in articles) if r is not None]

            span.set_attribute("article_count", len(articles))
            span.set_attribute("record_count", len(records))
            if len(records) < len(articles):
                logger.info("Dropped %d unparseable PubMed articles", len(articles) - len(records))
            return records

    @staticmethod
    def _text(elem: ET.Element | None) -> str:
        """Full text content, including inline markup such as <i>."""
        if elem is None:
            return ""
        return " ".join("".join(elem.itertext()).split())

    def _parse_article(self, article: ET.Element) -> PaperRecord | None:
        """Parse one PubmedArticle; None when mandatory fields are missing."""
        pmid = self._text(article.find("MedlineCitation/PMID"))
        title = self._text(article.find("MedlineCitation/Article/ArticleTitle"))
        if not pmid or not title:
            return None

        abstract = " ".join(
            part
            for part in (self._text(a) for a in article.findall(".//Abstract/AbstractText"))
            if part
        )
        journal = self._text(article.find(".//Journal/Title")) or NOT_AVAILABLE

        try:
            return PaperRecord(
                pmid=pmid,
                title=title,
                abstract=abstract,
                journal=journal,
                year=self._parse_year(article),
                doi=self._parse_doi(article),
            )
        except ValidationError as e:
            logger.debug("Skipping PubMed article %s: %s", pmid, e)
            return None

    def _parse_year(self, article: ET.Element) -> str:
        pub_date = article.find(".//Journal/JournalIssue/PubDate")
        if pub_date is None:
            return UNKNOWN_YEAR
        year = (pub_date.findtext("Year") or "").strip()
        if year:
            return year
        found = _YEAR.search(pub_date.findtext("MedlineDate") or "")
        return found.group(0) if found else UNKNOWN_YEAR

    def _parse_doi(self, article: ET.Element) -> str | None:
        for article_id in article.findall("PubmedData/ArticleIdList/ArticleId"):
            if article_id.get("IdType") == "doi" and article_id.text:
                return article_id.text.strip()
        for location in article.findall(".//Article/ELocationID"):
            if location.get("EIdType") == "doi" and location.text:
                return location.text.strip()
        return None
