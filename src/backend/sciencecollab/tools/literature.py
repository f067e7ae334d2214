"""
Literature tools: PubMed, Europe PMC, CrossRef, arXiv, Semantic Scholar.

Every item carries a ``title`` and a ``year`` so the figure synthesizer can
bucket publications by year.
"""
from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List

import httpx

from sciencecollab.config import settings
from sciencecollab.models.schemas import ToolResult
from sciencecollab.tools.base import ToolAdapter

EUTILS_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
EUROPEPMC_SEARCH_URL = "https://www.ebi.ac.uk/europepmc/webservices/rest/search"
CROSSREF_WORKS_URL = "https://api.crossref.org/works"
ARXIV_QUERY_URL = "https://export.arxiv.org/api/query"
SEMANTIC_SCHOLAR_SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"

ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


class PubMedTool(ToolAdapter):
    """NCBI E-utilities: esearch for PMIDs, then esummary for metadata."""

    name = "pubmed"
    label = "PubMed"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        params: Dict[str, Any] = {
            "db": "pubmed",
            "term": query,
            "retmax": self.max_results,
            "retmode": "json",
        }
        if settings.ncbi_api_key:
            params["api_key"] = settings.ncbi_api_key

        data = await self._get_json(client, f"{EUTILS_BASE_URL}/esearch.fcgi", params=params)
        ids: List[str] = data.get("esearchresult", {}).get("idlist", [])
        if not ids:
            return ToolResult.empty(self.name, f'No papers found for "{query}"')

        summary_params = {"db": "pubmed", "id": ",".join(ids), "retmode": "json"}
        if settings.ncbi_api_key:
            summary_params["api_key"] = settings.ncbi_api_key
        summary = await self._get_json(client, f"{EUTILS_BASE_URL}/esummary.fcgi", params=summary_params)
        records = summary.get("result", {})

        items = []
        for pmid in ids:
            paper = records.get(pmid)
            if not paper or not paper.get("title"):
                continue
            authors = paper.get("authors") or []
            items.append({
                "pmid": pmid,
                "title": paper["title"],
                "authors": authors[0].get("name", "Unknown") if authors else "Unknown",
                "year": str(paper.get("pubdate", "")).split(" ")[0],
                "journal": paper.get("fulljournalname", ""),
            })

        titles = "; ".join(f'"{p["title"]}" ({p["year"]})' for p in items)
        return self._result(items, f"Found {len(items)} papers", titles)


class EuropePMCTool(ToolAdapter):
    name = "europepmc"
    label = "Europe PMC"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            EUROPEPMC_SEARCH_URL,
            params={
                "query": query,
                "format": "json",
                "pageSize": self.max_results,
                "resultType": "core",
                "sort": "CITED",
            },
        )
        results = data.get("resultList", {}).get("result", [])
        if not results:
            return ToolResult.empty(self.name, f'No articles found for "{query}"')

        items = [
            {
                "pmid": r.get("pmid"),
                "title": str(r.get("title") or "Unknown"),
                "year": str(r.get("pubYear") or ""),
                "source": r.get("source"),
                "citedByCount": int(r.get("citedByCount") or 0),
                "authorString": str(r.get("authorString") or "")[:60],
            }
            for r in results
        ]
        titles = "; ".join(f'"{p["title"]}" (cited {p["citedByCount"]}x)' for p in items)
        hits = data.get("hitCount", len(items))
        return self._result(items, f"Found {hits} articles (showing {len(items)})", titles)


class CrossRefTool(ToolAdapter):
    name = "crossref"
    label = "CrossRef"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            CROSSREF_WORKS_URL,
            params={
                "query": query,
                "rows": self.max_results,
                "select": "DOI,title,author,published,is-referenced-by-count,container-title",
                "mailto": settings.contact_email,
            },
        )
        raw = data.get("message", {}).get("items", [])
        if not raw:
            return ToolResult.empty(self.name, f'No papers found for "{query}"')

        items = []
        for r in raw:
            date_parts = (r.get("published") or {}).get("date-parts") or [[None]]
            authors = r.get("author") or []
            items.append({
                "doi": r.get("DOI"),
                "title": (r.get("title") or ["Unknown"])[0],
                "journal": (r.get("container-title") or [""])[0],
                "year": date_parts[0][0] if date_parts and date_parts[0] else None,
                "citations": int(r.get("is-referenced-by-count") or 0),
                "firstAuthor": authors[0].get("family", "") if authors else "",
            })

        titles = "; ".join(f'"{p["title"]}" ({p["year"]}, cited {p["citations"]}x)' for p in items)
        return self._result(items, f"Found {len(items)} papers", titles)


class ArXivTool(ToolAdapter):
    """arXiv export API (Atom XML)."""

    name = "arxiv"
    label = "ArXiv"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        resp = await client.get(
            ARXIV_QUERY_URL,
            params={
                "search_query": f"all:{query}",
                "max_results": self.max_results,
                "sortBy": "relevance",
                "sortOrder": "descending",
            },
        )
        resp.raise_for_status()
        root = ET.fromstring(resp.text)

        items = []
        for entry in root.findall("atom:entry", ATOM_NS):
            published = (entry.findtext("atom:published", "", ATOM_NS) or "")[:10]
            entry_id = entry.findtext("atom:id", "", ATOM_NS) or ""
            items.append({
                "title": _squash(entry.findtext("atom:title", "", ATOM_NS)),
                "summary": _squash(entry.findtext("atom:summary", "", ATOM_NS))[:200],
                "published": published,
                "arxivId": entry_id.rsplit("/", 1)[-1],
                "year": published[:4],
            })

        if not items:
            return ToolResult.empty(self.name, f'No preprints found for "{query}"')
        titles = "; ".join(f'"{p["title"]}" ({p["published"]})' for p in items)
        return self._result(items, f"Found {len(items)} preprints", titles)


class SemanticScholarTool(ToolAdapter):
    name = "semanticscholar"
    label = "Semantic Scholar"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            SEMANTIC_SCHOLAR_SEARCH_URL,
            params={
                "query": query,
                "fields": "title,year,authors,citationCount,venue",
                "limit": self.max_results,
            },
        )
        papers = data.get("data") or []
        if not papers:
            return ToolResult.empty(self.name, f'No papers found for "{query}"')

        items = []
        for p in papers:
            authors = p.get("authors") or []
            items.append({
                "title": str(p.get("title") or "Unknown"),
                "year": p.get("year"),
                "citations": int(p.get("citationCount") or 0),
                "venue": str(p.get("venue") or ""),
                "firstAuthor": authors[0].get("name", "") if authors else "",
            })

        titles = "; ".join(f'"{p["title"]}" ({p["year"]}, cited {p["citations"]}x)' for p in items)
        total = data.get("total", len(items))
        return self._result(items, f"Found {total} papers (showing {len(items)})", titles)
