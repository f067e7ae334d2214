"""
Biology tools: UniProt, RCSB PDB, NCBI Gene, STRING, Reactome.
"""
from __future__ import annotations

from typing import Any, Dict, List

import httpx

from sciencecollab.config import settings
from sciencecollab.models.schemas import ToolResult
from sciencecollab.tools.base import ToolAdapter
from sciencecollab.tools.literature import EUTILS_BASE_URL

UNIPROT_SEARCH_URL = "https://rest.uniprot.org/uniprotkb/search"
PDB_SEARCH_URL = "https://search.rcsb.org/rcsbsearch/v2/query"
STRING_API_URL = "https://string-db.org/api/json"
REACTOME_SEARCH_URL = "https://reactome.org/ContentService/search/query"

HUMAN_TAXON = 9606


class UniProtTool(ToolAdapter):
    name = "uniprot"
    label = "UniProt"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            UNIPROT_SEARCH_URL,
            params={
                "query": query,
                "format": "json",
                "size": self.max_results,
                "fields": "accession,protein_name,gene_names,organism_name,length,annotation_score",
            },
        )
        results = data.get("results") or []
        if not results:
            return ToolResult.empty(self.name, f'No proteins found for "{query}"')

        items = []
        for r in results:
            recommended = (r.get("proteinDescription") or {}).get("recommendedName") or {}
            genes = r.get("genes") or []
            items.append({
                "accession": r.get("primaryAccession"),
                "name": (recommended.get("fullName") or {}).get("value", "Unknown"),
                "gene": (genes[0].get("geneName") or {}).get("value", "") if genes else "",
                "organism": (r.get("organism") or {}).get("scientificName", ""),
                "length": (r.get("sequence") or {}).get("length", 0),
            })

        names = "; ".join(f'{p["name"]} ({p["accession"]})' for p in items)
        return self._result(items, f"Found {len(items)} proteins", names)


class PDBTool(ToolAdapter):
    """RCSB full-text search. Non-2xx responses mean "no structures", not failure."""

    name = "pdb"
    label = "PDB"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        body = {
            "query": {"type": "terminal", "service": "full_text", "parameters": {"value": query}},
            "return_type": "entry",
            "request_options": {"paginate": {"start": 0, "rows": self.max_results}},
        }
        resp = await client.post(PDB_SEARCH_URL, json=body)
        if resp.status_code != 200:
            return ToolResult.empty(self.name, f'No PDB structures for "{query}"')
        data = resp.json()

        items = [
            {"pdb_id": r["identifier"], "score": round(float(r["score"]), 3)}
            for r in (data.get("result_set") or [])[: self.max_results]
        ]
        if not items:
            return ToolResult.empty(self.name, f'No PDB structures for "{query}"')

        total = data.get("total_count", len(items))
        top = ", ".join(r["pdb_id"] for r in items)
        return self._result(items, f"Found {total} PDB structures. Top hits", top)


class NCBIGeneTool(ToolAdapter):
    name = "ncbi_gene"
    label = "NCBI Gene"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        params: Dict[str, Any] = {
            "db": "gene",
            "term": f"{query}[All Fields] AND Homo sapiens[Organism]",
            "retmax": self.max_results,
            "retmode": "json",
        }
        if settings.ncbi_api_key:
            params["api_key"] = settings.ncbi_api_key

        data = await self._get_json(client, f"{EUTILS_BASE_URL}/esearch.fcgi", params=params)
        ids: List[str] = data.get("esearchresult", {}).get("idlist", [])
        if not ids:
            return ToolResult.empty(self.name, f'No genes found for "{query}"')

        summary = await self._get_json(
            client,
            f"{EUTILS_BASE_URL}/esummary.fcgi",
            params={"db": "gene", "id": ",".join(ids), "retmode": "json"},
        )
        records = summary.get("result", {})

        items = []
        for gene_id in ids:
            gene = records.get(gene_id) or {}
            if not gene.get("name"):
                continue
            items.append({
                "gene_id": gene_id,
                "symbol": gene["name"],
                "name": gene.get("description", ""),
                "chromosome": gene.get("chromosome", ""),
                "summary": str(gene.get("summary") or "")[:150],
            })

        names = "; ".join(f'{g["symbol"]} ({g["name"]}, chr{g["chromosome"]})' for g in items)
        return self._result(items, f"Found {len(items)} genes", names)


class StringTool(ToolAdapter):
    """STRING: resolve the query to proteins, then fetch partners of the top hit."""

    name = "string"
    label = "STRING"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        proteins = await self._get_json(
            client,
            f"{STRING_API_URL}/get_string_ids",
            params={"identifiers": query, "species": HUMAN_TAXON, "limit": 3},
        )
        if not isinstance(proteins, list) or not proteins:
            return ToolResult.empty(self.name, f'No STRING proteins matching "{query}"')
        proteins = proteins[:3]

        partners: List[Dict[str, Any]] = []
        primary_id = proteins[0].get("stringId")
        if primary_id:
            # Partner lookup is best-effort; the protein hits stand on their own.
            try:
                partners = await self._get_json(
                    client,
                    f"{STRING_API_URL}/interaction_partners",
                    params={"identifiers": primary_id, "species": HUMAN_TAXON, "limit": 8},
                )
            except (httpx.HTTPError, ValueError):
                partners = []

        items: List[Dict[str, Any]] = [
            {
                "string_id": p.get("stringId"),
                "name": p.get("preferredName"),
                "annotation": str(p.get("annotation") or "")[:150],
                "kind": "query_protein",
            }
            for p in proteins
        ]
        items += [
            {
                "string_id": p.get("stringId_B"),
                "name": p.get("preferredName_B"),
                "score": p.get("score"),
                "kind": "interaction_partner",
            }
            for p in partners[:5]
        ]

        top = proteins[0]
        partner_names = ", ".join(
            f'{p.get("preferredName_B")} ({float(p.get("score") or 0):.3f})' for p in partners[:5]
        )
        headline = f'{top.get("preferredName") or query}'
        details = f'{str(top.get("annotation") or "")[:120]}. Top interactions: {partner_names}'
        return self._result(items, headline, details)


class ReactomeTool(ToolAdapter):
    name = "reactome"
    label = "Reactome"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            REACTOME_SEARCH_URL,
            params={"query": query, "types": "Pathway", "rows": 8, "format": "json"},
        )
        groups = data.get("results") or []
        pathways = next((g.get("entries") or [] for g in groups if g.get("typeName") == "Pathway"), [])
        if not pathways:
            return ToolResult.empty(self.name, f'No Reactome pathways for "{query}"')

        items = [
            {
                "id": p.get("stId"),
                "name": p.get("name"),
                "species": (p.get("species") or ["Human"])[0],
                "summary": str(p.get("summation") or "")[:150],
            }
            for p in pathways[:6]
        ]
        names = "; ".join(str(p["name"]) for p in items)
        total = data.get("total", len(pathways))
        return self._result(items, f"Found {total} Reactome pathways", names)
