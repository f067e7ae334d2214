"""
Chemistry and pharmacology tools: ChEMBL, PubChem, Open Targets, KEGG.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from sciencecollab.models.schemas import ToolResult
from sciencecollab.tools.base import ToolAdapter

CHEMBL_API_URL = "https://www.ebi.ac.uk/chembl/api/data"
PUBCHEM_COMPOUND_URL = "https://pubchem.ncbi.nlm.nih.gov/rest/pug/compound/name"
OPENTARGETS_GRAPHQL_URL = "https://api.platform.opentargets.org/api/v4/graphql"
KEGG_FIND_URL = "https://rest.kegg.jp/find"

OPENTARGETS_SEARCH_QUERY = """
query($q: String!, $n: Int!) {
  search(queryString: $q, entityNames: ["target", "disease", "drug"], page: {index: 0, size: $n}) {
    hits { id name entity description score }
  }
}
"""


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ChEMBLTool(ToolAdapter):
    """ChEMBL targets matching the query, topped up with named molecules."""

    name = "chembl"
    label = "ChEMBL"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            f"{CHEMBL_API_URL}/target/search",
            params={"q": query, "format": "json", "limit": self.max_results},
        )
        targets = data.get("targets") or []

        molecules: List[Dict[str, Any]] = []
        resp = await client.get(
            f"{CHEMBL_API_URL}/molecule",
            params={"pref_name__icontains": query, "format": "json", "limit": self.max_results},
        )
        if resp.status_code == 200:
            molecules = resp.json().get("molecules") or []

        target_items = [
            {
                "chembl_id": t.get("target_chembl_id"),
                "name": t.get("pref_name") or "Unknown target",
                "type": t.get("target_type"),
                "organism": t.get("organism"),
                "kind": "target",
                "mw": None,
                "alogp": None,
            }
            for t in targets
        ]
        mol_items = []
        for m in molecules:
            props = m.get("molecule_properties") or {}
            mol_items.append({
                "chembl_id": m.get("molecule_chembl_id"),
                "name": m.get("pref_name") or "Unknown compound",
                "mw": _as_float(props.get("full_mwt")),
                "alogp": _as_float(props.get("alogp")),
                "type": m.get("molecule_type"),
                "kind": "molecule",
            })

        n_targets = min(3, len(target_items))
        items = target_items[:3] + mol_items[: self.max_results - n_targets]
        if not items:
            return ToolResult.empty(self.name, f'No ChEMBL data for "{query}"')

        names = "; ".join(str(i["name"]) for i in items)
        headline = f"Found {len(items)} entries ({len(target_items)} targets, {len(mol_items)} compounds)"
        return self._result(items, headline, names)


class PubChemTool(ToolAdapter):
    name = "pubchem"
    label = "PubChem"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        resp = await client.get(
            f"{PUBCHEM_COMPOUND_URL}/{quote(query, safe='')}/JSON",
            params={"MaxRecords": self.max_results},
        )
        if resp.status_code == 404:
            return ToolResult.empty(self.name, f'No compounds found for "{query}"')
        resp.raise_for_status()
        compounds = resp.json().get("PC_Compounds") or []

        items = []
        for c in compounds[: self.max_results]:
            props = c.get("props") or []

            def prop(label: str) -> Any:
                for p in props:
                    if (p.get("urn") or {}).get("label") == label:
                        value = p.get("value") or {}
                        return value.get("sval", value.get("fval", value.get("ival")))
                return None

            items.append({
                "cid": ((c.get("id") or {}).get("id") or {}).get("cid"),
                "iupac": prop("IUPAC Name"),
                "mw": _as_float(prop("Molecular Weight")),
                "formula": prop("Molecular Formula"),
            })

        if not items:
            return ToolResult.empty(self.name, f'No compounds found for "{query}"')
        names = "; ".join(f'CID:{c["cid"]} ({c["formula"] or "unknown"})' for c in items)
        return self._result(items, f"Found {len(items)} compounds", names)


class OpenTargetsTool(ToolAdapter):
    name = "opentargets"
    label = "Open Targets"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        resp = await client.post(
            OPENTARGETS_GRAPHQL_URL,
            json={"query": OPENTARGETS_SEARCH_QUERY, "variables": {"q": query, "n": self.max_results}},
        )
        resp.raise_for_status()
        hits = ((resp.json().get("data") or {}).get("search") or {}).get("hits") or []
        if not hits:
            return ToolResult.empty(self.name, f'No Open Targets data for "{query}"')

        items = [
            {
                "id": h.get("id"),
                "name": h.get("name"),
                "entity": h.get("entity"),
                "description": str(h.get("description") or "")[:150],
                "score": round(float(h.get("score") or 0), 3),
            }
            for h in hits
        ]
        names = "; ".join(f'{h["name"]} ({h["entity"]})' for h in items)
        return self._result(items, f"Found {len(hits)} associations", names)


class KEGGTool(ToolAdapter):
    """KEGG REST ``find`` over pathways and diseases (tab-separated text)."""

    name = "kegg"
    label = "KEGG"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        pathways, diseases = await asyncio.gather(
            self._find(client, "pathway", query),
            self._find(client, "disease", query),
        )
        items = (
            [{**p, "category": "pathway"} for p in pathways[:4]]
            + [{**d, "category": "disease"} for d in diseases[:3]]
        )
        if not items:
            return ToolResult.empty(self.name, f'No KEGG data for "{query}"')

        names = "; ".join(f'{i["name"]} [{i["category"]}]' for i in items)
        return self._result(items, f"Found {len(pathways)} pathways + {len(diseases)} diseases", names)

    @staticmethod
    async def _find(client: httpx.AsyncClient, database: str, query: str) -> List[Dict[str, str]]:
        resp = await client.get(f"{KEGG_FIND_URL}/{database}/{quote(query, safe='')}")
        if resp.status_code != 200:
            return []
        entries = []
        for line in resp.text.strip().splitlines()[:8]:
            entry_id, _, name = line.partition("\t")
            if entry_id.strip() and name.strip():
                entries.append({"id": entry_id.strip(), "name": name.strip()})
        return entries
