"""
Clinical tools: ClinicalTrials.gov and OpenFDA drug labels.

Both are NON-LLM tools over public regulatory databases; neither needs a
key, though an OpenFDA key raises the rate limit.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from sciencecollab.config import settings
from sciencecollab.models.schemas import ToolResult
from sciencecollab.tools.base import ToolAdapter

logger = logging.getLogger(__name__)

CLINICALTRIALS_STUDIES_URL = "https://clinicaltrials.gov/api/v2/studies"
OPENFDA_LABEL_URL = "https://api.fda.gov/drug/label.json"


class ClinicalTrialsTool(ToolAdapter):
    name = "clinicaltrials"
    label = "ClinicalTrials"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        data = await self._get_json(
            client,
            CLINICALTRIALS_STUDIES_URL,
            params={"query.term": query, "pageSize": self.max_results, "format": "json"},
        )
        studies = data.get("studies") or []
        if not studies:
            return ToolResult.empty(self.name, f'No clinical trials found for "{query}"')

        items = []
        for s in studies:
            protocol = s.get("protocolSection") or {}
            ident = protocol.get("identificationModule") or {}
            status = protocol.get("statusModule") or {}
            design = protocol.get("designModule") or {}
            items.append({
                "nct_id": ident.get("nctId"),
                "title": str(ident.get("briefTitle") or "Unknown"),
                "status": status.get("overallStatus"),
                "phase": ", ".join(design.get("phases") or []) or "N/A",
                "enrollment": (design.get("enrollmentInfo") or {}).get("count"),
            })

        titles = "; ".join(f'{s["nct_id"]} "{s["title"]}" [{s["phase"]}, {s["status"]}]' for s in items)
        return self._result(items, f"Found {len(items)} clinical trials", titles)


class OpenFDATool(ToolAdapter):
    """
    OpenFDA drug labels.

    Tries an indication-scoped search first, then a free-text search; the
    first query that returns labels wins.
    """

    name = "openfda"
    label = "OpenFDA"

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        results: List[Dict[str, Any]] = []
        for search in (f"indications_and_usage:{query}", query):
            params: Dict[str, Any] = {"search": search, "limit": self.max_results}
            if settings.openfda_api_key:
                params["api_key"] = settings.openfda_api_key

            resp = await client.get(OPENFDA_LABEL_URL, params=params)
            if resp.status_code != 200:
                logger.debug(f"OpenFDA search {search!r} returned {resp.status_code}")
                continue
            results = resp.json().get("results") or []
            if results:
                break

        if not results:
            return ToolResult.empty(self.name, f'No FDA drug data for "{query}"')

        items = []
        for r in results:
            fda = r.get("openfda") or {}
            items.append({
                "brand_name": (fda.get("brand_name") or ["Unknown"])[0],
                "generic_name": (fda.get("generic_name") or [""])[0],
                "manufacturer": (fda.get("manufacturer_name") or [""])[0],
                "route": (fda.get("route") or [""])[0],
                "indications": str((r.get("indications_and_usage") or [""])[0])[:200],
            })

        names = "; ".join(f'{d["brand_name"]} ({d["generic_name"]}, {d["route"]})' for d in items)
        return self._result(items, f"Found {len(items)} FDA drug labels", names)
