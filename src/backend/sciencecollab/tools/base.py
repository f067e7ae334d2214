"""
Tool adapter base class.

Every data-source tool wraps one free, read-only scientific API. Adapters
never raise: network and parse failures are converted into a ToolResult
carrying an ``error`` and no items, so one bad source can never abort an
agent or a session.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from sciencecollab.config import settings
from sciencecollab.models.schemas import ToolResult

logger = logging.getLogger(__name__)

MAX_ITEMS = 8
SUMMARY_BUDGET = 300
DEFAULT_RESULTS = 5


def clip(text: str, budget: int = SUMMARY_BUDGET) -> str:
    return text[:budget]


def default_headers() -> Dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }


class ToolAdapter:
    """
    Uniform wrapper around one external data source.

    Subclasses set ``name`` and ``label`` and implement ``_search``, which
    may raise freely; ``run`` owns the error boundary.
    """

    name: str = ""
    label: str = ""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_results: int = DEFAULT_RESULTS,
        timeout: Optional[float] = None,
    ):
        self._http_client = client
        self._owns_client = client is None
        self.max_results = max_results
        self.timeout = timeout or settings.tool_timeout_seconds

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=default_headers(),
                follow_redirects=True,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def run(self, query: str) -> ToolResult:
        """
        Query the source and normalize the response.

        Returns:
            ToolResult with at most MAX_ITEMS items, or an error record
        """
        try:
            client = await self._get_client()
            result = await asyncio.wait_for(self._search(client, query), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.label} timed out after {self.timeout:.0f}s for {query!r}")
            return ToolResult.failed(self.name, f"{self.label} search failed", f"Timed out after {self.timeout:.0f}s")
        except Exception as e:
            logger.warning(f"{self.label} search failed for {query!r}: {e!r}")
            return ToolResult.failed(self.name, f"{self.label} search failed", str(e) or type(e).__name__)

        if len(result.items) > MAX_ITEMS:
            result.items = result.items[:MAX_ITEMS]
        return result

    async def _search(self, client: httpx.AsyncClient, query: str) -> ToolResult:
        raise NotImplementedError

    # ──────────────────────────────────────────────
    # Helpers shared by adapters
    # ──────────────────────────────────────────────

    async def _get_json(self, client: httpx.AsyncClient, url: str, **kwargs: Any) -> Any:
        resp = await client.get(url, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def _result(self, items: List[Dict[str, Any]], headline: str, details: str) -> ToolResult:
        return ToolResult(
            tool=self.name,
            summary=clip(f"{headline}: {details}"),
            items=items[:MAX_ITEMS],
        )

    def _empty(self, query: str, what: str = "results") -> ToolResult:
        return ToolResult.empty(self.name, f'No {what} found for "{query}"')
