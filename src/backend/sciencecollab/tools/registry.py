"""
Tool registry — maps tool names to adapters and dispatches calls.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from sciencecollab.models.schemas import ToolResult
from sciencecollab.tools.base import ToolAdapter
from sciencecollab.tools.biology import NCBIGeneTool, PDBTool, ReactomeTool, StringTool, UniProtTool
from sciencecollab.tools.chemistry import ChEMBLTool, KEGGTool, OpenTargetsTool, PubChemTool
from sciencecollab.tools.clinical import ClinicalTrialsTool, OpenFDATool
from sciencecollab.tools.literature import (
    ArXivTool,
    CrossRefTool,
    EuropePMCTool,
    PubMedTool,
    SemanticScholarTool,
)

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name → adapter lookup.

    Usage:
        registry = build_default_registry()
        result = await registry.run("pubmed", "dopamine receptor signaling")
    """

    def __init__(self, adapters: Optional[Iterable[ToolAdapter]] = None):
        self._adapters: Dict[str, ToolAdapter] = {}
        for adapter in adapters or ():
            self.register(adapter)

    def register(self, adapter: ToolAdapter) -> None:
        if not adapter.name:
            raise ValueError(f"{type(adapter).__name__} has no tool name")
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Optional[ToolAdapter]:
        return self._adapters.get(name)

    def names(self) -> List[str]:
        return list(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    async def run(self, name: str, query: str) -> ToolResult:
        """Run a tool by name. Unknown names yield an empty result, not an error."""
        adapter = self._adapters.get(name)
        if adapter is None:
            logger.warning(f"Unknown tool requested: {name}")
            return ToolResult.empty(name, f"Unknown tool: {name}")
        return await adapter.run(query)

    async def aclose(self) -> None:
        await asyncio.gather(*(a.aclose() for a in self._adapters.values()))


def build_default_registry() -> ToolRegistry:
    """All sixteen public-API tools, with their per-source result counts."""
    return ToolRegistry([
        PubMedTool(),
        EuropePMCTool(),
        CrossRefTool(),
        ArXivTool(),
        SemanticScholarTool(),
        UniProtTool(),
        PDBTool(),
        NCBIGeneTool(),
        StringTool(),
        ReactomeTool(),
        ChEMBLTool(),
        PubChemTool(),
        OpenTargetsTool(max_results=6),
        KEGGTool(),
        ClinicalTrialsTool(),
        OpenFDATool(),
    ])
