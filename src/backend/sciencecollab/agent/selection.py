"""
Tool selection — choose which tools an agent runs for a topic.

Two strategies, tried in order:
  1. ReasoningSelection — asks the reasoning model for the best N tools
  2. DeterministicSelection — the first N tools of the pool, in configured order

The deterministic strategy always succeeds, so selection is total.
"""
from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from sciencecollab.config import settings
from sciencecollab.services.reasoning import ReasoningService

logger = logging.getLogger(__name__)

MIN_VALID_SELECTION = 2

SELECTION_PROMPT = """{domain} researcher (focus: {focus}) investigating: "{topic}"
Available tools: [{pool}]
Respond ONLY with a JSON array of exactly {n} tool names best suited for this specific topic. No explanation."""


class SelectionStrategy:
    """Returns a tool list, or None to defer to the next strategy."""

    async def choose(
        self, domain: str, focus: str, topic: str, pool: Sequence[str], n: int
    ) -> Optional[List[str]]:
        raise NotImplementedError


class ReasoningSelection(SelectionStrategy):
    def __init__(self, service: ReasoningService, timeout: Optional[float] = None):
        self.service = service
        self.timeout = timeout or settings.selection_timeout_seconds

    async def choose(self, domain, focus, topic, pool, n):
        if not self.service.available:
            return None

        prompt = SELECTION_PROMPT.format(
            domain=domain, focus=focus, topic=topic, pool=", ".join(pool), n=n
        )
        text = await self.service.generate(prompt, max_tokens=80, timeout=self.timeout, temperature=0.0)
        if not text:
            return None

        try:
            picked = json.loads(self.service.extract_json(text))
        except ValueError:
            logger.info(f"[{domain}] tool selection returned non-JSON: {text[:80]!r}")
            return None
        if not isinstance(picked, list):
            return None

        selected: List[str] = []
        for name in picked:
            if isinstance(name, str) and name in pool and name not in selected:
                selected.append(name)
        selected = selected[:n]

        if len(selected) < MIN_VALID_SELECTION:
            logger.info(f"[{domain}] tool selection gave {len(selected)} valid names, falling back")
            return None
        return selected


class DeterministicSelection(SelectionStrategy):
    async def choose(self, domain, focus, topic, pool, n):
        return list(pool[:n])


class ToolSelector:
    """
    Picks a bounded, valid subset of a domain's tool pool.

    Usage:
        selector = ToolSelector(ReasoningService(), available_tools=registry.names())
        tools = await selector.select("biology", focus, topic, pool, n=3)
    """

    def __init__(
        self,
        service: Optional[ReasoningService] = None,
        available_tools: Optional[Sequence[str]] = None,
        strategies: Optional[Sequence[SelectionStrategy]] = None,
    ):
        if strategies is None:
            strategies = [ReasoningSelection(service or ReasoningService()), DeterministicSelection()]
        self.strategies = list(strategies)
        self.available_tools = set(available_tools) if available_tools is not None else None

    async def select(
        self,
        domain: str,
        focus: str,
        topic: str,
        pool: Sequence[str],
        n: Optional[int] = None,
    ) -> List[str]:
        n = n or settings.tools_per_agent
        valid_pool = [t for t in pool if self.available_tools is None or t in self.available_tools]

        for strategy in self.strategies:
            chosen = await strategy.choose(domain, focus, topic, valid_pool, n)
            if chosen:
                logger.info(f"[{domain}] {type(strategy).__name__} picked {chosen}")
                return chosen

        return list(valid_pool[:n])
