"""
Agent task — one investigator's full run inside a session.

Phases, each announced on the event sink:
  1. Planning      — pick tools for the topic
  2. Running       — call each tool, emit results, figures and thoughts
  3. Reacting      — challenge or agree with findings already in the log
  4. Synthesizing  — write the finding and publish it to the log

Collaborator failures degrade into error content at phase boundaries; a
task always ends with a Finding event and a ``done`` status.
"""
from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sciencecollab.agent.figures import FigureSynthesizer
from sciencecollab.agent.peers import AgreementPolicy, PeerAnalyzer, PeerFindingLog
from sciencecollab.agent.selection import ToolSelector
from sciencecollab.agent.synthesis import NO_EVIDENCE_CONFIDENCE, FindingSynthesizer, SynthesisOutcome
from sciencecollab.config import settings
from sciencecollab.models.schemas import (
    AgentDomainConfig,
    AgentPhase,
    AgentRunResult,
    CollabEvent,
    CollabEventType,
    Figure,
    Finding,
    ToolResult,
)
from sciencecollab.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Type for the sink every event is handed to
EventSink = Callable[[CollabEvent], None]

PAYLOAD_ITEMS = 8
FIGURE_ITEMS = 20
THOUGHT_CHARS = 120
CHALLENGE_QUOTE_CHARS = 120
AGREEMENT_QUOTE_CHARS = 100


@dataclass
class Pacing:
    """
    Cosmetic delays between steps so a live stream reads naturally.

    Disabled pacing never sleeps (tests and batch runs).
    """
    enabled: bool = True
    tool_gap: float = 0.1
    peer_min: float = 0.15
    peer_jitter: float = 0.2
    rng: random.Random = field(default_factory=random.Random)

    async def after_tool(self) -> None:
        if self.enabled:
            await asyncio.sleep(self.tool_gap)

    async def before_peer(self) -> None:
        if self.enabled:
            await asyncio.sleep(self.peer_min + self.rng.random() * self.peer_jitter)


class AgentTask:
    """
    Runs one domain's investigation and reports through ``emit``.

    Usage:
        task = AgentTask(domain, topic, emit, log, registry=registry, ...)
        result = await task.run()
    """

    def __init__(
        self,
        domain: AgentDomainConfig,
        topic: str,
        emit: EventSink,
        log: PeerFindingLog,
        *,
        registry: ToolRegistry,
        selector: ToolSelector,
        figures: Optional[FigureSynthesizer] = None,
        analyzer: Optional[PeerAnalyzer] = None,
        synthesizer: Optional[FindingSynthesizer] = None,
        agreement: Optional[AgreementPolicy] = None,
        pacing: Optional[Pacing] = None,
    ):
        self.domain = domain
        self.topic = topic
        self.agent = domain.agent_name
        self._emit = emit
        self.log = log
        self.registry = registry
        self.selector = selector
        self.figures = figures or FigureSynthesizer()
        self.analyzer = analyzer or PeerAnalyzer()
        self.synthesizer = synthesizer or FindingSynthesizer()
        self.agreement = agreement or AgreementPolicy()
        self.pacing = pacing or Pacing(enabled=settings.pacing_enabled)

        self.tools: List[str] = []
        self.results: List[ToolResult] = []
        self.rendered: List[Figure] = []

    def emit(self, event_type: CollabEventType, payload: Dict[str, Any], ref_agent: Optional[str] = None) -> None:
        self._emit(CollabEvent(type=event_type, agent=self.agent, payload=payload, ref_agent=ref_agent))

    def status(self, phase: AgentPhase, detail: str) -> None:
        self.emit(CollabEventType.AGENT_STATUS, {"status": phase.value, "detail": detail})

    def thought(self, text: str) -> None:
        self.emit(CollabEventType.THOUGHT, {"text": text})

    async def run(self) -> AgentRunResult:
        start = time.monotonic()

        await self._plan()
        await self._investigate()
        await self._react()
        finding = await self._conclude()

        self.status(AgentPhase.DONE, "Investigation complete")
        logger.info(
            f"[{self.agent}] done in {time.monotonic() - start:.1f}s "
            f"({sum(r.ok for r in self.results)}/{len(self.results)} tools returned data)"
        )
        return AgentRunResult(
            agent=self.agent,
            finding=finding,
            tools=list(self.tools),
            results=list(self.results),
            figures=list(self.rendered),
        )

    # ──────────────────────────────────────────────
    # Phases
    # ──────────────────────────────────────────────

    async def _plan(self) -> None:
        self.status(AgentPhase.PLANNING, f'Selecting tools for "{self.topic}"')
        try:
            self.tools = await self.selector.select(
                self.domain.domain, self.domain.focus, self.topic, self.domain.tool_pool
            )
        except Exception as e:
            logger.warning(f"[{self.agent}] tool selection failed: {e}")
            self.tools = list(self.domain.default_tools)

        self.thought(f"Selected {len(self.tools)} tools: {', '.join(self.tools)}")
        self.status(AgentPhase.RUNNING, f"Executing {len(self.tools)} tools")

    async def _investigate(self) -> None:
        for tool in self.tools:
            self.emit(CollabEventType.TOOL_STARTED, {"tool": tool, "params": {"query": self.topic}})
            try:
                result = await self.registry.run(tool, self.topic)
            except Exception as e:
                logger.warning(f"[{self.agent}] {tool} raised: {e}")
                result = ToolResult.failed(tool, f"{tool} search failed", str(e) or type(e).__name__)
            self.results.append(result)

            self.emit(CollabEventType.TOOL_RESULT, {
                "tool": tool,
                "summary": result.summary,
                "count": len(result.items),
                "items": result.items[:PAYLOAD_ITEMS],
                "error": result.error,
            })

            if result.ok:
                self._draw(tool, result)
                self.thought(f"{tool}: {result.summary[:THOUGHT_CHARS]}")

            await self.pacing.after_tool()

    def _draw(self, tool: str, result: ToolResult) -> None:
        try:
            figure = self.figures.render(tool, result.items[:FIGURE_ITEMS])
        except Exception as e:
            logger.warning(f"[{self.agent}] figure for {tool} failed: {e}")
            return
        if figure is None:
            return
        self.rendered.append(figure)
        self.emit(CollabEventType.FIGURE, {
            "tool": figure.tool,
            "title": f"{figure.title} · {self.agent}",
            "kind": figure.kind,
            "labels": figure.labels,
            "counts": figure.counts,
            "svg": figure.svg,
        })

    async def _react(self) -> None:
        # One snapshot per run: findings published after this point are not seen
        peers = [f for f in self.log.snapshot() if f.agent != self.agent]
        for peer in peers:
            await self.pacing.before_peer()
            try:
                analysis = self.analyzer.evaluate(self.domain.domain, self.results, peer.text)
            except Exception as e:
                logger.warning(f"[{self.agent}] peer analysis of {peer.agent} failed: {e}")
                continue

            if analysis.should_challenge:
                self.emit(CollabEventType.CHALLENGE, {
                    "finding": peer.text[:CHALLENGE_QUOTE_CHARS],
                    "reason": analysis.justification,
                }, ref_agent=peer.agent)
            elif self.agreement.should_agree():
                self.emit(CollabEventType.AGREEMENT, {
                    "finding": peer.text[:AGREEMENT_QUOTE_CHARS],
                    "note": self.agreement.note(self.domain.domain, self.results),
                }, ref_agent=peer.agent)

    async def _conclude(self) -> Finding:
        self.thought("Synthesizing findings across tools...")
        try:
            outcome = await self.synthesizer.synthesize(
                self.agent, self.domain.domain, self.topic, self.results
            )
        except Exception as e:
            logger.warning(f"[{self.agent}] synthesis failed: {e}")
            outcome = SynthesisOutcome(
                text=self.synthesizer.fallback.write(self.agent, self.domain.domain, self.topic, self.results),
                confidence=NO_EVIDENCE_CONFIDENCE,
            )

        finding = Finding(
            agent=self.agent,
            text=outcome.text,
            confidence=outcome.confidence,
            sources=[r.tool for r in self.results if r.error is None],
        )
        await self.log.append(finding)
        self.emit(CollabEventType.FINDING, {
            "text": finding.text,
            "confidence": finding.confidence,
            "sources": finding.sources,
        })
        return finding
