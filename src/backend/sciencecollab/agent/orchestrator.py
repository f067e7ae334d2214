"""
Session Orchestrator — coordination and lifecycle of one collaboration session.

  1. Resolve the participating domains (mode, or first-N override)
  2. Announce the roster with a ``session_start`` status event
  3. Run one AgentTask per domain concurrently, sharing one event sink
     and one PeerFindingLog
  4. Emit exactly one SessionDone once every task has finished

The orchestrator performs no tool calls itself. Its ``summary()`` is the
finished-session payload handed to persistence.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from sciencecollab.agent.domains import COLLAB_MODES, domains_for
from sciencecollab.agent.figures import FigureSynthesizer
from sciencecollab.agent.peers import AgreementPolicy, PeerAnalyzer, PeerFindingLog, item_label
from sciencecollab.agent.runner import AgentTask, EventSink, Pacing
from sciencecollab.agent.selection import ToolSelector
from sciencecollab.agent.synthesis import FindingSynthesizer
from sciencecollab.config import settings
from sciencecollab.models.schemas import (
    AgentRunResult,
    CollabEvent,
    CollabEventType,
    ResultSummary,
    Session,
    SessionRequest,
    SessionSummary,
)
from sciencecollab.services.reasoning import ReasoningService
from sciencecollab.tools.registry import ToolRegistry, build_default_registry

logger = logging.getLogger(__name__)

ORCHESTRATOR_AGENT = "orchestrator"


def new_session(request: SessionRequest, session_id: Optional[str] = None) -> Session:
    """Build the Session record for a request (domains resolved, id assigned)."""
    return Session(
        id=session_id or f"live-{uuid.uuid4().hex[:12]}",
        topic=request.topic,
        mode=request.mode,
        domains=domains_for(request.mode, request.agents),
    )


class SessionOrchestrator:
    """
    Runs every agent of a session concurrently.

    Usage:
        orchestrator = SessionOrchestrator(session, transport.emit)
        summary = await orchestrator.run()
    """

    def __init__(
        self,
        session: Session,
        emit: EventSink,
        *,
        registry: Optional[ToolRegistry] = None,
        service: Optional[ReasoningService] = None,
        pacing: Optional[Pacing] = None,
        agreement: Optional[AgreementPolicy] = None,
    ):
        self.session = session
        self.emit = emit
        self.registry = registry or build_default_registry()
        service = service or ReasoningService()

        self.selector = ToolSelector(service, available_tools=self.registry.names())
        self.synthesizer = FindingSynthesizer(service)
        self.figures = FigureSynthesizer()
        self.analyzer = PeerAnalyzer()
        self.agreement = agreement or AgreementPolicy()
        self.pacing = pacing or Pacing(enabled=settings.pacing_enabled)

        self.log = PeerFindingLog()
        self.results: List[AgentRunResult] = []
        self.done = False
        self.timed_out = False

    def _task(self, domain) -> AgentTask:
        return AgentTask(
            domain,
            self.session.topic,
            self.emit,
            self.log,
            registry=self.registry,
            selector=self.selector,
            figures=self.figures,
            analyzer=self.analyzer,
            synthesizer=self.synthesizer,
            agreement=self.agreement,
            pacing=self.pacing,
        )

    async def run(self) -> SessionSummary:
        session = self.session
        mode = COLLAB_MODES[session.mode]
        start = time.monotonic()
        logger.info(
            f"Session {session.id} starting: topic={session.topic!r} mode={session.mode.value} "
            f"agents={session.agent_names}"
        )

        self.emit(CollabEvent(
            type=CollabEventType.AGENT_STATUS,
            agent=ORCHESTRATOR_AGENT,
            payload={
                "status": "session_start",
                "detail": session.topic,
                "session_id": session.id,
                "agents": session.agent_names,
                "n_agents": len(session.domains),
                "mode": session.mode.value,
                "mode_label": mode.label,
            },
        ))

        outcomes = await asyncio.gather(
            *[self._run_agent(domain) for domain in session.domains],
            return_exceptions=True,
        )
        for domain, outcome in zip(session.domains, outcomes):
            if isinstance(outcome, BaseException):
                # AgentTask degrades failures itself; reaching here is a bug
                logger.error(f"Session {session.id}: {domain.agent_name} crashed: {outcome!r}")

        self.done = True
        self.emit(CollabEvent(
            type=CollabEventType.SESSION_DONE,
            agent=ORCHESTRATOR_AGENT,
            payload={
                "session_id": session.id,
                "topic": session.topic,
                "agents": session.agent_names,
                "n_findings": len(self.log),
                "mode": session.mode.value,
            },
        ))
        logger.info(
            f"Session {session.id} done in {time.monotonic() - start:.1f}s "
            f"with {len(self.log)} findings"
        )
        return self.summary()

    async def _run_agent(self, domain) -> AgentRunResult:
        result = await self._task(domain).run()
        self.results.append(result)
        return result

    async def aclose(self) -> None:
        await self.registry.aclose()

    def summary(self) -> SessionSummary:
        """Accumulated findings, tool usage and figures; valid while running too."""
        tools_used: List[str] = []
        figures = []
        snapshots: List[ResultSummary] = []
        for run in list(self.results):
            for tool in run.tools:
                if tool not in tools_used:
                    tools_used.append(tool)
            figures.extend(run.figures)
            for result in run.results:
                snapshots.append(ResultSummary(
                    agent=run.agent,
                    tool=result.tool,
                    count=len(result.items),
                    summary=result.summary,
                    sample=[label for label in (item_label(it) for it in result.items[:3]) if label],
                ))

        return SessionSummary(
            session_id=self.session.id,
            topic=self.session.topic,
            mode=self.session.mode,
            agents=self.session.agent_names,
            findings=list(self.log.snapshot()),
            tools_used=tools_used,
            figures=figures,
            results=snapshots,
            done=self.done,
            timed_out=self.timed_out,
        )
