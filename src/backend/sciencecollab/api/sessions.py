"""
Live session bookkeeping shared by the SSE and WebSocket endpoints.

A launched session runs as its own asyncio task, owned by the store rather
than by the HTTP request, so a consumer disconnect never cancels it, and
a later consumer can re-attach to its event history.
Finished sessions stay retrievable until their TTL expires.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sciencecollab.agent.orchestrator import SessionOrchestrator, new_session
from sciencecollab.agent.peers import AgreementPolicy
from sciencecollab.agent.runner import Pacing
from sciencecollab.api.transport import EventTransport
from sciencecollab.config import settings
from sciencecollab.models.schemas import CollabEvent, CollabEventType, Session, SessionRequest, SessionSummary
from sciencecollab.services.reasoning import ReasoningService
from sciencecollab.tools.registry import ToolRegistry, build_default_registry

logger = logging.getLogger(__name__)


@dataclass
class LiveSession:
    """
    A running or finished session.

    Every event the orchestrator emits is appended to ``history`` and fanned
    out to the launching transport plus any consumers that attached later.
    """

    session: Session
    transport: EventTransport
    orchestrator: Optional[SessionOrchestrator] = None
    task: Optional[asyncio.Task] = None
    created: float = field(default_factory=time.time)
    history: List[CollabEvent] = field(default_factory=list)
    followers: List[EventTransport] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return bool(self.history) and self.history[-1].type == CollabEventType.SESSION_DONE

    def publish(self, event: CollabEvent) -> None:
        """Event sink for the orchestrator."""
        self.history.append(event)
        self.transport.emit(event)
        for follower in self.followers:
            follower.emit(event)
        if event.type == CollabEventType.SESSION_DONE:
            self.followers = []
        else:
            self.followers = [f for f in self.followers if not f.closed]

    def attach(self, max_duration: Optional[float] = None,
               heartbeat_interval: Optional[float] = None) -> EventTransport:
        """New transport that replays the history, then follows live events."""
        follower = EventTransport(max_duration, heartbeat_interval)
        for event in self.history:
            follower.emit(event)
        if not self.finished:
            self.followers.append(follower)
        logger.info(f"Consumer attached to {self.session.id} ({len(self.history)} events replayed)")
        return follower

    def summary(self) -> SessionSummary:
        summary = self.orchestrator.summary()
        summary.timed_out = self.transport.timed_out
        return summary


class SessionStore:
    """In-memory session store with TTL eviction."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds
        self._sessions: Dict[str, LiveSession] = {}

    def add(self, live: LiveSession) -> None:
        self.evict_expired()
        self._sessions[live.session.id] = live

    def get(self, session_id: str) -> Optional[LiveSession]:
        self.evict_expired()
        return self._sessions.get(session_id)

    def evict_expired(self) -> None:
        """Remove finished sessions older than the TTL."""
        cutoff = time.time() - self.ttl_seconds
        expired = [
            sid for sid, live in self._sessions.items()
            if live.created < cutoff and (live.task is None or live.task.done())
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Evicted {len(expired)} expired session(s)")

    def __len__(self) -> int:
        return len(self._sessions)


store = SessionStore()


class SessionLauncher:
    """
    Builds and starts sessions with a shared configuration.

    Endpoints get it through the ``get_launcher`` dependency so the tool
    registry, pacing and reasoning service can be swapped out.
    """

    def __init__(
        self,
        registry_factory: Callable[[], ToolRegistry] = build_default_registry,
        service: Optional[ReasoningService] = None,
        pacing: Optional[Pacing] = None,
        agreement: Optional[AgreementPolicy] = None,
        max_duration: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        sessions: Optional[SessionStore] = None,
    ):
        self.registry_factory = registry_factory
        self.service = service
        self.pacing = pacing
        self.agreement = agreement
        self.max_duration = max_duration
        self.heartbeat_interval = heartbeat_interval
        self.sessions = sessions if sessions is not None else store

    def launch(self, request: SessionRequest, session_id: Optional[str] = None) -> LiveSession:
        """Start a session in the background; must be called from a running event loop."""
        session = new_session(request, session_id)
        live = LiveSession(session=session, transport=EventTransport(self.max_duration, self.heartbeat_interval))
        live.orchestrator = SessionOrchestrator(
            session,
            live.publish,
            registry=self.registry_factory(),
            service=self.service,
            pacing=self.pacing,
            agreement=self.agreement,
        )
        live.task = asyncio.create_task(self._run(live), name=f"session-{session.id}")
        self.sessions.add(live)
        return live

    def attach(self, live: LiveSession) -> EventTransport:
        return live.attach(self.max_duration, self.heartbeat_interval)

    async def _run(self, live: LiveSession) -> None:
        try:
            await live.orchestrator.run()
        except Exception:
            logger.exception(f"Session {live.session.id} failed")
        finally:
            live.orchestrator.timed_out = live.transport.timed_out
            await live.orchestrator.aclose()


_default_launcher: Optional[SessionLauncher] = None


def get_launcher() -> SessionLauncher:
    """FastAPI dependency returning the process-wide launcher."""
    global _default_launcher
    if _default_launcher is None:
        _default_launcher = SessionLauncher()
    return _default_launcher
