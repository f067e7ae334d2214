"""
Event transport — carries a session's events to one live consumer.

The orchestrator emits into a queue without ever blocking. The consumer
side drains it as Server-Sent Events:

  data: {"type":"ToolResult",...}\\n\\n   one frame per event
  : ping\\n\\n                           after a quiet heartbeat interval

The stream ends after forwarding SessionDone. The duration ceiling runs
from construction, not from the first read; hitting it emits a single
Timeout event and closes. A consumer disconnect stops forwarding only;
the session keeps running server-side. Events emitted after close are
dropped.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Optional

from sciencecollab.config import settings
from sciencecollab.models.schemas import CollabEvent, CollabEventType

logger = logging.getLogger(__name__)

SYSTEM_AGENT = "system"
PING_FRAME = ": ping\n\n"

DisconnectCheck = Callable[[], Awaitable[bool]]


def sse_frame(event: CollabEvent) -> str:
    return f"data: {event.to_json()}\n\n"


class EventTransport:
    """
    Usage:
        transport = EventTransport()
        orchestrator = SessionOrchestrator(session, transport.emit)
        return StreamingResponse(transport.stream(request.is_disconnected), ...)
    """

    def __init__(self, max_duration: Optional[float] = None, heartbeat_interval: Optional[float] = None):
        self.max_duration = max_duration or settings.session_max_duration_seconds
        self.started = time.monotonic()
        self.heartbeat_interval = heartbeat_interval or settings.heartbeat_interval_seconds
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.timed_out = False
        self.dropped = 0

    def emit(self, event: CollabEvent) -> None:
        """Event sink handed to the orchestrator. Never blocks, never raises."""
        if self.closed:
            self.dropped += 1
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        self.closed = True

    async def events(self, is_disconnected: Optional[DisconnectCheck] = None) -> AsyncIterator[Optional[CollabEvent]]:
        """
        Yield events in emission order; ``None`` marks a heartbeat.

        Terminates on SessionDone, on the duration ceiling (after yielding
        one Timeout event) or when ``is_disconnected`` reports True.
        """
        deadline = self.started + self.max_duration
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self.timed_out = True
                    logger.warning(f"Session stream hit its {self.max_duration:.0f}s ceiling")
                    yield CollabEvent(
                        type=CollabEventType.TIMEOUT,
                        agent=SYSTEM_AGENT,
                        payload={"detail": "Session timed out"},
                    )
                    return

                try:
                    event = await asyncio.wait_for(
                        self._queue.get(), timeout=min(self.heartbeat_interval, remaining)
                    )
                except asyncio.TimeoutError:
                    if is_disconnected is not None and await is_disconnected():
                        logger.info("Consumer disconnected; stream stopped")
                        return
                    if time.monotonic() < deadline:
                        yield None
                    continue

                yield event
                if event.type == CollabEventType.SESSION_DONE:
                    return
        finally:
            self.close()

    async def stream(self, is_disconnected: Optional[DisconnectCheck] = None) -> AsyncIterator[str]:
        """SSE framing of ``events()``."""
        try:
            async for event in self.events(is_disconnected):
                yield PING_FRAME if event is None else sse_frame(event)
        finally:
            self.close()
