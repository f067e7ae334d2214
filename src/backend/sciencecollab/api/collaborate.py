"""
REST + SSE API for collaboration sessions.

  GET  /api/collaborate              domains and modes
  POST /api/collaborate              reserve a session id and stream URL
  GET  /api/collaborate/stream       run a session, events as text/event-stream
  GET  /api/collaborate/{session_id} summary of a live or finished session
  GET  /api/collaborate/{session_id}/stream
                                     replay and follow an existing session
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from sciencecollab.agent.domains import AGENT_DOMAINS, COLLAB_MODES, resolve_mode
from sciencecollab.agent.orchestrator import new_session
from sciencecollab.api.sessions import SessionLauncher, get_launcher
from sciencecollab.models.schemas import SessionRequest, SessionSummary

logger = logging.getLogger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("")
async def list_domains():
    """List the agent domains and collaboration modes."""
    return {
        "domains": [
            {
                "name": d.agent_name,
                "domain": d.domain,
                "focus": d.focus,
                "tools": list(d.tool_pool),
            }
            for d in AGENT_DOMAINS
        ],
        "modes": [
            {
                "mode": mode.value,
                "label": spec.label,
                "description": spec.description,
                "agents": [d.agent_name for d in spec.domains],
            }
            for mode, spec in COLLAB_MODES.items()
        ],
    }


@router.post("")
async def create_session(request: SessionRequest):
    """
    Reserve a session id and return the stream URL that will run it.

    Nothing starts until the stream URL is opened.
    """
    session = new_session(request)
    params = {"topic": session.topic, "mode": session.mode.value, "sid": session.id}
    if request.agents:
        params["agents"] = request.agents
    return {
        "session_id": session.id,
        "topic": session.topic,
        "mode": session.mode.value,
        "agents": session.agent_names,
        "stream_url": f"/api/collaborate/stream?{urlencode(params)}",
    }


@router.get("/stream")
async def stream_session(
    request: Request,
    topic: Optional[str] = None,
    mode: Optional[str] = None,
    agents: Optional[int] = None,
    sid: Optional[str] = None,
    launcher: SessionLauncher = Depends(get_launcher),
):
    """
    Start a session and stream its events as Server-Sent Events.

    An unknown mode falls back to broad; ``agents`` takes the first N domains.
    """
    session_request = SessionRequest(
        topic=(topic or "").strip()[:500] or "protein folding",
        mode=resolve_mode(mode),
        agents=agents,
    )
    if sid and launcher.sessions.get(sid) is not None:
        raise HTTPException(status_code=409, detail=f"Session {sid} already started")

    live = launcher.launch(session_request, session_id=sid)
    logger.info(f"Streaming session {live.session.id} ({len(live.session.domains)} agents)")
    return StreamingResponse(
        live.transport.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/{session_id}", response_model=SessionSummary)
async def get_session(session_id: str, launcher: SessionLauncher = Depends(get_launcher)):
    """Findings, tool usage and figures of a live or finished session."""
    live = launcher.sessions.get(session_id)
    if live is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return live.summary()


@router.get("/{session_id}/stream")
async def attach_session(
    session_id: str,
    request: Request,
    launcher: SessionLauncher = Depends(get_launcher),
):
    """
    Re-attach to a live or finished session.

    Replays every event emitted so far, then follows live events until
    SessionDone or the duration ceiling.
    """
    live = launcher.sessions.get(session_id)
    if live is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")

    follower = launcher.attach(live)
    return StreamingResponse(
        follower.stream(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
