"""
WebSocket endpoint for live collaboration sessions.

Same session and event feed as the SSE stream, one JSON event per message.
"""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from sciencecollab.api.sessions import SessionLauncher, get_launcher
from sciencecollab.models.schemas import SessionRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/collaborate")
async def collaborate_websocket(websocket: WebSocket, launcher: SessionLauncher = Depends(get_launcher)):
    """
    WebSocket endpoint for a live collaboration session.

    Protocol:
      Client sends: JSON session request ({"topic", "mode", "agents"})
      Server sends: one CollabEvent JSON per message, ending with
                    SessionDone or Timeout

    Other message types:
      - {"type": "ack", "session_id": "...", "agents": [...]}
      - {"type": "ping"}  keep-alive after a quiet heartbeat interval
      - {"type": "error", "message": "..."}
    """
    await websocket.accept()

    try:
        raw = await websocket.receive_text()
        request = SessionRequest.model_validate(json.loads(raw))

        live = launcher.launch(request)
        await websocket.send_json({
            "type": "ack",
            "session_id": live.session.id,
            "agents": live.session.agent_names,
        })

        try:
            async for event in live.transport.events():
                if event is None:
                    await websocket.send_json({"type": "ping"})
                else:
                    await websocket.send_text(event.to_json())
        finally:
            live.transport.close()

    except WebSocketDisconnect:
        logger.info("WebSocket consumer disconnected; session continues server-side")
    except json.JSONDecodeError:
        await websocket.send_json({
            "type": "error",
            "message": "Invalid JSON received",
        })
    except ValidationError as e:
        await websocket.send_json({
            "type": "error",
            "message": f"Invalid session request: {e.errors()[0].get('msg', 'validation failed')}",
        })
    finally:
        try:
            await websocket.close()
        except RuntimeError:
            pass
