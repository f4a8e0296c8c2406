"""WebSocket endpoint — the socket side of the TransportGateway.

Learn: Each browser tab connects to /ws?token=JWT. The handler:
1. Authenticates via JWT query param (required outside development)
2. Registers the connection with the gateway as an unbound session
3. Feeds every received JSON frame to gateway.on_frame()
4. Unregisters on disconnect, whichever side closed first

The client then sends `join` to bind the session to its user room.
"""

import json
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from lumina.config import settings
from lumina.events.types import ERROR
from lumina.realtime.errors import DuplicateSessionError, TransportPushFailure

logger = structlog.get_logger()
router = APIRouter()


class WebSocketTransport:
    """Adapts a Starlette WebSocket to the gateway's Transport protocol."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_json(self, data: Any) -> None:
        if self.websocket.application_state != WebSocketState.CONNECTED:
            raise TransportPushFailure("socket is closed")
        try:
            await self.websocket.send_text(json.dumps(data, default=str))
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise TransportPushFailure(str(e) or type(e).__name__) from e


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    """Realtime channel for notifications and call signaling."""
    # ── Authentication ──────────────────────────────────────
    token = websocket.query_params.get("token")

    if not token and settings.environment != "development":
        await websocket.close(code=4001, reason="Authentication required")
        return

    token_subject = None
    if token:
        from lumina.auth.jwt import TokenError, verify_token

        try:
            token_subject = verify_token(token)["sub"]
        except TokenError:
            await websocket.close(code=4001, reason="Invalid or expired token")
            return

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()
    gateway = websocket.app.state.realtime.gateway

    try:
        session = gateway.on_connect(
            WebSocketTransport(websocket), token_subject=token_subject
        )
    except DuplicateSessionError:
        await websocket.close(code=1011)
        return

    structlog.contextvars.bind_contextvars(
        session_id=session.session_id, token_subject=token_subject
    )
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                await gateway.push(
                    session, ERROR, {"frame": None, "detail": "binary frames are not supported"}
                )
                continue
            try:
                msg = json.loads(text)
            except json.JSONDecodeError:
                await gateway.push(session, ERROR, {"frame": None, "detail": "invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await gateway.push(
                    session, ERROR, {"frame": None, "detail": "frame must be an object"}
                )
                continue
            await gateway.on_frame(session.session_id, msg.get("type"), msg.get("data"))
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.on_disconnect(session.session_id)
        structlog.contextvars.unbind_contextvars("session_id", "token_subject")
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
