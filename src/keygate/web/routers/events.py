"""Event stream WebSocket, authenticated at handshake."""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from keygate.app import App
from keygate.core.modules.gate.models import AuthFailure
from keygate.web.deps import AppDep

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["events"])

CLOSE_UNAUTHENTICATED = 4001
CLOSE_INVALID_API_KEY = 4003


async def authenticate_websocket(websocket: WebSocket, app: App) -> int | None:
    """Return None if the handshake may proceed, otherwise the close code to reject it with.

    A ``token`` query parameter is judged as a connection token alone; without
    one the handshake headers and cookies go through the regular gate.
    """
    connection_token = websocket.query_params.get("token")
    if connection_token is not None:
        if await app.redeem_connection_token(connection_token):
            return None
        return CLOSE_UNAUTHENTICATED

    outcome = await app.authenticate(websocket)
    if outcome.authenticated:
        return None
    if outcome.failure is AuthFailure.INVALID_API_KEY:
        return CLOSE_INVALID_API_KEY
    return CLOSE_UNAUTHENTICATED


@router.websocket("/events")
async def events(websocket: WebSocket, app: AppDep) -> None:
    close_code = await authenticate_websocket(websocket, app)

    # Close codes only reach the client once the handshake is accepted
    await websocket.accept()
    if close_code is not None:
        logger.info("websocket_rejected", close_code=close_code)
        await websocket.close(code=close_code)
        return

    await websocket.send_json({"type": "connected"})
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.debug("websocket_disconnected")
