"""WebSocket endpoint: readiness signals in, checkReadiness broadcasts out."""
from __future__ import annotations
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from roundflow.core.exceptions import RoundFlowError
from roundflow.managers.connection_manager import connection_manager
from roundflow.models.events import ClientMessage, ErrorEvent
from roundflow.services.readiness_service import readiness_service

logger = logging.getLogger(__name__)
ws_router = APIRouter()


@ws_router.websocket("/ws/{session_id}/{connection_id}")
async def websocket_endpoint(websocket: WebSocket, session_id: str, connection_id: str):
    session = readiness_service.store.load(session_id)
    if session is None:
        await websocket.close(code=4004, reason="Game not found")
        return

    await connection_manager.connect(session_id, connection_id, websocket)

    # Send current game state immediately on connect
    await connection_manager.send_personal(
        session_id, connection_id, {"game": session.to_dict(), "action": "gameState"}
    )

    try:
        while True:
            data = await websocket.receive_json()
            try:
                msg = ClientMessage.model_validate(data)
            except ValidationError as e:
                await websocket.send_json(ErrorEvent(error="Malformed message", detail=str(e)).model_dump())
                continue

            if msg.type == "ready":
                # connection ids double as player ids unless the client says otherwise
                player_id = str(msg.payload.get("player_id", connection_id))
                try:
                    await readiness_service.mark_ready(session_id, player_id, connection_id)
                except RoundFlowError as e:
                    await websocket.send_json(ErrorEvent(error=str(e)).model_dump(exclude_none=True))

            elif msg.type == "ping":
                await websocket.send_json({"action": "pong"})

    except WebSocketDisconnect:
        connection_manager.disconnect(session_id, connection_id)
        logger.info(f"Connection {connection_id} left game {session_id}")
    except Exception as e:
        logger.error(f"WebSocket error for {connection_id} in {session_id}: {e}")
        connection_manager.disconnect(session_id, connection_id)
