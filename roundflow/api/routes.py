"""REST API routes: table lifecycle, waiting queue, readiness."""
from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from roundflow.core.exceptions import (
    InvalidSessionConfig,
    PlayerAlreadyQueued,
    PlayerAlreadySeated,
    PlayerNotSeated,
    RoundFlowError,
    SessionAlreadyExists,
    SessionNotFound,
    StaleSession,
)
from roundflow.models.requests import CreateSessionRequest, PlayerRequest, ReadinessTimerEvent
from roundflow.services.readiness_service import CycleOutcome, readiness_service

router = APIRouter(prefix="/api")


def _http_error(exc: RoundFlowError) -> HTTPException:
    if isinstance(exc, SessionNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (StaleSession, SessionAlreadyExists)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (InvalidSessionConfig, PlayerAlreadySeated,
                        PlayerAlreadyQueued, PlayerNotSeated)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.post("/sessions")
async def create_session(req: CreateSessionRequest) -> Dict[str, Any]:
    try:
        session = readiness_service.create_session(
            initial_big_blind=req.initial_big_blind,
            buy_in_amount=req.buy_in_amount,
            min_players_to_start=req.min_players_to_start,
            max_players=req.max_players,
            player_ids=req.player_ids,
        )
    except RoundFlowError as e:
        raise _http_error(e)
    return session.to_dict()


@router.get("/sessions")
async def list_sessions() -> Dict[str, Any]:
    return {"sessions": readiness_service.store.list_sessions()}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> Dict[str, Any]:
    try:
        return readiness_service.get_session(session_id).to_dict()
    except RoundFlowError as e:
        raise _http_error(e)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str) -> Dict[str, Any]:
    if not readiness_service.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Game not found")
    return {"deleted": session_id}


@router.post("/sessions/{session_id}/queue")
async def join_queue(session_id: str, req: PlayerRequest) -> Dict[str, Any]:
    try:
        session = await readiness_service.join_waiting_queue(session_id, req.player_id)
    except RoundFlowError as e:
        raise _http_error(e)
    return {"waitingQueue": session.waiting_queue}


@router.post("/sessions/{session_id}/ready")
async def mark_ready(session_id: str, req: PlayerRequest) -> Dict[str, Any]:
    try:
        session, cycle = await readiness_service.mark_ready(session_id, req.player_id)
    except RoundFlowError as e:
        raise _http_error(e)
    return {
        "game": session.to_dict(),
        "roundStarted": cycle is not None and cycle.outcome == CycleOutcome.ROUND_STARTED,
        "cycle": cycle.body if cycle else None,
    }


@router.post("/sessions/{session_id}/countdown")
async def open_countdown(session_id: str) -> Dict[str, Any]:
    try:
        session = await readiness_service.open_countdown(session_id)
    except RoundFlowError as e:
        raise _http_error(e)
    return {
        "readinessCountdownStart": session.to_dict()["readinessCountdownStart"],
        "timerId": readiness_service.settings.readiness_timer_id(session_id),
    }


@router.post("/readiness-check")
async def readiness_check(event: ReadinessTimerEvent) -> JSONResponse:
    """Entry point for an external scheduler firing a readiness countdown."""
    result = await readiness_service.check_readiness(event.session_id, event.connection_id)
    return JSONResponse(status_code=result.status_code, content=result.body)
