"""Pydantic models for WebSocket messages."""
from __future__ import annotations
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ClientMessage(BaseModel):
    """Client → Server envelope."""
    type: str  # "ready" | "ping"
    payload: Dict[str, Any] = Field(default_factory=dict)


class ReadinessBroadcast(BaseModel):
    """Server → Client push after a readiness cycle."""
    game: Dict[str, Any]
    action: str = "checkReadiness"
    statusCode: int = 200


class ErrorEvent(BaseModel):
    error: str
    detail: Optional[str] = None
