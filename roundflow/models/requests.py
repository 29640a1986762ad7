"""Pydantic request models for REST endpoints."""
from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CreateSessionRequest(BaseModel):
    initial_big_blind: int = Field(default=20, ge=1)
    buy_in_amount: int = Field(default=1000, ge=1)
    min_players_to_start: Optional[int] = Field(default=None, ge=1, le=9)
    max_players: Optional[int] = Field(default=None, ge=1, le=9)
    player_ids: List[str] = Field(default_factory=list, max_length=9)


class PlayerRequest(BaseModel):
    player_id: str = Field(min_length=1, max_length=64)


class ReadinessTimerEvent(BaseModel):
    """Payload the scheduler posts when a readiness countdown expires."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId", min_length=1)
    connection_id: Optional[str] = Field(default=None, alias="connectionId")
