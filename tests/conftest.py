"""Shared fixtures and builders for all tests."""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from roundflow.config import Settings
from roundflow.game.session_state import GameSession, Player
from roundflow.managers.connection_manager import ConnectionManager
from roundflow.managers.state_store import StateStore
from roundflow.managers.timer_registry import TimerRegistry
from roundflow.services.readiness_service import ReadinessService

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def make_player(pid: str, chips: int = 1000, position: int = 0, ready: bool = False) -> Player:
    return Player(id=pid, chips=chips, position=position, is_ready=ready)


def make_session(
    chips: Optional[List[int]] = None,
    ready: Optional[List[bool]] = None,
    waiting: Optional[List[str]] = None,
    big_blind: int = 10,
    buy_in: int = 500,
    min_players: int = 2,
    max_players: int = 6,
    small_blind_index: int = 0,
    countdown_start: Optional[datetime] = None,
    session_id: str = "g1",
) -> GameSession:
    """Players are named p0, p1, ... in seat order."""
    chips = chips if chips is not None else [1000, 1000, 1000]
    ready = ready if ready is not None else [False] * len(chips)
    players = [
        make_player(f"p{i}", chips=c, position=i, ready=r)
        for i, (c, r) in enumerate(zip(chips, ready))
    ]
    return GameSession(
        session_id=session_id,
        min_players_to_start=min_players,
        max_players=max_players,
        initial_big_blind=big_blind,
        buy_in_amount=buy_in,
        players=players,
        waiting_queue=list(waiting or []),
        small_blind_index=small_blind_index,
        readiness_countdown_start=countdown_start,
        min_raise_amount=big_blind,
    )


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def broadcaster():
    return ConnectionManager()


@pytest.fixture
def timers():
    return TimerRegistry()


@pytest.fixture
def service(store, broadcaster, timers, settings, clock):
    return ReadinessService(
        store=store,
        broadcaster=broadcaster,
        timers=timers,
        settings=settings,
        clock=clock,
    )
