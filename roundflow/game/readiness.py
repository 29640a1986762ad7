"""Round-start readiness rules."""
from __future__ import annotations
from datetime import datetime, timedelta
from typing import List

from roundflow.core.exceptions import PreconditionViolation
from roundflow.game.session_state import GameSession, Player


def eligible_players(session: GameSession) -> List[Player]:
    """Seated players with enough chips to cover the big blind."""
    return [p for p in session.players if p.chips >= session.initial_big_blind]


def all_eligible_ready(session: GameSession) -> bool:
    """
    True when every eligible player has flagged ready.

    Players short of the big blind will be evicted on the next transition,
    so they never hold up the round.
    """
    return all(p.is_ready for p in eligible_players(session))


class ReadinessEvaluator:
    """
    Decides whether the next round may start.

    Approves when all eligible players are ready, or when strictly more than
    ``countdown_ms - tolerance_ms`` has passed since the countdown began.
    """

    def __init__(self, countdown_ms: int = 15000, tolerance_ms: int = 1) -> None:
        self.countdown_ms = countdown_ms
        self.tolerance_ms = tolerance_ms

    @property
    def threshold(self) -> timedelta:
        return timedelta(milliseconds=self.countdown_ms - self.tolerance_ms)

    def countdown_elapsed(self, session: GameSession, now: datetime) -> bool:
        start = session.readiness_countdown_start
        if start is None:
            raise PreconditionViolation(
                f"Game {session.session_id} has no readiness countdown start"
            )
        return now - start > self.threshold

    def evaluate(self, session: GameSession, now: datetime) -> bool:
        if all_eligible_ready(session):
            return True
        return self.countdown_elapsed(session, now)
