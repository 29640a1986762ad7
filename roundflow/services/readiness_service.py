"""
ReadinessService: the round-boundary cycle and the table operations that
feed it.

Cycle, per session and under that session's lock:
  load → guard (round already running) → evaluate → transition → save
then, outside the lock and concurrently:
  notify all connections, cancel the readiness timer.

Fatal errors (missing session, missing countdown start, lost save race)
abort before anything is saved. Notification and timer failures are
logged and reported on the result, never raised.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple

from roundflow.config import Settings, get_settings
from roundflow.core.exceptions import (
    InvalidSessionConfig,
    PlayerAlreadyQueued,
    PlayerAlreadySeated,
    PlayerNotSeated,
    SessionNotFound,
)
from roundflow.game.readiness import ReadinessEvaluator, all_eligible_ready
from roundflow.game.session_state import GameSession, GameStage, Player
from roundflow.game.transition import Dealer, RoundTransitionEngine, TransitionOutcome
from roundflow.managers.connection_manager import (
    ConnectionManager,
    DeliveryReport,
    connection_manager,
)
from roundflow.managers.session_locks import SessionLocks, session_locks
from roundflow.managers.state_store import StateStore, state_store
from roundflow.managers.timer_registry import TimerRegistry, timer_registry
from roundflow.models.events import ErrorEvent, ReadinessBroadcast

logger = logging.getLogger(__name__)

CHECK_READINESS_ACTION = "checkReadiness"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleOutcome(Enum):
    ROUND_STARTED = "round_started"
    INSUFFICIENT_PLAYERS = "insufficient_players"
    NOT_READY = "not_ready"
    ALREADY_IN_PROGRESS = "already_in_progress"
    FAILED = "failed"


_MESSAGES = {
    CycleOutcome.ROUND_STARTED: "Timer is up, moving on.",
    CycleOutcome.INSUFFICIENT_PLAYERS: "Not enough players to start a new round.",
    CycleOutcome.NOT_READY: "Players are not ready yet.",
    CycleOutcome.ALREADY_IN_PROGRESS: "Round already in progress.",
}


@dataclass
class CycleResult:
    """What one readiness cycle did, shaped like an HTTP response."""
    status_code: int
    outcome: CycleOutcome
    body: Dict[str, Any]
    session: Optional[GameSession] = None
    deliveries: List[DeliveryReport] = field(default_factory=list)
    timer_cancelled: Optional[bool] = None

    @property
    def failed_deliveries(self) -> List[DeliveryReport]:
        return [d for d in self.deliveries if not d.delivered]


class ReadinessService:
    def __init__(
        self,
        store: StateStore,
        broadcaster: ConnectionManager,
        timers: TimerRegistry,
        locks: Optional[SessionLocks] = None,
        settings: Optional[Settings] = None,
        dealer: Optional[Dealer] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.timers = timers
        self.locks = locks or SessionLocks()
        self.settings = settings or get_settings()
        self.evaluator = ReadinessEvaluator(
            countdown_ms=self.settings.readiness_countdown_ms,
            tolerance_ms=self.settings.readiness_tolerance_ms,
        )
        self.engine = RoundTransitionEngine(dealer=dealer)
        self._clock = clock

    @asynccontextmanager
    async def _locked(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session's lock; forget the lock if the session is unknown."""
        try:
            async with self.locks.get(session_id):
                yield
        except SessionNotFound:
            self.locks.discard(session_id)
            raise

    # ------------------------------------------------------------------
    # Readiness cycle
    # ------------------------------------------------------------------

    async def check_readiness(
        self,
        session_id: str,
        connection_id: Optional[str] = None,
    ) -> CycleResult:
        """Run one round-boundary cycle for a session."""
        try:
            async with self._locked(session_id):
                session, outcome = self._commit(session_id)
        except Exception as e:
            logger.error(f"Error checking game readiness for {session_id}: {e}")
            await self._report_error(session_id, connection_id, str(e))
            return CycleResult(
                status_code=500,
                outcome=CycleOutcome.FAILED,
                body={"message": str(e)},
            )

        timer_id = self.settings.readiness_timer_id(session_id)
        if outcome == CycleOutcome.ALREADY_IN_PROGRESS:
            deliveries: List[DeliveryReport] = []
            cancelled = await self._cancel_timer(timer_id)
        else:
            deliveries, cancelled = await asyncio.gather(
                self._notify(session),
                self._cancel_timer(timer_id),
            )

        return CycleResult(
            status_code=200,
            outcome=outcome,
            body={"message": _MESSAGES[outcome]},
            session=session,
            deliveries=deliveries,
            timer_cancelled=cancelled,
        )

    def _commit(self, session_id: str) -> Tuple[GameSession, CycleOutcome]:
        session = self.get_session(session_id)
        loaded_version = session.version

        # A re-fired timer must not restart a round that is already running
        if session.game_in_progress:
            logger.info(f"Game {session_id}: round already in progress, skipping transition")
            return session, CycleOutcome.ALREADY_IN_PROGRESS

        if not self.evaluator.evaluate(session, self._clock()):
            outcome = CycleOutcome.NOT_READY
        else:
            result = self.engine.transition(session)
            session = result.session
            if result.outcome == TransitionOutcome.COMMITTED:
                outcome = CycleOutcome.ROUND_STARTED
            else:
                outcome = CycleOutcome.INSUFFICIENT_PLAYERS

        self.store.save(session, expected_version=loaded_version)
        logger.info(f"Game {session_id}: readiness cycle finished with {outcome.value}")
        return session, outcome

    async def _notify(self, session: GameSession) -> List[DeliveryReport]:
        payload = ReadinessBroadcast(
            game=session.to_dict(), action=CHECK_READINESS_ACTION
        ).model_dump()
        try:
            deliveries = await self.broadcaster.notify_all(session.session_id, payload)
        except Exception as e:
            logger.warning(f"Game {session.session_id}: broadcast failed: {e}")
            return []
        failed = [d.connection_id for d in deliveries if not d.delivered]
        if failed:
            logger.warning(
                f"Game {session.session_id}: {len(failed)}/{len(deliveries)} "
                f"recipients unreachable: {failed}"
            )
        return deliveries

    async def _cancel_timer(self, timer_id: str) -> bool:
        try:
            cancelled = await self.timers.cancel(timer_id)
        except Exception as e:
            logger.warning(f"Failed to delete timer {timer_id}: {e}")
            return False
        if not cancelled:
            logger.debug(f"No pending timer {timer_id} to delete")
        return cancelled

    async def _report_error(
        self,
        session_id: str,
        connection_id: Optional[str],
        message: str,
    ) -> None:
        if connection_id is None:
            return
        delivered = await self.broadcaster.send_personal(
            session_id, connection_id, ErrorEvent(error=message).model_dump(exclude_none=True)
        )
        if not delivered:
            logger.warning(f"Could not report error to {connection_id} in game {session_id}")

    # ------------------------------------------------------------------
    # Table operations
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> GameSession:
        session = self.store.load(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def create_session(
        self,
        initial_big_blind: int,
        buy_in_amount: int,
        min_players_to_start: Optional[int] = None,
        max_players: Optional[int] = None,
        player_ids: Optional[List[str]] = None,
        session_id: Optional[str] = None,
    ) -> GameSession:
        min_players = min_players_to_start or self.settings.default_min_players
        max_players = max_players or self.settings.default_max_players
        player_ids = player_ids or []

        if min_players < 1:
            raise InvalidSessionConfig("minPlayersToStart must be at least 1")
        if max_players < min_players:
            raise InvalidSessionConfig(
                f"maxPlayers ({max_players}) is below minPlayersToStart ({min_players})"
            )
        if buy_in_amount < initial_big_blind:
            raise InvalidSessionConfig(
                f"buyInAmount ({buy_in_amount}) does not cover the big blind ({initial_big_blind})"
            )
        if len(set(player_ids)) != len(player_ids):
            raise InvalidSessionConfig("Duplicate player ids")
        if len(player_ids) > max_players:
            raise InvalidSessionConfig(f"More than {max_players} players")

        session = GameSession(
            session_id=session_id or self.store.new_session_id(),
            min_players_to_start=min_players,
            max_players=max_players,
            initial_big_blind=initial_big_blind,
            buy_in_amount=buy_in_amount,
            players=[
                Player(id=pid, chips=buy_in_amount, position=i)
                for i, pid in enumerate(player_ids)
            ],
            min_raise_amount=initial_big_blind,
        )
        return self.store.create(session)

    def delete_session(self, session_id: str) -> bool:
        self.locks.discard(session_id)
        return self.store.delete(session_id)

    async def join_waiting_queue(self, session_id: str, player_id: str) -> GameSession:
        """Queue a player for the next free seat."""
        async with self._locked(session_id):
            session = self.get_session(session_id)
            if session.is_seated(player_id):
                raise PlayerAlreadySeated(player_id)
            if player_id in session.waiting_queue:
                raise PlayerAlreadyQueued(player_id)
            loaded_version = session.version
            session.waiting_queue.append(player_id)
            self.store.save(session, expected_version=loaded_version)
        logger.info(f"Player {player_id} queued in game {session_id} "
                    f"(position {len(session.waiting_queue)})")
        return session

    async def mark_ready(
        self,
        session_id: str,
        player_id: str,
        connection_id: Optional[str] = None,
    ) -> Tuple[GameSession, Optional[CycleResult]]:
        """
        Flag a seated player as ready.

        If that leaves every eligible player ready, the readiness cycle runs
        straight away and its result is returned alongside the session.
        """
        async with self._locked(session_id):
            session = self.get_session(session_id)
            player = session.get_player(player_id)
            if player is None:
                raise PlayerNotSeated(player_id)
            loaded_version = session.version
            player.is_ready = True
            self.store.save(session, expected_version=loaded_version)
            start_round = not session.game_in_progress and all_eligible_ready(session)

        if not start_round:
            return session, None
        logger.info(f"Game {session_id}: all eligible players ready")
        result = await self.check_readiness(session_id, connection_id)
        return result.session or session, result

    async def open_countdown(self, session_id: str) -> GameSession:
        """
        Start the readiness window and arm the timer that closes it.

        The window opens once a round is over, so a round still marked as
        running is settled here: the next cycle may then start a new one.
        """
        async with self._locked(session_id):
            session = self.get_session(session_id)
            loaded_version = session.version
            now = self._clock()
            if session.game_in_progress:
                session.game_in_progress = False
                session.game_stage = GameStage.GAME_OVER
                session.game_over_timestamp = now
                logger.info(f"Game {session_id}: round settled")
            session.readiness_countdown_start = now
            self.store.save(session, expected_version=loaded_version)

        timer_id = self.settings.readiness_timer_id(session_id)
        self.timers.schedule(
            timer_id,
            self.settings.readiness_countdown_ms / 1000,
            lambda: self.check_readiness(session_id),
        )
        logger.info(f"Game {session_id}: readiness countdown opened ({timer_id})")
        return session


# Global singleton
readiness_service = ReadinessService(
    store=state_store,
    broadcaster=connection_manager,
    timers=timer_registry,
    locks=session_locks,
)
