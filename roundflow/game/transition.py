"""
RoundTransitionEngine: reseat players, rotate the small blind and reset
round state between hands.

The engine never mutates the session it is given. It works on a deep copy
and reports what happened in a TransitionResult.
"""
from __future__ import annotations
import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from roundflow.game.session_state import GameSession, GameStage, Player

logger = logging.getLogger(__name__)

Dealer = Callable[[GameSession], None]


class TransitionOutcome(Enum):
    COMMITTED = "committed"
    INSUFFICIENT_PLAYERS = "insufficient_players"


@dataclass
class TransitionResult:
    outcome: TransitionOutcome
    session: GameSession
    admitted: List[str] = field(default_factory=list)
    evicted: List[str] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.outcome == TransitionOutcome.COMMITTED


def filter_active_players(session: GameSession) -> Tuple[List[Player], List[Player]]:
    """Split seated players into (kept, evicted), preserving seat order."""
    active: List[Player] = []
    evicted: List[Player] = []
    for p in session.players:
        if p.chips >= session.initial_big_blind:
            active.append(p)
        else:
            evicted.append(p)
    return active, evicted


def new_player(player_id: str, chips: int, position: int) -> Player:
    """A freshly admitted player: bought in, not ready, default round fields."""
    return Player(id=player_id, chips=chips, position=position, is_ready=False)


def admit_from_queue(
    queue: List[str],
    seated_ids: List[str],
    space_available: int,
) -> Tuple[List[str], List[str]]:
    """
    Take up to ``space_available`` ids from the front of the queue.

    Returns (admitted, remaining). Ids that are already seated, or that
    repeat an earlier queue entry, are stale and dropped from both lists.
    """
    seen = set(seated_ids)
    live: List[str] = []
    for pid in queue:
        if pid in seen:
            continue
        seen.add(pid)
        live.append(pid)

    take = max(0, space_available)
    return live[:take], live[take:]


def reset_player_for_round(player: Player, position: int) -> None:
    player.position = position
    player.bet = 0
    player.is_all_in = False
    player.has_acted = False
    player.in_hand = True
    player.amount_won = 0
    player.hand_description = None
    player.is_ready = False
    player.pot_contribution = 0


def reset_session_for_round(session: GameSession) -> None:
    session.pot = 0
    session.community_cards = []
    session.current_turn = session.small_blind_index
    session.game_stage = GameStage.PRE_DEALING
    session.highest_bet = 0
    session.net_winners = []
    session.game_in_progress = True
    session.game_over_timestamp = None
    session.min_raise_amount = session.initial_big_blind
    session.betting_started = False


class RoundTransitionEngine:
    """
    Moves a table from readiness into a fresh round.

    Args:
        dealer: optional hook called with the post-reset session of every
            committed transition (deck construction, blinds, hole cards).
    """

    def __init__(self, dealer: Optional[Dealer] = None) -> None:
        self._dealer = dealer

    def transition(self, session: GameSession) -> TransitionResult:
        draft = copy.deepcopy(session)

        active, evicted = filter_active_players(draft)
        space_available = draft.max_players - len(active)
        admitted_ids, remaining = admit_from_queue(
            draft.waiting_queue,
            [p.id for p in active],
            space_available,
        )
        admitted = [
            new_player(pid, draft.buy_in_amount, len(active) + i)
            for i, pid in enumerate(admitted_ids)
        ]
        updated = active + admitted

        if len(updated) < draft.min_players_to_start:
            logger.info(
                f"Game {session.session_id}: not enough players to start a new round "
                f"({len(updated)} < {draft.min_players_to_start})"
            )
            return TransitionResult(
                outcome=TransitionOutcome.INSUFFICIENT_PLAYERS,
                session=copy.deepcopy(session),
            )

        for index, player in enumerate(updated):
            reset_player_for_round(player, index)
        draft.players = updated
        draft.waiting_queue = remaining
        draft.small_blind_index = (session.small_blind_index + 1) % len(updated)
        reset_session_for_round(draft)

        logger.info(
            f"Game {session.session_id}: new round with {draft.player_count} players, "
            f"small blind seat {draft.small_blind_index}, "
            f"admitted {admitted_ids}, evicted {[p.id for p in evicted]}"
        )

        if self._dealer is not None:
            self._dealer(draft)

        return TransitionResult(
            outcome=TransitionOutcome.COMMITTED,
            session=draft,
            admitted=admitted_ids,
            evicted=[p.id for p in evicted],
        )
