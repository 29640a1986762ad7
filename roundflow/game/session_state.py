"""GameSession and Player dataclasses, GameStage enum, and their wire format."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class GameStage(Enum):
    PRE_DEALING = "preDealing"
    PRE_FLOP = "preFlop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"
    SHOWDOWN = "showdown"
    GAME_OVER = "gameOver"


@dataclass
class Player:
    """A seated player. ``position`` always mirrors the index in GameSession.players."""
    id: str
    chips: int
    position: int = 0
    is_ready: bool = False
    # round-scoped
    bet: int = 0
    in_hand: bool = True
    has_acted: bool = False
    pot_contribution: int = 0
    is_all_in: bool = False
    amount_won: int = 0
    hand_description: Optional[str] = None
    best_hand: Optional[List[str]] = None
    hand: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position,
            "chips": self.chips,
            "isReady": self.is_ready,
            "bet": self.bet,
            "inHand": self.in_hand,
            "hasActed": self.has_acted,
            "potContribution": self.pot_contribution,
            "isAllIn": self.is_all_in,
            "amountWon": self.amount_won,
            "handDescription": self.hand_description,
            "bestHand": list(self.best_hand) if self.best_hand is not None else None,
            "hand": list(self.hand),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        best_hand = data.get("bestHand")
        return cls(
            id=data["id"],
            chips=data["chips"],
            position=data.get("position", 0),
            is_ready=data.get("isReady", False),
            bet=data.get("bet", 0),
            in_hand=data.get("inHand", True),
            has_acted=data.get("hasActed", False),
            pot_contribution=data.get("potContribution", 0),
            is_all_in=data.get("isAllIn", False),
            amount_won=data.get("amountWon", 0),
            hand_description=data.get("handDescription"),
            best_hand=list(best_hand) if best_hand is not None else None,
            hand=list(data.get("hand", [])),
        )


@dataclass
class GameSession:
    session_id: str
    min_players_to_start: int
    max_players: int
    initial_big_blind: int
    buy_in_amount: int
    players: List[Player] = field(default_factory=list)
    waiting_queue: List[str] = field(default_factory=list)
    small_blind_index: int = 0
    readiness_countdown_start: Optional[datetime] = None
    # round-scoped
    pot: int = 0
    community_cards: List[str] = field(default_factory=list)
    deck: List[str] = field(default_factory=list)
    game_stage: GameStage = GameStage.PRE_DEALING
    current_turn: int = 0
    highest_bet: int = 0
    min_raise_amount: int = 0
    net_winners: List[Dict[str, Any]] = field(default_factory=list)
    betting_started: bool = False
    game_in_progress: bool = False
    game_over_timestamp: Optional[datetime] = None
    # compare-and-swap token, owned by the state store
    version: int = 0

    @property
    def player_count(self) -> int:
        return len(self.players)

    def get_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def is_seated(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gameId": self.session_id,
            "players": [p.to_dict() for p in self.players],
            "playerCount": self.player_count,
            "waitingQueue": list(self.waiting_queue),
            "smallBlindIndex": self.small_blind_index,
            "minPlayersToStart": self.min_players_to_start,
            "maxPlayers": self.max_players,
            "initialBigBlind": self.initial_big_blind,
            "buyInAmount": self.buy_in_amount,
            "readinessCountdownStart": _format_ts(self.readiness_countdown_start),
            "pot": self.pot,
            "communityCards": list(self.community_cards),
            "deck": list(self.deck),
            "gameStage": self.game_stage.value,
            "currentTurn": self.current_turn,
            "highestBet": self.highest_bet,
            "minRaiseAmount": self.min_raise_amount,
            "netWinners": [dict(w) for w in self.net_winners],
            "bettingStarted": self.betting_started,
            "gameInProgress": self.game_in_progress,
            "gameOverTimeStamp": _format_ts(self.game_over_timestamp),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameSession":
        # playerCount is derived from players and deliberately not read back
        return cls(
            session_id=data["gameId"],
            min_players_to_start=data["minPlayersToStart"],
            max_players=data["maxPlayers"],
            initial_big_blind=data["initialBigBlind"],
            buy_in_amount=data["buyInAmount"],
            players=[Player.from_dict(p) for p in data.get("players", [])],
            waiting_queue=list(data.get("waitingQueue", [])),
            small_blind_index=data.get("smallBlindIndex", 0),
            readiness_countdown_start=_parse_ts(data.get("readinessCountdownStart")),
            pot=data.get("pot", 0),
            community_cards=list(data.get("communityCards", [])),
            deck=list(data.get("deck", [])),
            game_stage=GameStage(data.get("gameStage", GameStage.PRE_DEALING.value)),
            current_turn=data.get("currentTurn", 0),
            highest_bet=data.get("highestBet", 0),
            min_raise_amount=data.get("minRaiseAmount", 0),
            net_winners=[dict(w) for w in data.get("netWinners", [])],
            betting_started=data.get("bettingStarted", False),
            game_in_progress=data.get("gameInProgress", False),
            game_over_timestamp=_parse_ts(data.get("gameOverTimeStamp")),
            version=data.get("version", 0),
        )


def _format_ts(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def _parse_ts(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw) if raw else None
