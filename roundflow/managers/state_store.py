"""In-memory GameSession store with version-checked, full-document saves."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, List, Optional

from roundflow.core.exceptions import SessionAlreadyExists, StaleSession
from roundflow.game.session_state import GameSession

logger = logging.getLogger(__name__)


class StateStore:
    """
    Keeps one serialised document per session.

    load() always returns a fresh object, so callers may mutate what they
    get back without touching the stored copy. save() replaces the whole
    document and bumps the version; passing ``expected_version`` turns it
    into a compare-and-swap.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def new_session_id() -> str:
        return str(uuid.uuid4())[:8]

    def create(self, session: GameSession) -> GameSession:
        if session.session_id in self._documents:
            raise SessionAlreadyExists(session.session_id)
        session.version = 1
        self._documents[session.session_id] = session.to_dict()
        logger.info(f"Created game {session.session_id}")
        return session

    def load(self, session_id: str) -> Optional[GameSession]:
        doc = self._documents.get(session_id)
        if doc is None:
            return None
        return GameSession.from_dict(doc)

    def save(self, session: GameSession, expected_version: Optional[int] = None) -> int:
        """Replace the stored document. Returns the new version."""
        current = self._documents.get(session.session_id)
        current_version = current["version"] if current else 0
        if expected_version is not None and expected_version != current_version:
            raise StaleSession(session.session_id, expected_version, current_version)
        session.version = current_version + 1
        self._documents[session.session_id] = session.to_dict()
        return session.version

    def list_sessions(self) -> List[dict]:
        result = []
        for sid, doc in self._documents.items():
            result.append({
                "game_id": sid,
                "players": len(doc["players"]),
                "waiting": len(doc["waitingQueue"]),
                "max_players": doc["maxPlayers"],
                "game_stage": doc["gameStage"],
                "game_in_progress": doc["gameInProgress"],
            })
        return result

    def delete(self, session_id: str) -> bool:
        if session_id in self._documents:
            del self._documents[session_id]
            return True
        return False


# Global singleton
state_store = StateStore()
