"""Per-session asyncio locks, so only one readiness cycle runs per table."""
from __future__ import annotations
import asyncio
from typing import Dict


class SessionLocks:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._locks

    def discard(self, session_id: str) -> None:
        """Forget a session's lock unless someone is holding it."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]


# Global singleton
session_locks = SessionLocks()
