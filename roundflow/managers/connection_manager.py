"""
WebSocket connection registry and broadcaster.

Maintains a mapping: session_id → connection_id → WebSocket.
Fan-out is unordered and best-effort: each recipient succeeds or fails on
its own, and a failed socket is dropped from the registry.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    connection_id: str
    delivered: bool
    error: Optional[str] = None


class ConnectionManager:
    def __init__(self) -> None:
        # session_id → { connection_id → WebSocket }
        self._connections: Dict[str, Dict[str, WebSocket]] = {}

    async def connect(self, session_id: str, connection_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        if session_id not in self._connections:
            self._connections[session_id] = {}
        self._connections[session_id][connection_id] = websocket
        logger.info(f"Connected: {connection_id} in game {session_id}")

    def disconnect(self, session_id: str, connection_id: str) -> None:
        if session_id in self._connections:
            self._connections[session_id].pop(connection_id, None)
            if not self._connections[session_id]:
                del self._connections[session_id]
        logger.info(f"Disconnected: {connection_id} from game {session_id}")

    async def send_personal(self, session_id: str, connection_id: str, payload: dict) -> bool:
        """Send a message to one connection. Returns False if it could not be delivered."""
        ws = self._connections.get(session_id, {}).get(connection_id)
        if ws is None:
            return False
        report = await self._safe_send(ws, session_id, connection_id, payload)
        return report.delivered

    async def notify_all(self, session_id: str, payload: dict) -> List[DeliveryReport]:
        """Send the same payload to every connection in a session."""
        connections = self._connections.get(session_id, {})
        tasks = [
            self._safe_send(ws, session_id, connection_id, payload)
            for connection_id, ws in list(connections.items())
        ]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def _safe_send(
        self,
        ws: WebSocket,
        session_id: str,
        connection_id: str,
        payload: dict,
    ) -> DeliveryReport:
        try:
            await ws.send_json(payload)
        except Exception as e:
            logger.warning(f"WS send failed {connection_id} in game {session_id}: {e}")
            self.disconnect(session_id, connection_id)
            return DeliveryReport(connection_id, delivered=False, error=str(e))
        return DeliveryReport(connection_id, delivered=True)

    def is_connected(self, session_id: str, connection_id: str) -> bool:
        return connection_id in self._connections.get(session_id, {})

    def connection_count(self, session_id: str) -> int:
        return len(self._connections.get(session_id, {}))


# Global singleton
connection_manager = ConnectionManager()
