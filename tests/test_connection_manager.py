"""Unit tests for connection_manager.py — ConnectionManager."""
import asyncio
from unittest.mock import AsyncMock
from roundflow.managers.connection_manager import ConnectionManager


def _mock_ws():
    """Create a mock WebSocket."""
    ws = AsyncMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


class TestConnect:
    def test_connect_and_is_connected(self):
        async def _run():
            cm = ConnectionManager()
            ws = _mock_ws()
            await cm.connect("game1", "c1", ws)
            assert cm.is_connected("game1", "c1") is True
            ws.accept.assert_awaited_once()
        asyncio.run(_run())

    def test_connect_multiple(self):
        async def _run():
            cm = ConnectionManager()
            await cm.connect("game1", "c1", _mock_ws())
            await cm.connect("game1", "c2", _mock_ws())
            assert cm.connection_count("game1") == 2
        asyncio.run(_run())

    def test_not_connected(self):
        cm = ConnectionManager()
        assert cm.is_connected("game1", "c1") is False


class TestDisconnect:
    def test_disconnect_removes_empty_game(self):
        async def _run():
            cm = ConnectionManager()
            await cm.connect("game1", "c1", _mock_ws())
            cm.disconnect("game1", "c1")
            assert cm.is_connected("game1", "c1") is False
            assert cm.connection_count("game1") == 0
        asyncio.run(_run())

    def test_disconnect_nonexistent_noop(self):
        cm = ConnectionManager()
        cm.disconnect("game1", "c1")  # should not raise


class TestSendPersonal:
    def test_send_to_connected(self):
        async def _run():
            cm = ConnectionManager()
            ws = _mock_ws()
            await cm.connect("game1", "c1", ws)
            assert await cm.send_personal("game1", "c1", {"error": "boom"}) is True
            ws.send_json.assert_awaited_with({"error": "boom"})
        asyncio.run(_run())

    def test_send_to_unknown(self):
        async def _run():
            cm = ConnectionManager()
            assert await cm.send_personal("game1", "c1", {}) is False
        asyncio.run(_run())

    def test_send_error_disconnects(self):
        async def _run():
            cm = ConnectionManager()
            ws = _mock_ws()
            ws.send_json.side_effect = Exception("connection lost")
            await cm.connect("game1", "c1", ws)
            assert await cm.send_personal("game1", "c1", {}) is False
            assert cm.is_connected("game1", "c1") is False
        asyncio.run(_run())


class TestNotifyAll:
    def test_sends_to_all(self):
        async def _run():
            cm = ConnectionManager()
            ws1, ws2 = _mock_ws(), _mock_ws()
            await cm.connect("game1", "c1", ws1)
            await cm.connect("game1", "c2", ws2)
            payload = {"game": {"gameId": "game1"}, "action": "checkReadiness"}
            reports = await cm.notify_all("game1", payload)
            ws1.send_json.assert_awaited_with(payload)
            ws2.send_json.assert_awaited_with(payload)
            assert sorted(r.connection_id for r in reports) == ["c1", "c2"]
            assert all(r.delivered for r in reports)
        asyncio.run(_run())

    def test_other_games_untouched(self):
        async def _run():
            cm = ConnectionManager()
            ws1, ws2 = _mock_ws(), _mock_ws()
            await cm.connect("game1", "c1", ws1)
            await cm.connect("game2", "c2", ws2)
            await cm.notify_all("game1", {"x": 1})
            ws2.send_json.assert_not_awaited()
        asyncio.run(_run())

    def test_partial_failure_reported(self):
        async def _run():
            cm = ConnectionManager()
            good, bad = _mock_ws(), _mock_ws()
            bad.send_json.side_effect = Exception("broken pipe")
            await cm.connect("game1", "good", good)
            await cm.connect("game1", "bad", bad)
            reports = {r.connection_id: r for r in await cm.notify_all("game1", {"x": 1})}
            assert reports["good"].delivered is True
            assert reports["bad"].delivered is False
            assert reports["bad"].error == "broken pipe"
            assert cm.is_connected("game1", "bad") is False
            assert cm.is_connected("game1", "good") is True
        asyncio.run(_run())

    def test_empty_game(self):
        async def _run():
            cm = ConnectionManager()
            assert await cm.notify_all("game1", {"x": 1}) == []
        asyncio.run(_run())
