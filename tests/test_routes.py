"""Unit tests for routes.py — REST API endpoints."""
import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from roundflow.main import app
from roundflow.managers.session_locks import session_locks


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


def _create(client, **overrides) -> str:
    body = {"initial_big_blind": 10, "buy_in_amount": 500, "player_ids": ["a", "b", "c"]}
    body.update(overrides)
    resp = client.post("/api/sessions", json=body)
    assert resp.status_code == 200
    return resp.json()["gameId"]


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestCreateSession:
    def test_create_default(self, client):
        resp = client.post("/api/sessions", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["initialBigBlind"] == 20
        assert data["buyInAmount"] == 1000
        assert data["playerCount"] == 0
        assert data["gameStage"] == "preDealing"

    def test_table_limits_default_from_settings(self, client):
        data = client.post("/api/sessions", json={}).json()
        assert data["minPlayersToStart"] == 2
        assert data["maxPlayers"] == 9

    def test_create_with_players(self, client):
        game_id = _create(client)
        data = client.get(f"/api/sessions/{game_id}").json()
        assert [p["id"] for p in data["players"]] == ["a", "b", "c"]
        assert [p["position"] for p in data["players"]] == [0, 1, 2]

    def test_buy_in_below_big_blind(self, client):
        resp = client.post("/api/sessions", json={"initial_big_blind": 50, "buy_in_amount": 10})
        assert resp.status_code == 400

    def test_validation_error(self, client):
        resp = client.post("/api/sessions", json={"max_players": 12})
        assert resp.status_code == 422


class TestSessions:
    def test_list(self, client):
        game_id = _create(client)
        resp = client.get("/api/sessions")
        assert resp.status_code == 200
        assert game_id in {s["game_id"] for s in resp.json()["sessions"]}

    def test_get_not_found(self, client):
        assert client.get("/api/sessions/nonexistent").status_code == 404

    def test_delete(self, client):
        game_id = _create(client)
        assert client.delete(f"/api/sessions/{game_id}").status_code == 200
        assert client.get(f"/api/sessions/{game_id}").status_code == 404
        assert client.delete(f"/api/sessions/{game_id}").status_code == 404


class TestQueue:
    def test_join(self, client):
        game_id = _create(client)
        resp = client.post(f"/api/sessions/{game_id}/queue", json={"player_id": "z"})
        assert resp.status_code == 200
        assert resp.json()["waitingQueue"] == ["z"]

    def test_join_twice(self, client):
        game_id = _create(client)
        client.post(f"/api/sessions/{game_id}/queue", json={"player_id": "z"})
        resp = client.post(f"/api/sessions/{game_id}/queue", json={"player_id": "z"})
        assert resp.status_code == 400

    def test_seated_player_cannot_queue(self, client):
        game_id = _create(client)
        resp = client.post(f"/api/sessions/{game_id}/queue", json={"player_id": "a"})
        assert resp.status_code == 400

    def test_join_missing_game(self, client):
        resp = client.post("/api/sessions/nonexistent/queue", json={"player_id": "z"})
        assert resp.status_code == 404


class TestReady:
    def test_partial_ready(self, client):
        game_id = _create(client)
        resp = client.post(f"/api/sessions/{game_id}/ready", json={"player_id": "a"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["roundStarted"] is False
        assert data["cycle"] is None

    def test_everyone_ready_starts_round(self, client):
        game_id = _create(client)
        client.post(f"/api/sessions/{game_id}/queue", json={"player_id": "z"})
        for pid in ("a", "b"):
            client.post(f"/api/sessions/{game_id}/ready", json={"player_id": pid})
        resp = client.post(f"/api/sessions/{game_id}/ready", json={"player_id": "c"})
        data = resp.json()
        assert data["roundStarted"] is True
        assert data["game"]["smallBlindIndex"] == 1
        assert [p["id"] for p in data["game"]["players"]] == ["a", "b", "c", "z"]
        assert data["game"]["waitingQueue"] == []

    def test_unknown_player(self, client):
        game_id = _create(client)
        resp = client.post(f"/api/sessions/{game_id}/ready", json={"player_id": "nobody"})
        assert resp.status_code == 400


class TestReadinessCheck:
    def test_missing_game_returns_500(self, client):
        resp = client.post("/api/readiness-check", json={"sessionId": "nonexistent"})
        assert resp.status_code == 500
        assert resp.json() == {"message": "Game nonexistent not found"}
        assert "nonexistent" not in session_locks

    def test_no_countdown_returns_500(self, client):
        game_id = _create(client)
        resp = client.post("/api/readiness-check", json={"sessionId": game_id})
        assert resp.status_code == 500

    def test_countdown_then_check(self, client):
        game_id = _create(client)
        resp = client.post(f"/api/sessions/{game_id}/countdown")
        assert resp.status_code == 200
        assert resp.json()["timerId"] == f"game-{game_id}-readiness-timer"
        # countdown has not run out yet
        resp = client.post("/api/readiness-check", json={"sessionId": game_id})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Players are not ready yet."}

    def test_insufficient_players_is_success(self, client):
        game_id = _create(client, player_ids=["solo"])
        resp = client.post(f"/api/sessions/{game_id}/ready", json={"player_id": "solo"})
        assert resp.json()["cycle"] == {"message": "Not enough players to start a new round."}
        assert resp.json()["roundStarted"] is False


class TestWebSocket:
    def test_missing_game_closes(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/nonexistent/c1"):
                pass

    def test_ready_flow_pushes_check_readiness(self, client):
        game_id = _create(client, player_ids=["a", "b"])
        with client.websocket_connect(f"/ws/{game_id}/a") as ws:
            first = ws.receive_json()
            assert first["action"] == "gameState"
            assert first["game"]["gameId"] == game_id

            ws.send_json({"type": "ready"})
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"action": "pong"}

            client.post(f"/api/sessions/{game_id}/ready", json={"player_id": "b"})
            pushed = ws.receive_json()
            assert pushed["action"] == "checkReadiness"
            assert pushed["game"]["gameInProgress"] is True
            assert pushed["game"]["smallBlindIndex"] == 1

    def test_ready_for_unknown_player_reports_error(self, client):
        game_id = _create(client)
        with client.websocket_connect(f"/ws/{game_id}/watcher") as ws:
            ws.receive_json()
            ws.send_json({"type": "ready"})
            assert ws.receive_json() == {"error": "Player watcher is not seated"}

    def test_malformed_message(self, client):
        game_id = _create(client)
        with client.websocket_connect(f"/ws/{game_id}/a") as ws:
            ws.receive_json()
            ws.send_json({"payload": {}})
            assert ws.receive_json()["error"] == "Malformed message"
