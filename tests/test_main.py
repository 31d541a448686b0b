"""Tests for the room HTTP and WebSocket endpoints."""
import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from hearts import main
from hearts.cards import deal, generate_deck
from hearts.config import Settings
from hearts.game import new_game, start_round_with_passing_phase


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "settings", Settings(bot_delay=30.0, trick_pause=30.0))
    monkeypatch.setattr(main, "store", main.RoomStore())
    with TestClient(main.app) as c:
        yield c


def _create(client, **body):
    body.setdefault("seats", ["alice"])
    body.setdefault("seed", 5)
    resp = client.post("/api/rooms", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_room_fills_seats_with_ai(client):
    data = _create(client, difficulty="hard")
    players = data["state"]["players"]
    assert [p["id"] for p in players] == ["alice", "bot-1", "bot-2", "bot-3"]
    assert [p["is_ai"] for p in players] == [False, True, True, True]
    assert all(p["difficulty"] == "hard" for p in players[1:])
    assert data["state"]["phase"]["kind"] == "passing"
    assert data["state"]["phase"]["submitted"] == ["bot-1", "bot-2", "bot-3"]
    assert all(p["hand_size"] == 13 for p in players)


def test_get_room(client):
    data = _create(client)
    resp = client.get(f"/api/rooms/{data['room_id']}")
    assert resp.status_code == 200
    assert resp.json()["state"] == data["state"]

    assert client.get("/api/rooms/NOPE").status_code == 404


def test_http_views_hide_every_hand(client):
    data = _create(client)
    fetched = client.get(f"/api/rooms/{data['room_id']}").json()
    for state in (data["state"], fetched["state"]):
        assert [p["hand"] for p in state["players"]] == [[], [], [], []]
        assert [p["hand_size"] for p in state["players"]] == [13, 13, 13, 13]
        assert state["hands"] == [[], [], [], []]
        assert state["phase"]["submissions"] == {}
        assert state["phase"]["submitted"] == ["bot-1", "bot-2", "bot-3"]
        assert state["your_id"] is None


def test_create_room_rejects_bad_input(client):
    resp = client.post("/api/rooms", json={"seats": ["a", "b", "c", "d", "e"]})
    assert resp.status_code == 400
    resp = client.post("/api/rooms", json={"seats": ["a"], "difficulty": "impossible"})
    assert resp.status_code == 400
    resp = client.post("/api/rooms", json={"seats": ["a", "a"]})
    assert resp.status_code == 400


def test_socket_rejects_unknown_seat(client):
    data = _create(client)
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/{data['room_id']}/mallory") as ws:
            ws.receive_json()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/{data['room_id']}/bot-1") as ws:
            ws.receive_json()


def test_socket_pass_and_reveal(client):
    data = _create(client)
    rid = data["room_id"]

    with client.websocket_connect(f"/ws/{rid}/alice") as ws:
        msg = ws.receive_json()
        assert msg["type"] == "state"
        view = msg["state"]
        hand = view["players"][0]["hand"]
        assert len(hand) == 13
        assert view["hands"][0] == hand
        assert view["players"][1]["hand"] == []
        assert view["players"][1]["hand_size"] == 13
        assert view["phase"]["submissions"] == {}
        assert view["phase"]["submitted"] == ["bot-1", "bot-2", "bot-3"]
        assert view["pass_label"] == "Pass Left"
        assert view["legal_moves"] == []

        ws.send_json({"type": "play_card", "card": "2C"})
        msg = ws.receive_json()
        assert msg == {"type": "error", "error": "Not in playing phase", "version": view["version"]}

        ws.send_json({"type": "pass_cards", "cards": hand[:2]})
        assert ws.receive_json()["error"] == "Must select exactly 3 cards to pass"

        ws.send_json({"type": "pass_cards", "cards": ["ZZ", "2C", "3C"]})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "pass_cards", "cards": hand[:3], "version": view["version"]})
        msg = ws.receive_json()
        assert msg["type"] == "state"
        assert msg["state"]["phase"]["kind"] == "revealing"
        assert not set(hand[:3]) & set(msg["state"]["players"][0]["hand"])
        assert len(msg["state"]["phase"]["received"][0]) == 3
        assert msg["state"]["phase"]["received"][1] == []

        ws.send_json({"type": "ready"})
        msg = ws.receive_json()
        assert msg["state"]["phase"]["kind"] == "playing"
        version = msg["state"]["version"]

        ws.send_json({"type": "ready", "version": version - 1})
        assert ws.receive_json()["error"] == "Stale state version"

        ws.send_json({"type": "next_round"})
        assert ws.receive_json()["error"] == "Round not complete"

        ws.send_json({"type": "new_game"})
        assert ws.receive_json()["error"] == "Game is not over"

        ws.send_json({"type": "shuffle"})
        assert ws.receive_json()["error"] == "Unknown action: 'shuffle'"


class BlockingSocket:
    """Stands in for a WebSocket whose sends stall until released."""

    def __init__(self):
        self.sent = []
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def send_json(self, data):
        self.entered.set()
        await self.release.wait()
        self.sent.append(data)


def test_rescheduling_does_not_cut_off_a_broadcast(monkeypatch):
    monkeypatch.setattr(main, "settings", Settings(bot_delay=30.0, trick_pause=30.0))
    seats = [{"id": "alice"}] + [{"id": f"bot-{i}", "is_ai": True} for i in (1, 2, 3)]

    async def scenario():
        state = start_round_with_passing_phase(new_game(seats), deal(generate_deck()))
        room = main.RoomStore().create(state)
        ws = BlockingSocket()
        room.connections["alice"] = ws

        main.schedule_bot_tick(room, 0)
        await asyncio.wait_for(ws.entered.wait(), 1)
        first = room.bot_task
        main.schedule_bot_tick(room, 30)
        assert room.bot_task is not first

        ws.release.set()
        for _ in range(100):
            if ws.sent:
                break
            await asyncio.sleep(0.01)
        room.bot_task.cancel()
        return ws

    ws = asyncio.run(scenario())
    assert ws.sent[0]["type"] == "state"
    assert ws.sent[0]["state"]["phase"]["submitted"] == ["bot-1", "bot-2", "bot-3"]
