"""End-to-end tests through the FastAPI WebSocket endpoint."""
import pytest
from fastapi.testclient import TestClient

import main
from chat_relay import SessionEngine


@pytest.fixture
def client(monkeypatch):
    """A TestClient bound to a fresh engine, sharing one event loop."""
    monkeypatch.setattr(main, "engine", SessionEngine())
    with TestClient(main.app) as test_client:
        yield test_client


def receive_event(ws, expected_type):
    frame = ws.receive_json()
    assert frame["type"] == expected_type, frame
    return frame["data"]


def open_and_join(ws, username, room):
    connection_id = receive_event(ws, "connected")["connectionId"]
    ws.send_json({"type": "join", "username": username, "room": room})
    history = receive_event(ws, "message_history")
    receive_event(ws, "user_joined")
    receive_event(ws, "users_list")
    confirmation = receive_event(ws, "join_success")
    return connection_id, history, confirmation


def test_join_and_chat(client):
    with client.websocket_connect("/ws") as ws:
        connection_id, history, confirmation = open_and_join(ws, "alice", "tech")

        assert connection_id.startswith("ws_")
        assert history == []
        assert confirmation == {"username": "alice", "room": "tech", "usersCount": 1}

        ws.send_json({"type": "chat_message", "message": "<script>"})
        message = receive_event(ws, "received_message")
        assert message["message"] == "&lt;script&gt;"
        assert message["connectionId"] == connection_id


def test_two_clients_share_a_room(client):
    with client.websocket_connect("/ws") as ws1:
        alice_id, _, _ = open_and_join(ws1, "alice", "tech")

        with client.websocket_connect("/ws") as ws2:
            bob_id, _, confirmation = open_and_join(ws2, "bob", "tech")
            assert confirmation["usersCount"] == 2

            # alice sees bob arrive
            assert "bob" in receive_event(ws1, "user_joined")["message"]
            users = receive_event(ws1, "users_list")
            assert {u["connectionId"] for u in users} == {alice_id, bob_id}

            ws2.send_json({"type": "chat_message", "message": "hi alice"})
            assert receive_event(ws1, "received_message")["message"] == "hi alice"
            assert receive_event(ws2, "received_message")["message"] == "hi alice"

            ws1.send_json({"type": "private_message", "message": "psst", "targetConnectionId": bob_id})
            assert receive_event(ws2, "private_message_received")["fromUsername"] == "alice"
            assert receive_event(ws1, "private_message_sent")["toUsername"] == "bob"

        # bob's socket closed: alice is told and the user list shrinks
        assert "bob" in receive_event(ws1, "user_left")["message"]
        assert receive_event(ws1, "users_list") == [{"username": "alice", "connectionId": alice_id}]


def test_duplicate_username_is_rejected(client):
    with client.websocket_connect("/ws") as ws1:
        open_and_join(ws1, "alice", "tech")

        with client.websocket_connect("/ws") as ws2:
            receive_event(ws2, "connected")
            ws2.send_json({"type": "join", "username": "alice", "room": "tech"})
            error = receive_event(ws2, "error")
            assert error["message"] == "This username is already taken in this room"

            # still unjoined, but the directory is available
            ws2.send_json({"type": "get_rooms"})
            assert receive_event(ws2, "rooms_list") == [{"name": "tech", "usersCount": 1}]


def test_invalid_frames_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        receive_event(ws, "connected")

        ws.send_text("{not json")
        assert receive_event(ws, "error")["message"] == "Invalid JSON format"

        ws.send_json({"type": "teleport"})
        assert receive_event(ws, "error")["message"] == "Unknown event type: teleport"

        ws.send_json({"type": "chat_message", "message": "hello"})
        assert receive_event(ws, "error")["message"] == "You must join a room first"

        ws.send_json({"type": "get_rooms"})
        assert receive_event(ws, "rooms_list") == []


def test_health_and_stats(client):
    with client.websocket_connect("/ws") as ws:
        open_and_join(ws, "alice", "tech")
        ws.send_json({"type": "chat_message", "message": "hello"})
        receive_event(ws, "received_message")

        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "healthy"

        stats = client.get("/stats").json()
        assert stats["connections"] == 1
        assert stats["joined_users"] == 1
        assert stats["stored_messages"] == 1
        assert stats["rate_windows"] == 1


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Chat Relay" in response.text
    assert "/ws" in response.text
