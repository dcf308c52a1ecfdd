"""Integration smoke tests for the REST and WebSocket surface (in-memory UoW)."""
from __future__ import annotations

import uuid

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chat_hub.api.deps import get_uow
from chat_hub.app import create_app
from chat_hub.config import settings
from chat_hub.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_hub.infrastructure.ws.hub import ChatHub
from tests.conftest import FakeUoW, at, make_message, make_room, make_user, uow_factory


def _make_token(sub: str = "alice") -> str:
    return jwt.encode({"sub": sub}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _auth(sub: str = "alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub)}"}


@pytest.fixture
def app_with_uow():
    app = create_app()
    uow = FakeUoW()
    uow.add_users(make_user("alice"), make_user("bob"), make_user("carol"))

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.state.hub = ChatHub(
        uow_factory(uow),
        HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM),
        persistence_timeout=1.0,
        heartbeat_interval=30,
        liveness_window=40,
    )
    return app, uow


@pytest.fixture
def client(app_with_uow):
    app, _ = app_with_uow
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def uow(app_with_uow):
    _, uow = app_with_uow
    return uow


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"]


def test_list_rooms_empty(client):
    resp = client.get("/api/v1/chat/rooms", headers=_auth())
    assert resp.status_code == 200
    assert resp.json() == []


def test_create_room_is_idempotent(client, uow):
    first = client.post("/api/v1/chat/rooms", headers=_auth(), json={"receiverId": "bob"})
    second = client.post("/api/v1/chat/rooms", headers=_auth("bob"), json={"receiverId": "alice"})

    assert first.status_code == 200
    data = first.json()
    assert data["kind"] == "SINGLE"
    assert data["participantIds"] == ["alice", "bob"]
    assert second.json()["id"] == data["id"]
    assert len(uow.rooms._store) == 1


def test_create_room_with_yourself(client):
    resp = client.post("/api/v1/chat/rooms", headers=_auth(), json={"receiverId": "alice"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Cannot create room with yourself"


def test_list_rooms_with_unread(client, uow):
    room = uow.add_room(make_room("alice", "bob"))
    uow.add_message(make_message(room.id, "bob", "hey", created_at=at(1)))

    resp = client.get("/api/v1/chat/rooms", headers=_auth())

    [conv] = resp.json()
    assert conv["roomId"] == str(room.id)
    assert conv["name"] == "Bob"
    assert conv["lastMessage"] == "hey"
    assert conv["unreadCount"] == 1
    assert conv["isActive"] is False


def test_room_messages(client, uow):
    room = uow.add_room(make_room("alice", "bob"))
    for i in range(3):
        uow.add_message(make_message(room.id, "bob", f"m{i}", created_at=at(i)))

    resp = client.get(f"/api/v1/chat/rooms/{room.id}/messages?limit=2", headers=_auth())

    assert resp.status_code == 200
    assert [m["content"] for m in resp.json()] == ["m2", "m1"]


def test_room_messages_for_non_participant(client, uow):
    room = uow.add_room(make_room("alice", "bob"))

    resp = client.get(f"/api/v1/chat/rooms/{room.id}/messages", headers=_auth("carol"))
    assert resp.status_code == 403

    resp = client.get(f"/api/v1/chat/rooms/{uuid.uuid4()}/messages", headers=_auth("carol"))
    assert resp.status_code == 404


def test_invalid_token_returns_401(client):
    resp = client.get("/api/v1/chat/rooms", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token!"


def test_unknown_user_returns_401(client):
    resp = client.get("/api/v1/chat/rooms", headers=_auth("stranger"))
    assert resp.status_code == 401


def test_missing_credentials_rejected(client):
    resp = client.get("/api/v1/chat/rooms")
    assert resp.status_code in (401, 403)


def test_ws_chat_flow(app_with_uow):
    app, uow = app_with_uow

    with TestClient(app) as client:
        with client.websocket_connect(f"/ws/chat?token={_make_token('alice')}") as alice:
            assert alice.receive_json() == {"type": "conversation-list", "conversations": []}

            alice.send_json({"type": "subscribe", "receiverId": "bob"})
            past = alice.receive_json()
            assert past["type"] == "past-messages"
            assert past["messages"] == []

            alice.send_json({"type": "send-message", "content": "hello"})
            new_message = alice.receive_json()
            assert new_message["type"] == "new-message"
            assert new_message["message"]["content"] == "hello"

            alice.send_json({"type": "ping"})
            assert alice.receive_json() == {"type": "pong"}

            alice.send_json({"type": "launch"})
            assert alice.receive_json() == {"type": "error", "message": "Invalid message type"}

    assert [m.content for m in uow.messages._messages] == ["hello"]


def test_ws_binary_frames_are_parsed_like_text(app_with_uow):
    app, _ = app_with_uow

    with TestClient(app) as client:
        with client.websocket_connect(f"/ws/chat?token={_make_token('alice')}") as alice:
            assert alice.receive_json()["type"] == "conversation-list"

            alice.send_bytes(b'{"type": "conversation-list"}')
            assert alice.receive_json() == {"type": "conversation-list", "conversations": []}

            alice.send_bytes(b"\xff")
            assert alice.receive_json() == {"type": "error", "message": "Invalid payload: malformed JSON"}

            alice.send_json({"type": "ping"})
            assert alice.receive_json() == {"type": "pong"}


def test_ws_token_from_authorization_header(app_with_uow):
    app, _ = app_with_uow

    with TestClient(app) as client:
        with client.websocket_connect("/ws/chat", headers=_auth("bob")) as bob:
            assert bob.receive_json()["type"] == "conversation-list"


def test_ws_rejects_bad_token(app_with_uow):
    app, _ = app_with_uow

    with TestClient(app) as client:
        with client.websocket_connect("/ws/chat?token=garbage") as ws:
            assert ws.receive_json() == {"type": "error", "message": "Invalid token!"}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()
            assert exc_info.value.code == 4001


def test_ws_rejects_missing_token(app_with_uow):
    app, _ = app_with_uow

    with TestClient(app) as client:
        with client.websocket_connect("/ws/chat") as ws:
            assert ws.receive_json() == {"type": "error", "message": "You are not authenticated"}
            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()


def test_request_id_is_echoed_or_replaced(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    resp = client.get("/healthz", headers={"X-Request-ID": "not a valid id"})
    assert resp.headers["X-Request-ID"] != "not a valid id"
