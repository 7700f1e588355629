import pytest
from starlette.websockets import WebSocketDisconnect


def test_socket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/api/ws?token=bogus"):
            pass
    assert exc.value.code == 1008


def test_socket_without_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/api/ws"):
            pass
    assert exc.value.code == 1008


def test_socket_registers_user_in_role_room(client, make_user):
    user, _, token = make_user("nina", "Nurse")
    registry = client.app.state.registry

    with client.websocket_connect(f"/api/ws?token={token}") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
        assert registry.is_online(user["id"])
        assert registry.room_members("Nurse") == {user["id"]}


def test_socket_ignores_malformed_frames(client, make_user):
    user, _, token = make_user("nina", "Nurse")
    registry = client.app.state.registry

    with client.websocket_connect(f"/api/ws?token={token}") as ws:
        ws.send_text("not json")
        ws.send_json(["ping"])
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
        assert registry.is_online(user["id"])
