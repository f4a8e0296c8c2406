"""WebSocket endpoint tests — the full stack over real ASGI websockets.

Learn: Starlette's TestClient is synchronous, so it is used as a context
manager: every websocket then shares the client's single event loop, the
same way all browser tabs share the server's loop in production.
A join is followed by a ping so the test knows the join was processed.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lumina.api.notifications import _store
from lumina.auth.dependencies import CurrentIdentity, get_current_user
from lumina.auth.jwt import create_access_token
from lumina.main import create_app
from lumina.realtime.hub import build_realtime


@pytest.fixture()
def ws_hub():
    return build_realtime(ring_timeout_seconds=None)


@pytest.fixture()
def ws_client(ws_hub, stub_store):
    app = create_app(hub=ws_hub)
    app.dependency_overrides[_store] = lambda: stub_store
    app.dependency_overrides[get_current_user] = lambda: CurrentIdentity(user_id="alice")
    with TestClient(app) as client:
        yield client


def _join(ws, identity):
    ws.send_json({"type": "join", "data": {"userIdentity": identity}})
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong", "data": {}}


def test_call_signaling_between_two_sockets(ws_client):
    with ws_client.websocket_connect("/ws") as alice, ws_client.websocket_connect("/ws") as bob:
        _join(alice, "alice")
        _join(bob, "bob")

        alice.send_json({
            "type": "callUser",
            "data": {"userToCall": "bob", "signalData": "S1", "from": "alice", "name": "Alice"},
        })
        assert bob.receive_json() == {
            "type": "callUser",
            "data": {"signal": "S1", "from": "alice", "name": "Alice"},
        }

        bob.send_json({"type": "answerCall", "data": {"signal": "S2", "to": "alice"}})
        assert alice.receive_json() == {"type": "callAccepted", "data": "S2"}

        alice.send_json({"type": "endCall", "data": {"to": "bob"}})
        assert bob.receive_json() == {"type": "callEnded", "data": {}}


def test_closing_caller_socket_ends_call_for_peer(ws_client, ws_hub):
    with ws_client.websocket_connect("/ws") as bob:
        _join(bob, "bob")

        with ws_client.websocket_connect("/ws") as alice:
            _join(alice, "alice")
            alice.send_json({
                "type": "callUser",
                "data": {"userToCall": "bob", "signalData": "S1", "from": "alice"},
            })
            assert bob.receive_json()["type"] == "callUser"

            # Close from the client side and wait for the peer while the
            # server handler is still running its own cleanup.
            alice.close()
            assert bob.receive_json() == {"type": "callEnded", "data": {"reason": "disconnect"}}

        assert not ws_hub.registry.is_online("alice")


def test_notification_reaches_every_socket_of_recipient(ws_client, ws_hub, stub_store):
    with ws_client.websocket_connect("/ws") as tab1, ws_client.websocket_connect("/ws") as tab2:
        _join(tab1, "dave")
        _join(tab2, "dave")
        assert len(ws_hub.registry.live_sessions_for("dave")) == 2

        r = ws_client.post(
            "/api/v1/notifications",
            json={"recipient": "dave", "kind": "comment", "message": "New comment", "related_entity_id": "post7"},
        )
        assert r.status_code == 201

        for tab in (tab1, tab2):
            frame = tab.receive_json()
            assert frame["type"] == "newNotification"
            assert frame["data"]["message"] == "New comment"
            assert frame["data"]["notificationId"] == r.json()["id"]

    assert len(stub_store.created) == 1


def test_bad_frames_get_error_replies(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_json(["not", "an", "object"])
        assert ws.receive_json()["type"] == "error"

        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json()["data"]["detail"] == "binary frames are not supported"

        ws.send_json({"type": ["join"], "data": {"userIdentity": "alice"}})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "answerCall", "data": {"signal": "S2"}})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["frame"] == "answerCall"


def test_valid_token_is_accepted(ws_client, ws_hub):
    token = create_access_token("alice")
    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        _join(ws, "alice")
        (session,) = ws_hub.registry.live_sessions_for("alice")
        assert session.token_subject == "alice"


def test_invalid_token_is_rejected(ws_client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect("/ws?token=garbage"):
            pass
    assert exc.value.code == 4001
