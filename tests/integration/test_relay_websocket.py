"""
End-to-end tests for the relay over real WebSocket connections.

Every test enables WELCOME_MESSAGE: it is sent only after the session is
registered, so receiving it first guarantees that later broadcasts reach
the session.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

WELCOME = "Welcome to the WebSocket server"


@pytest.fixture
def relay(make_app, make_settings):
    """
    Provides a factory for a running relay test client.

    Returns:
        Callable[..., TestClient]: Builds a client for settings overrides.
    """
    clients = []

    def _make(**overrides):
        overrides.setdefault("WELCOME_MESSAGE", WELCOME)
        client = TestClient(make_app(make_settings(**overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


def join(client: TestClient, path: str = "/ws"):
    """Opens a session and waits for the welcome frame."""
    session = client.websocket_connect(path)
    ws = session.__enter__()
    assert ws.receive_text() == WELCOME
    return session, ws


class TestBroadcastPolicies:
    """Fan-out behaviour per BROADCAST_POLICY."""

    def test_all_policy_echoes_to_sender_and_others(self, relay):
        client = relay()
        session_a, ws_a = join(client)
        session_b, ws_b = join(client)

        ws_a.send_text("hello")

        assert ws_a.receive_text() == "hello"
        assert ws_b.receive_text() == "hello"

        session_b.__exit__(None, None, None)
        session_a.__exit__(None, None, None)

    def test_root_path_accepts_websockets(self, relay):
        client = relay()

        with client.websocket_connect("/") as ws:
            assert ws.receive_text() == WELCOME
            ws.send_text("ping")
            assert ws.receive_text() == "ping"

    def test_others_policy_skips_sender(self, relay):
        client = relay(BROADCAST_POLICY="others")
        session_a, ws_a = join(client)
        session_b, ws_b = join(client)

        ws_a.send_text("a")
        assert ws_b.receive_text() == "a"

        ws_b.send_text("b")
        # A's first frame is B's message, its own was never echoed back
        assert ws_a.receive_text() == "b"

        session_b.__exit__(None, None, None)
        session_a.__exit__(None, None, None)

    def test_ack_policy_acknowledges_sender(self, relay):
        client = relay(BROADCAST_POLICY="ack")
        session_a, ws_a = join(client)
        session_b, ws_b = join(client)

        ws_a.send_text("hello")

        assert ws_a.receive_text() == "Server received: hello"
        assert ws_b.receive_text() == "hello"

        session_b.__exit__(None, None, None)
        session_a.__exit__(None, None, None)

    def test_payload_is_forwarded_verbatim(self, relay):
        client = relay()
        payload = '{"not": "parsed"}  ünïcödé\n'

        with client.websocket_connect("/ws") as ws:
            assert ws.receive_text() == WELCOME
            ws.send_text(payload)
            assert ws.receive_text() == payload

    def test_departed_session_no_longer_receives(self, relay):
        client = relay()
        session_a, ws_a = join(client)
        session_b, ws_b = join(client)
        session_b.__exit__(None, None, None)

        ws_a.send_text("still here")

        assert ws_a.receive_text() == "still here"
        session_a.__exit__(None, None, None)


class TestEventEnvelope:
    """Socket.IO-style {event, data} frames."""

    def test_message_event_is_relayed(self, relay):
        client = relay(ENVELOPE="event")

        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"event": "message", "data": WELCOME}

            ws.send_json({"event": "message", "data": "hi"})

            assert ws.receive_json() == {"event": "message", "data": "hi"}

    def test_ack_uses_ack_event(self, relay):
        client = relay(ENVELOPE="event", BROADCAST_POLICY="ack")

        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"event": "message", "data": "hi"})

            assert ws.receive_json() == {
                "event": "ack",
                "data": "Server received: hi",
            }

    def test_invalid_envelope_closes_session(self, relay):
        client = relay(ENVELOPE="event")

        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("plain text")

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()

        assert exc_info.value.code == 1003


class TestMalformedFrames:
    """Frames the relay cannot handle end only the offending session."""

    def test_binary_frame_closes_with_unsupported_data(self, relay):
        client = relay()

        with client.websocket_connect("/ws") as ws:
            ws.receive_text()
            ws.send_bytes(b"\x00\x01")

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()

        assert exc_info.value.code == 1003

    def test_other_sessions_survive_malformed_peer(self, relay):
        client = relay()
        session_a, ws_a = join(client)
        session_b, ws_b = join(client)

        ws_b.send_bytes(b"\xff")
        with pytest.raises(WebSocketDisconnect):
            ws_b.receive_text()

        ws_a.send_text("after")
        assert ws_a.receive_text() == "after"

        session_b.__exit__(None, None, None)
        session_a.__exit__(None, None, None)


class TestHttpStatus:
    """Plain HTTP requests on the relay port."""

    def test_banner(self, relay):
        response = relay().get("/")

        assert response.status_code == 200
        assert response.text == "WebSocket server is running\n"
        assert response.headers["content-type"].startswith("text/plain")

    def test_health_reports_open_sessions(self, relay):
        client = relay(BROADCAST_POLICY="others")

        with client.websocket_connect("/ws") as ws:
            ws.receive_text()
            data = client.get("/health").json()

        assert data == {
            "status": "healthy",
            "active_sessions": 1,
            "policy": "others",
            "envelope": "raw",
        }

    def test_metrics_exposes_relay_metrics(self, relay):
        client = relay()

        with client.websocket_connect("/ws") as ws:
            ws.receive_text()
            ws.send_text("x")
            ws.receive_text()

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "relay_sessions_active" in response.text
        assert "relay_messages_received_total" in response.text
