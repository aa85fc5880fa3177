"""HTTP surface tests using FastAPI's TestClient."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from conftest import TEAM_ALPHA_ID, wait_for
from messaging import (
    Connected,
    DisconnectReason,
    Disconnected,
    ImagePayload,
    MessageReceived,
    PairingChallenge,
    TextPayload,
    TransportError,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def app(settings, factory):
    return create_app(settings, transport_factory=factory)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def connect(app, factory):
    factory.current.emit(Connected())
    wait_for(lambda: app.state.supervisor.is_ready)


def upload_dir_is_empty(settings) -> bool:
    directory = Path(settings.upload_dir)
    return not directory.exists() or not any(directory.iterdir())


class TestHealth:
    def test_health_follows_readiness(self, app, client, factory):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": False}

        connect(app, factory)
        assert client.get("/health").json() == {"ok": True}

        factory.current.emit(Disconnected(reason=DisconnectReason.LOGGED_OUT))
        wait_for(lambda: app.state.supervisor.logged_out)
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": False}

    def test_status_exposes_pairing_challenge(self, app, client, factory):
        factory.current.emit(PairingChallenge(data="2@qr-payload"))
        wait_for(lambda: app.state.supervisor.pairing_challenge is not None)

        body = client.get("/status").json()
        assert body == {
            "state": "awaiting_authentication",
            "ready": False,
            "logged_out": False,
            "pairing_challenge": "2@qr-payload",
        }

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert client.get("/health").headers["X-Request-ID"]


class TestGroups:
    def test_not_ready(self, client, factory):
        response = client.get("/groups")
        assert response.status_code == 503
        assert "error" in response.json()
        assert factory.current.list_calls == 0

    def test_lists_groups(self, app, client, factory):
        connect(app, factory)
        response = client.get("/groups")
        assert response.status_code == 200
        assert response.json()[0] == {"id": TEAM_ALPHA_ID, "name": "Team Alpha"}
        assert len(response.json()) == 3

    def test_backend_failure(self, app, client, factory):
        connect(app, factory)
        factory.current.list_error = TransportError("socket closed")
        response = client.get("/groups")
        assert response.status_code == 500
        assert response.json() == {"error": "socket closed"}


class TestSend:
    def test_json_text_message(self, app, client, factory):
        connect(app, factory)
        response = client.post("/send", json={"destination": "Team Alpha", "message": "hello"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "id": "3EB0C767D26A1D1E"}
        assert factory.current.sent == [(TEAM_ALPHA_ID, TextPayload(text="hello"))]

    def test_form_text_message(self, app, client, factory):
        connect(app, factory)
        response = client.post("/send", data={"destination": TEAM_ALPHA_ID, "message": "hi"})
        assert response.status_code == 200
        assert factory.current.sent[0][0] == TEAM_ALPHA_ID

    def test_image_without_caption(self, app, client, factory, settings):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Team Alpha"},
            files={"image": ("chart.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 200
        _, payload = factory.current.sent[0]
        assert isinstance(payload, ImagePayload)
        assert payload.caption is None
        assert payload.data == PNG_BYTES
        assert payload.filename == "chart.png"
        assert app.state.attachments.open_count == 0
        assert upload_dir_is_empty(settings)

    def test_image_with_caption(self, app, client, factory):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Team Alpha", "message": "weekly report"},
            files={"image": ("report.JPG", PNG_BYTES, "image/jpeg")},
        )
        assert response.status_code == 200
        assert factory.current.sent[0][1].caption == "weekly report"
        assert factory.current.sent[0][1].media_type == "image/jpeg"

    def test_unknown_group(self, app, client, factory, settings):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Nobody Here", "message": "hello"},
            files={"image": ("chart.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 404
        assert response.json() == {"error": "Group not found. Use /groups to list available groups."}
        assert upload_dir_is_empty(settings)

    def test_not_ready(self, client, factory):
        response = client.post("/send", json={"destination": "Team Alpha", "message": "hello"})
        assert response.status_code == 503
        assert response.json() == {"error": "WhatsApp is not ready"}
        assert factory.current.list_calls == 0
        assert factory.current.sent == []

    def test_missing_content(self, app, client, factory):
        connect(app, factory)
        response = client.post("/send", json={"destination": "Team Alpha"})
        assert response.status_code == 400
        assert response.json() == {"error": "message or image is required"}

    def test_rejects_non_image_upload(self, app, client, factory, settings):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Team Alpha"},
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert factory.current.sent == []
        assert upload_dir_is_empty(settings)

    def test_rejects_mismatched_extension(self, app, client, factory):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Team Alpha"},
            files={"image": ("payload.exe", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 400

    def test_rejects_oversized_image(self, app, client, factory, settings):
        connect(app, factory)
        response = client.post(
            "/send",
            data={"destination": "Team Alpha"},
            files={"image": ("big.png", b"\x00" * (settings.max_image_bytes + 1), "image/png")},
        )
        assert response.status_code == 400
        assert "limit" in response.json()["error"]
        assert upload_dir_is_empty(settings)

    def test_invalid_json(self, app, client, factory):
        connect(app, factory)
        response = client.post(
            "/send", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_backend_failure(self, app, client, factory, settings):
        connect(app, factory)
        factory.current.send_error = TransportError("not authorized")
        response = client.post(
            "/send",
            data={"destination": "Team Alpha", "message": "x"},
            files={"image": ("chart.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "not authorized"}
        assert upload_dir_is_empty(settings)

    def test_legacy_send_group_fields(self, app, client, factory):
        connect(app, factory)
        response = client.post("/send-group", json={"groupName": "family", "message": "dinner?"})
        assert response.status_code == 200
        assert factory.current.sent[0][0] == "120363041111111111@g.us"

        response = client.post(
            "/send-group", data={"groupId": "5511999999999@s.whatsapp.net", "message": "x"}
        )
        assert response.status_code == 404


class TestReconnect:
    def test_requests_recover_after_transient_disconnect(self, app, client, factory):
        connect(app, factory)
        factory.current.emit(Disconnected(reason=DisconnectReason.TRANSIENT))
        wait_for(lambda: len(factory.sessions) == 2)

        assert client.post("/send", json={"destination": "Team Alpha", "message": "x"}).status_code == 503

        connect(app, factory)
        assert client.post("/send", json={"destination": "Team Alpha", "message": "x"}).status_code == 200


def test_ping_command_is_answered(app, client, factory):
    connect(app, factory)
    factory.current.emit(MessageReceived(chat_id="5511999999999@s.whatsapp.net", text="!ping"))
    wait_for(lambda: factory.current.sent)
    assert factory.current.sent == [("5511999999999@s.whatsapp.net", TextPayload(text="pong"))]
