import importlib

import pytest
from fastapi.testclient import TestClient

from companion.api import create_app
from companion.errors import StorageFailure
from companion.services import fallbacks


@pytest.fixture
def client(controller):
    return TestClient(create_app(controller))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "model_ready": True}


def test_importing_the_module_builds_no_app(mocker):
    wire = mocker.patch(
        "companion.controller.ConversationController.from_settings",
        side_effect=AssertionError("wired at import"),
    )
    import companion.api as api_module

    module = importlib.reload(api_module)

    assert not hasattr(module, "app")
    wire.assert_not_called()


def test_chat_round_trip(client, fake_llm):
    fake_llm.replies = ["Oh nice, tell me more!"]

    resp = client.post("/api/chat", json={"message": "I started painting", "sessionId": "abc"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["response"] == "Oh nice, tell me more!"
    assert body["sessionId"] == "abc"
    assert body["fallback"] is False

    log = client.get("/api/sessions/abc/messages").json()["messages"]
    assert [m["role"] for m in log] == ["user", "assistant"]


def test_chat_assigns_session_id_when_missing(client):
    body = client.post("/api/chat", json={"message": "hello"}).json()
    assert body["sessionId"]
    assert len(client.get(f"/api/sessions/{body['sessionId']}/messages").json()["messages"]) == 2


@pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "   ", "sessionId": "abc"}])
def test_chat_rejects_empty_message(client, payload):
    resp = client.post("/api/chat", json=payload)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_chat_masks_model_failure(make_controller, failing_llm):
    client = TestClient(create_app(make_controller(failing_llm)))

    body = client.post("/api/chat", json={"message": "hi", "sessionId": "s"}).json()

    assert body["success"] is True
    assert body["response"] in fallbacks.APOLOGY_REPLIES
    assert body["fallback"] is True


def test_chat_storage_failure_is_a_500(client, message_store, mocker):
    mocker.patch.object(message_store.storage, "put", side_effect=StorageFailure("disk full"))

    resp = client.post("/api/chat", json={"message": "hi", "sessionId": "s"})

    assert resp.status_code == 500
    assert resp.json()["success"] is False


def test_context_get_and_update(client):
    assert client.get("/api/sessions/s/context").json()["context"]["personality"] == "casual_friend"

    resp = client.put("/api/sessions/s/context", json={"userName": "Al", "topics": ["chess"]})

    context = resp.json()["context"]
    assert context["userName"] == "Al"
    assert context["personality"] == "casual_friend"
    assert context["topics"] == ["chess"]
    assert client.get("/api/sessions/s/context").json()["context"] == context


def test_transcribe(client, mocker):
    mocker.patch(
        "companion.controller.transcribe_audio_bytes",
        return_value=("hey", {"model": "whisper-1", "duration_s": 1.0}),
    )

    resp = client.post("/api/transcribe", files={"audio": ("clip.webm", b"\x1a\x45\xdf\xa3", "audio/webm")})

    assert resp.json() == {"success": True, "text": "hey"}


def test_transcribe_failure_returns_sentinel(client, mocker):
    mocker.patch("companion.controller.transcribe_audio_bytes", side_effect=RuntimeError("down"))

    resp = client.post("/api/transcribe", files={"audio": ("clip.wav", b"RIFF", "audio/wav")})

    assert resp.status_code == 200
    assert resp.json()["text"] == fallbacks.TRANSCRIPTION_FAILED


def test_transcribe_requires_audio(client):
    assert client.post("/api/transcribe").status_code == 400


def test_synthesize(client, mocker):
    tts = mocker.patch("companion.controller.tts_bytes", return_value=b"ID3mp3")

    resp = client.post("/api/synthesize", json={"text": "hello"})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.content == b"ID3mp3"

    tts.side_effect = RuntimeError("down")
    assert client.post("/api/synthesize", json={"text": "hello"}).status_code == 204
    assert client.post("/api/synthesize", json={}).status_code == 400
