import base64

import pytest
from fastapi import WebSocketDisconnect

from conftest import make_data_url
from api.websocket_commentary import get_commentary_manager
from core.content_classifier import TriggerReason


def _receive_by_type(websocket, count):
    messages = {}
    for _ in range(count):
        message = websocket.receive_json()
        messages[message["type"]] = message["data"]
    return messages


class TestHealth:
    def test_liveness(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "OK", "message": "Doodle Mentor AI Backend is running"}

    def test_detailed_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["text_model"] == "cerebras/llama3.1-8b"
        assert set(data["providers"]) == {"text_generation", "speech", "ocr"}


def test_personalities(client):
    data = client.get("/api/personalities").json()
    assert [p["id"] for p in data["personalities"]] == ["calm", "angry", "cool", "lazy"]
    assert data["personalities"][0]["name"] == "Winie"


class TestChat:
    def test_chat(self, client, text_generator):
        response = client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "How do I add fractions?"}],
            "personality": "cool",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == text_generator.reply
        assert data["personality"] == "cool"
        assert data["audio"] is None
        messages, personality = text_generator.calls[0]
        assert messages == [{"role": "user", "content": "How do I add fractions?"}]
        assert personality == "cool"

    def test_missing_messages(self, client, text_generator):
        response = client.post("/api/chat", json={"personality": "calm"})
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"
        assert text_generator.calls == []

    def test_unknown_personality(self, client):
        response = client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "hi"}],
            "personality": "grumpy",
        })
        assert response.status_code == 400

    def test_include_voice(self, client, speech):
        response = client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "hi"}],
            "includeVoice": True,
        })
        data = response.json()
        assert base64.b64decode(data["audio"]) == speech.audio
        assert data["audioFormat"] == "mp3"
        assert data["voiceError"] is None

    def test_voice_failure_keeps_text(self, client, speech, text_generator):
        speech.fail = True
        response = client.post("/api/chat", json={
            "messages": [{"role": "user", "content": "hi"}],
            "includeVoice": True,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == text_generator.reply
        assert data["audio"] is None
        assert data["voiceError"] == "Voice generation unavailable"

    def test_generation_failure(self, client, text_generator):
        text_generator.fail = True
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert response.status_code == 500
        assert response.json()["error"] == "chat_failed"


class TestVoice:
    def test_voice(self, client, speech):
        response = client.post("/api/voice", json={"text": "Nice drawing!", "personality": "angry"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == speech.audio
        assert speech.calls == [("Nice drawing!", "angry")]

    def test_missing_text(self, client):
        assert client.post("/api/voice", json={"personality": "calm"}).status_code == 400
        assert client.post("/api/voice", json={"text": ""}).status_code == 400

    def test_failure(self, client, speech):
        speech.fail = True
        response = client.post("/api/voice", json={"text": "hello"})
        assert response.status_code == 500
        assert response.json()["error"] == "voice_failed"


class TestOCR:
    def test_ocr(self, client, ocr):
        response = client.post("/api/ocr", files={"image": ("page.png", b"\x89PNG\r\n\x1a\nrest", "image/png")})
        assert response.status_code == 200
        data = response.json()
        assert data["extractedText"] == ocr.text
        assert data["confidence"] == ocr.confidence
        assert ocr.calls == [(b"\x89PNG\r\n\x1a\nrest", "image/png")]

    def test_missing_image(self, client, ocr):
        response = client.post("/api/ocr", data={"note": "no image"})
        assert response.status_code == 400
        assert ocr.calls == []

    def test_too_large(self, client, core_app, ocr):
        core_app.config.max_upload_bytes = 10
        response = client.post("/api/ocr", files={"image": ("big.png", b"x" * 100, "image/png")})
        assert response.status_code == 413
        assert ocr.calls == []

    def test_failure(self, client, ocr):
        ocr.fail = True
        response = client.post("/api/ocr", files={"image": ("page.png", b"data", "image/png")})
        assert response.status_code == 500
        assert response.json()["error"] == "ocr_failed"


class TestAnalyzeCanvas:
    def test_with_trigger_reason(self, client, text_generator):
        response = client.post("/api/analyze-canvas", data={
            "personality": "lazy",
            "extractedText": "x + 2 = 5",
            "triggerReason": "math_content_detected",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["analysis"] == text_generator.reply
        assert data["personality"] == "lazy"
        assert data["extractedText"] == "x + 2 = 5"
        assert data["analysisType"] == "general"
        prompt = text_generator.calls[0][0][0]["content"]
        assert '"x + 2 = 5"' in prompt

    def test_requires_some_input(self, client, text_generator):
        response = client.post("/api/analyze-canvas", data={"personality": "calm"})
        assert response.status_code == 400
        assert text_generator.calls == []

    def test_unknown_personality(self, client):
        response = client.post("/api/analyze-canvas", data={"personality": "grumpy", "description": "a cat"})
        assert response.status_code == 400

    def test_canvas_only_uses_ocr(self, client, ocr, text_generator):
        response = client.post("/api/analyze-canvas", files={"canvas": ("canvas.png", b"\x89PNG\r\n\x1a\n", "image/png")})
        assert response.status_code == 200
        assert response.json()["extractedText"] == ocr.text
        assert len(ocr.calls) == 1
        assert ocr.text in text_generator.calls[0][0][0]["content"]

    def test_canvas_only_ocr_failure_uses_generic_prompt(self, client, ocr, text_generator):
        ocr.fail = True
        response = client.post("/api/analyze-canvas", files={"canvas": ("canvas.png", b"\x89PNG\r\n\x1a\n", "image/png")})
        assert response.status_code == 200
        assert response.json()["extractedText"] == ""
        assert text_generator.calls[0][0][0]["content"] == "Please analyze the student's canvas work and provide feedback."

    def test_canvas_with_description_skips_ocr(self, client, ocr, text_generator):
        response = client.post(
            "/api/analyze-canvas",
            data={"description": "a triangle with labels"},
            files={"canvas": ("canvas.png", b"\x89PNG\r\n\x1a\n", "image/png")},
        )
        assert response.status_code == 200
        assert ocr.calls == []
        assert "a triangle with labels" in text_generator.calls[0][0][0]["content"]

    @pytest.mark.parametrize("form", [{}, {"description": "a cat"}, {"extractedText": "x = 5"}])
    def test_canvas_too_large_is_rejected(self, client, core_app, ocr, text_generator, form):
        core_app.config.max_upload_bytes = 10
        response = client.post(
            "/api/analyze-canvas",
            data=form,
            files={"canvas": ("canvas.png", b"x" * 100, "image/png")},
        )
        assert response.status_code == 413
        assert response.json()["error"] == "payload_too_large"
        assert ocr.calls == []
        assert text_generator.calls == []

    def test_generation_failure(self, client, text_generator):
        text_generator.fail = True
        response = client.post("/api/analyze-canvas", data={"description": "a triangle"})
        assert response.status_code == 500
        assert response.json()["error"] == "analysis_failed"


class TestCommentaryWebSocket:
    def test_analyze_pushes_commentary(self, client, ocr):
        with client.websocket_connect("/ws/commentary/tab-1") as websocket:
            websocket.send_json({"action": "analyze", "image": make_data_url("drawing")})
            messages = _receive_by_type(websocket, 2)

        assert messages["analysis"] is None
        commentary = messages["commentary"]
        assert commentary["triggerReason"] == TriggerReason.MATH_CONTENT.value
        assert commentary["type"] == "suggestion"
        assert len(ocr.calls) == 1

    def test_upload_returns_analysis(self, client):
        with client.websocket_connect("/ws/commentary/tab-2") as websocket:
            websocket.send_json({"action": "upload", "image": make_data_url("upload")})
            messages = _receive_by_type(websocket, 2)

        assert messages["upload_analysis"]["extractedText"] == "12 + 30 = 42"
        assert messages["upload_analysis"]["analysisType"] == "text"
        assert messages["commentary"]["triggerReason"] == "math_content_detected"

    def test_set_personality(self, client, text_generator):
        with client.websocket_connect("/ws/commentary/tab-3") as websocket:
            websocket.send_json({"action": "set_personality", "personality": "angry"})
            assert websocket.receive_json() == {"type": "personality", "data": "angry"}

            websocket.send_json({"action": "upload", "image": make_data_url("loud")})
            _receive_by_type(websocket, 2)

        assert text_generator.calls[0][1] == "angry"

    def test_missing_image(self, client):
        with client.websocket_connect("/ws/commentary/tab-4") as websocket:
            websocket.send_json({"action": "analyze"})
            message = websocket.receive_json()
        assert message["type"] == "error"
        assert message["data"]["code"] == "BAD_REQUEST"

    def test_invalid_action(self, client, ocr):
        with client.websocket_connect("/ws/commentary/tab-5") as websocket:
            websocket.send_json({"action": "explode", "image": make_data_url("x")})
            message = websocket.receive_json()
        assert message["type"] == "error"
        assert ocr.calls == []

    @pytest.mark.parametrize("payload", [[1, 2], "analyze", 42, None])
    def test_non_object_message_keeps_session(self, client, payload):
        with client.websocket_connect("/ws/commentary/tab-6") as websocket:
            websocket.send_json(payload)
            message = websocket.receive_json()
            assert message["type"] == "error"
            assert message["data"]["code"] == "BAD_REQUEST"

            websocket.send_json({"action": "set_personality", "personality": "cool"})
            assert websocket.receive_json() == {"type": "personality", "data": "cool"}

    def test_invalid_json_keeps_session(self, client):
        with client.websocket_connect("/ws/commentary/tab-7") as websocket:
            websocket.send_text("{not json")
            assert websocket.receive_json()["type"] == "error"

            websocket.send_json({"action": "set_personality", "personality": "lazy"})
            assert websocket.receive_json() == {"type": "personality", "data": "lazy"}

    def test_reconnect_with_same_client_id_replaces_old_socket(self, client):
        with client.websocket_connect("/ws/commentary/dup") as old:
            with client.websocket_connect("/ws/commentary/dup") as new:
                with pytest.raises(WebSocketDisconnect) as closed:
                    old.receive_json()
                assert closed.value.code == 1000

                old.send_json({"action": "set_personality", "personality": "angry"})
                new.send_json({"action": "set_personality", "personality": "cool"})
                assert new.receive_json() == {"type": "personality", "data": "cool"}

                manager = get_commentary_manager()
                assert manager.active_session_count == 1
                assert manager.active_sessions["dup"].dispatcher.personality.value == "cool"
