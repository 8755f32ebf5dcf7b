"""Tests for the HTTP command/observation API."""
import pytest
from fastapi.testclient import TestClient

from api.server import create_app
from core.config import ConfigManager
from core.constants import GUIDED_QUERIES, WELCOME_MESSAGE
from core.controller import ModeController
from core.scheduler import VirtualScheduler
from core.state import GameContext
from fakes import FakeProvider


@pytest.fixture
def cm(tmp_path):
    return ConfigManager(tmp_path)


@pytest.fixture
def app_controller():
    # The virtual clock never advances here, so no timer fires during a request
    return ModeController(FakeProvider(), scheduler=VirtualScheduler())


@pytest.fixture
def client(cm, app_controller):
    app = create_app(cm, app_controller)
    with TestClient(app) as client:
        yield client


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["mode"] == "guided_query"
        assert data["llm_mode"] == "offline"
        assert data["duplex_active"] is False


class TestDashboard:
    def test_state(self, client):
        data = client.get("/api/state").json()
        assert data["mode"] == "guided_query"
        assert data["game_context"] == "NORMAL"
        assert data["ai_state"]["timer"] == 0
        assert data["logs"] == []
        assert data["messages"][0]["text"] == WELCOME_MESSAGE

    def test_suggestions(self, client):
        client.put("/api/control/game-context", json={"game_context": "DEAD"})
        data = client.get("/api/suggestions").json()
        assert data["game_context"] == "DEAD"
        assert data["suggestions"] == list(GUIDED_QUERIES[GameContext.DEAD])

    def test_logs_and_messages(self, client):
        client.put("/api/control/mode", json={"mode": "single_turn_voice"})
        client.post("/api/control/voice", json={"active": True})
        logs = client.get("/api/logs").json()["logs"]
        assert [e["role"] for e in logs] == ["ASR"]
        assert logs[0]["id"].startswith("log-")

        messages = client.get("/api/messages").json()["messages"]
        assert messages[0]["sender"] == "system"

    def test_stream_pushes_snapshots(self, client):
        with client.websocket_connect("/api/stream") as ws:
            first = ws.receive_json()
            assert first["game_context"] == "NORMAL"

            client.put("/api/control/game-context", json={"game_context": "SHOPPING"})
            update = ws.receive_json()
            assert update["game_context"] == "SHOPPING"


class TestControl:
    def test_set_mode(self, client, app_controller):
        response = client.put("/api/control/mode", json={"mode": "text_chat"})
        assert response.status_code == 200
        assert response.json()["mode"] == "text_chat"
        assert app_controller.mode.value == "text_chat"

    def test_invalid_mode_rejected(self, client, app_controller):
        response = client.put("/api/control/mode", json={"mode": "karaoke"})
        assert response.status_code == 422
        assert app_controller.mode.value == "guided_query"

    def test_chat_without_mention(self, client):
        client.put("/api/control/mode", json={"mode": "text_chat"})
        data = client.post("/api/control/messages", json={"text": "打野来中"}).json()
        assert data["session_started"] is False
        assert [m["sender"] for m in data["snapshot"]["messages"]] == ["system", "player"]

    def test_voice_press(self, client):
        client.put("/api/control/mode", json={"mode": "single_turn_voice"})
        data = client.post("/api/control/voice", json={"active": True}).json()
        assert data["session_started"] is False
        assert data["snapshot"]["ai_state"]["is_listening"] is True

    def test_voice_ignored_in_guided_mode(self, client):
        data = client.post("/api/control/voice", json={"active": True}).json()
        assert data["session_started"] is False
        assert data["snapshot"]["ai_state"]["is_listening"] is False

    def test_duplex_toggle(self, client):
        client.put("/api/control/mode", json={"mode": "full_duplex"})
        data = client.post("/api/control/duplex").json()
        assert data["duplex_active"] is True
        assert len(data["snapshot"]["logs"]) == 2

        data = client.post("/api/control/duplex").json()
        assert data["duplex_active"] is False

    def test_duplex_toggle_outside_mode(self, client):
        data = client.post("/api/control/duplex").json()
        assert data["duplex_active"] is False
        assert data["snapshot"]["logs"] == []

    def test_interrupt_rejected_when_silent(self, client):
        client.put("/api/control/mode", json={"mode": "full_duplex"})
        client.post("/api/control/duplex")
        data = client.post("/api/control/interrupt").json()
        assert data["accepted"] is False


class TestSettings:
    def test_get_settings_masks_keys(self, client, cm):
        cm.update_nested("api_keys", claude="sk-ant-1234567890abcd")
        data = client.get("/api/settings/").json()
        assert data["api_keys"]["claude"] == "sk-a****abcd"
        assert data["api_keys"]["gemini"] == ""

    def test_update_provider(self, client, cm):
        response = client.put("/api/settings/provider", json={"mode": "online", "provider": "openai"})
        assert response.json() == {"mode": "online", "provider": "openai", "status": "updated"}
        assert cm.is_online

    def test_invalid_provider_rejected(self, client, cm):
        response = client.put("/api/settings/provider", json={"provider": "mistral"})
        assert response.status_code == 422
        assert cm.config.provider == "gemini"

    def test_update_api_keys(self, client, cm):
        client.put("/api/settings/api-keys", json={"gemini": "AIza-test"})
        assert cm.config.api_keys.gemini == "AIza-test"
        assert cm.config.api_keys.openai == ""
