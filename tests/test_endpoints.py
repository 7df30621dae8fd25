"""Tests for API endpoints."""

import json

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.api.dependencies import build_orchestrator, get_orchestrator, get_session_manager
from app.config import Settings, get_settings
from app.main import app
from app.services.recruiting import get_data_store
from app.services.session_manager import InMemorySessionManager

client = TestClient(app)


def parse_sse(lines) -> list[tuple[str, dict]]:
    """Collect (event, data) pairs from raw SSE lines."""
    events = []
    event_name = None
    for line in lines:
        if line.startswith("event:"):
            event_name = line[len("event:") :].strip()
        elif line.startswith("data:") and event_name is not None:
            events.append((event_name, json.loads(line[len("data:") :].strip())))
            event_name = None
    return events


@pytest.fixture(autouse=True)
def reset_sse_exit_event():
    # sse-starlette keeps a module-level exit event bound to the loop of the first request
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None


@pytest.fixture
def settings():
    return Settings(anthropic_api_key="test-key", max_message_chars=200)


@pytest.fixture
def session_manager():
    return InMemorySessionManager()


@pytest.fixture
def chat_provider(provider_factory, script):
    return provider_factory(
        [
            script.tools(("toolu_1", "get_athlete_profile", {})),
            script.text("You're a ", "WR from LA."),
        ],
        max_message_chars=100,
    )


@pytest.fixture(autouse=True)
def overrides(settings, session_manager, data_store, chat_provider):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_manager] = lambda: session_manager
    app.dependency_overrides[get_data_store] = lambda: data_store
    app.dependency_overrides[get_orchestrator] = lambda: build_orchestrator(settings, data_store, chat_provider)
    yield
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check_returns_200(self):
        """Test that health check returns 200 status."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_check_response_structure(self):
        """Test that health check returns expected JSON structure."""
        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["service"] == "sparq-recruiting-agent"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data

    def test_health_check_content_type(self):
        """Test that health check returns JSON content type."""
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json"


class TestChatRejections:
    """Requests rejected before any stream is opened."""

    def _assert_rejected(self, response, status_code: int, chat_provider) -> None:
        assert response.status_code == status_code
        assert response.headers["content-type"] == "application/json"
        assert chat_provider.calls == []

    def test_missing_message(self, chat_provider):
        """Test that a request without a message is rejected."""
        response = client.post("/api/chat", json={"athlete_user_id": 12345})

        self._assert_rejected(response, 400, chat_provider)
        assert response.json()["detail"] == "Missing required fields: message, athlete_user_id"

    def test_blank_message(self, chat_provider):
        """Test that a whitespace-only message is rejected."""
        response = client.post("/api/chat", json={"message": "   ", "athlete_user_id": 12345})

        self._assert_rejected(response, 400, chat_provider)

    def test_missing_athlete(self, chat_provider):
        """Test that a request identifying no caller is rejected."""
        response = client.post("/api/chat", json={"message": "Hi"})

        self._assert_rejected(response, 400, chat_provider)
        assert response.json()["detail"] == "Missing required fields: message, athlete_user_id"

    def test_message_too_long(self, chat_provider):
        """Test that a message over the character limit is rejected."""
        response = client.post("/api/chat", json={"message": "a" * 201, "athlete_user_id": 12345})

        self._assert_rejected(response, 400, chat_provider)
        assert "too long" in response.json()["detail"]

    def test_message_over_token_limit(self, chat_provider):
        """Test that a message the provider cannot accept is rejected."""
        response = client.post("/api/chat", json={"message": "a" * 150, "athlete_user_id": 12345})

        self._assert_rejected(response, 400, chat_provider)
        assert "Message exceeds token limit" in response.json()["detail"]

    def test_invalid_session_token(self, chat_provider):
        """Test that an unknown bearer token is rejected."""
        response = client.post(
            "/api/chat",
            json={"message": "Hi", "athlete_user_id": 12345},
            headers={"Authorization": "Bearer not-a-session"},
        )

        self._assert_rejected(response, 401, chat_provider)

    def test_session_for_another_athlete(self, chat_provider, session_manager):
        """Test that a session cannot act for a different athlete."""
        token = session_manager.create_session(12346).token

        response = client.post(
            "/api/chat",
            json={"message": "Hi", "athlete_user_id": 12345},
            headers={"Authorization": f"Bearer {token}"},
        )

        self._assert_rejected(response, 403, chat_provider)

    def test_malformed_body(self, chat_provider):
        """Test that a body failing validation is reported as 400."""
        response = client.post("/api/chat", json={"message": "Hi", "conversation_history": "nope"})

        self._assert_rejected(response, 400, chat_provider)

    def test_history_with_tool_results_on_assistant(self, chat_provider):
        """Test that history entries carrying tool data under the wrong role are rejected."""
        history = [{"role": "assistant", "tool_results": [{"tool_use_id": "toolu_1", "content": "{}"}]}]

        response = client.post(
            "/api/chat",
            json={"message": "Hi", "athlete_user_id": 12345, "conversation_history": history},
        )

        self._assert_rejected(response, 400, chat_provider)
        assert response.json()["detail"] == "Invalid request"

    def test_missing_fields_checked_before_provider_setup(self, chat_provider):
        """Test that field errors win over an unconfigured model provider."""

        def unconfigured():
            raise HTTPException(status_code=503, detail="Model provider is not configured")

        app.dependency_overrides[get_orchestrator] = unconfigured

        assert client.post("/api/chat", json={"athlete_user_id": 12345}).status_code == 400
        assert client.post("/api/chat", json={"message": "Hi"}).status_code == 400
        assert client.post("/api/chat", json={"message": "Hi", "athlete_user_id": 12345}).status_code == 503


class TestChatStream:
    """Tests for the streamed chat reply."""

    def _stream(self, payload: dict, headers: dict | None = None):
        with client.stream("POST", "/api/chat", json=payload, headers=headers) as response:
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            return parse_sse(response.iter_lines())

    def test_streams_full_lifecycle(self, chat_provider):
        """Test the events of a reply with one tool round."""
        events = self._stream({"message": "What position do I play?", "athlete_user_id": 12345})

        assert [name for name, _ in events] == [
            "start",
            "tool_start",
            "tool_complete",
            "tools_executing",
            "tools_complete",
            "text",
            "text",
            "complete",
        ]
        assert events[0][1] == {"message": "Agent thinking..."}
        assert events[-1][1] == {"response": "You're a WR from LA.", "tools_used": ["get_athlete_profile"]}
        assert len(chat_provider.calls) == 2

    def test_session_token_identifies_caller(self, chat_provider, session_manager):
        """Test that the session's athlete is used when the body names none."""
        token = session_manager.create_session(12347).token

        events = self._stream({"message": "Who am I?"}, headers={"Authorization": f"Bearer {token}"})

        assert events[-1][0] == "complete"
        assert "Athlete GMTM user ID: 12347" in chat_provider.system_prompts[0]

    def test_history_is_forwarded(self, chat_provider):
        """Test that client-supplied history reaches the model."""
        self._stream(
            {
                "message": "And my position?",
                "athlete_user_id": "12345",
                "conversation_history": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hey Marcus!"},
                ],
            }
        )

        assert [message.text for message in chat_provider.calls[0]] == ["Hi", "Hey Marcus!", "And my position?"]

    def test_failure_is_streamed_as_error(self, provider_factory, settings, data_store):
        """Test that a failed run ends the stream with an error event."""
        provider = provider_factory([[ConnectionError("upstream unavailable")]])
        app.dependency_overrides[get_orchestrator] = lambda: build_orchestrator(settings, data_store, provider)

        events = self._stream({"message": "Hi", "athlete_user_id": 12345})

        assert [name for name, _ in events] == ["start", "error"]
        assert events[-1][1] == {"message": "upstream unavailable"}


class TestSessionEndpoints:
    """Tests for opening and closing sessions."""

    def test_create_and_delete_session(self, session_manager):
        """Test the session lifecycle."""
        response = client.post("/api/sessions", json={"athlete_user_id": 12345})

        assert response.status_code == 201
        data = response.json()
        assert data["athlete_user_id"] == "12345"
        assert session_manager.validate(data["token"]) == "12345"

        assert client.delete(f"/api/sessions/{data['token']}").status_code == 204
        assert client.delete(f"/api/sessions/{data['token']}").status_code == 404
        assert session_manager.validate(data["token"]) is None

    def test_create_session_for_unknown_athlete(self):
        """Test that sessions are only opened for known athletes."""
        response = client.post("/api/sessions", json={"athlete_user_id": 1})

        assert response.status_code == 404


class TestAthleteEndpoints:
    """Tests for athlete and opportunity lookups."""

    def test_search_athletes(self):
        """Test athlete name search."""
        response = client.get("/api/athlete/search", params={"q": "johnson"})

        assert response.status_code == 200
        assert [athlete["first_name"] for athlete in response.json()["athletes"]] == ["Andre", "Marcus"]

    def test_search_athletes_short_query(self):
        """Test that a one-character query returns no athletes."""
        response = client.get("/api/athlete/search", params={"q": "j"})

        assert response.json() == {"athletes": []}

    def test_get_athlete(self):
        """Test fetching an athlete profile."""
        response = client.get("/api/athlete/12345")

        assert response.status_code == 200
        assert response.json()["last_name"] == "Johnson"

    def test_get_unknown_athlete(self):
        """Test that an unknown athlete returns 404."""
        assert client.get("/api/athlete/1").status_code == 404

    def test_get_opportunities(self):
        """Test recommended opportunities with fit scores."""
        response = client.get("/api/opportunities/12345", params={"limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [opp["id"] for opp in data["opportunities"]] == ["showcase_003", "combine_001"]
        assert data["opportunities"][0]["fit_score"] == 67
