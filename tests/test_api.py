"""
API tests.

The chat service is swapped for one wired to fake providers, so these
run without credentials or network access.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from sage.api.deps import chat_service
from sage.api.main import app
from sage.core.exceptions import ConfigurationError
from sage.llm.base import TextReply, ToolCall, ToolCallsReply
from sage.memory.store import InMemoryConversationStore
from sage.services.chat_service import ChatService
from sage.services.orchestrator import ConversationOrchestrator
from sage.sessions.registry import SessionRegistry
from sage.tools.base import AdapterResult, CapabilityAdapters
from tests.utils import (
    FakeFallbackClient,
    FakePrimaryProvider,
    ProviderFactoryRecorder,
    RateLimitError,
    RecordingAdapter,
    make_settings,
)


class Harness:
    """One service with scripted providers, installed as the app's dependency."""

    def __init__(self, replies=None, fallback=None, factory_error=None, adapters=None):
        self.settings = make_settings()
        self.store = InMemoryConversationStore()
        self.registry = SessionRegistry(timeout_minutes=30, max_sessions=100)
        self.provider = FakePrimaryProvider(replies)
        self.factory_error = factory_error
        self.fallback = fallback
        self.adapters = adapters
        self.service = ChatService(
            registry=self.registry,
            orchestrator_factory=self.orchestrator,
            store=self.store,
            settings=self.settings,
        )

    def orchestrator(self):
        return ConversationOrchestrator(
            provider_factory=ProviderFactoryRecorder(self.provider, error=self.factory_error),
            fallback_client=self.fallback,
            adapters=self.adapters,
            store=self.store,
            settings=self.settings,
        )


@pytest.fixture
def make_client():
    def build(**kwargs):
        harness = Harness(**kwargs)
        app.dependency_overrides[chat_service] = lambda: harness.service
        return TestClient(app), harness

    yield build
    app.dependency_overrides.clear()


def initialized(client, **body):
    response = client.post("/api/chat/initialize", json=body)
    assert response.status_code == 200, response.text
    return response.headers["X-Session-ID"], response.json()


def test_root_and_health(make_client):
    client, _ = make_client()

    assert client.get("/").json()["health"] == "/health"
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"status": "healthy", "version": "1.0.0"}


def test_readiness_reports_sessions(make_client):
    client, _ = make_client()
    client.get("/api/chat/status")

    payload = client.get("/health/ready").json()

    assert payload["active_sessions"] == 1
    assert payload["status"] in ("ready", "degraded")
    assert isinstance(payload["primary_configured"], bool)


def test_new_session_is_issued_and_echoed(make_client):
    client, harness = make_client()

    first = client.get("/api/chat/status")
    session_id = first.headers["X-Session-ID"]
    second = client.get("/api/chat/status", headers={"X-Session-ID": session_id})

    assert uuid.UUID(session_id)
    assert second.headers["X-Session-ID"] == session_id
    assert first.json()["initialized"] is False
    assert harness.registry.count() == 1


@pytest.mark.parametrize("header", ["not-a-uuid", str(uuid.uuid4())])
def test_malformed_or_unknown_session_gets_fresh_one(make_client, header):
    client, _ = make_client()

    response = client.get("/api/chat/status", headers={"X-Session-ID": header})

    assert response.status_code == 200
    assert response.headers["X-Session-ID"] != header


def test_initialize_then_send(make_client):
    client, harness = make_client(replies=[TextReply(text="Hello! How can I help?")])

    session_id, body = initialized(client, config={"temperature": 0.5})
    response = client.post(
        "/api/chat/send",
        json={"message": "  Hi there  "},
        headers={"X-Session-ID": session_id},
    )

    assert body["resumed"] is False
    assert body["config"]["temperature"] == 0.5
    assert response.status_code == 200
    payload = response.json()
    assert payload["reply"] == "Hello! How can I help?"
    assert payload["conversation_id"] == body["conversation_id"]
    assert payload["fallback"] is False
    assert payload["model"] == "fake-primary"
    assert payload["events"] is None
    assert harness.provider.sent == ["Hi there"]


def test_send_before_initialize(make_client):
    client, _ = make_client()

    response = client.post("/api/chat/send", json={"message": "hello"})

    assert response.status_code == 400
    assert response.json()["error"] == "not_initialized"


def test_send_returns_tool_calls_and_events(make_client):
    search = RecordingAdapter(AdapterResult.ok(results=[]))
    client, _ = make_client(
        replies=[
            ToolCallsReply(calls=[ToolCall(name="web_search", args={"query": "rust 2.0"})]),
            TextReply(text="No news yet."),
        ],
        adapters=CapabilityAdapters(search=search),
    )
    session_id, _ = initialized(client)

    payload = client.post(
        "/api/chat/send",
        json={"message": "Anything new with Rust?", "include_events": True},
        headers={"X-Session-ID": session_id},
    ).json()

    assert payload["tool_calls"] == ["web_search"]
    kinds = [event["kind"] for event in payload["events"]]
    assert kinds[0] == "thinking"
    assert "tool_invoked" in kinds
    assert "tool_results_submitted" in kinds


def test_rate_limit_without_fallback_is_429(make_client):
    client, _ = make_client(replies=[RateLimitError()])
    session_id, _ = initialized(client)

    response = client.post(
        "/api/chat/send",
        json={"message": "hello"},
        headers={"X-Session-ID": session_id},
    )

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "30"
    assert response.json()["error"] == "rate_limited"


def test_rate_limit_with_fallback_is_attributed(make_client):
    client, _ = make_client(
        replies=[RateLimitError()],
        fallback=FakeFallbackClient(content="backup answer", model="llama-3.1-8b-instant"),
    )
    session_id, _ = initialized(client)

    payload = client.post(
        "/api/chat/send",
        json={"message": "hello"},
        headers={"X-Session-ID": session_id},
    ).json()

    assert payload["reply"] == "backup answer"
    assert payload["fallback"] is True
    assert payload["model"] == "llama-3.1-8b-instant"


def test_initialize_without_credentials(make_client):
    client, _ = make_client(factory_error=ConfigurationError("GEMINI_API_KEY not configured"))

    response = client.post("/api/chat/initialize", json={})

    assert response.status_code == 500
    assert response.json()["error"] == "configuration_error"


def test_config_update_rejects_out_of_range(make_client):
    client, _ = make_client()
    session_id, _ = initialized(client)
    headers = {"X-Session-ID": session_id}

    rejected = client.put("/api/chat/config", json={"temperature": 3.5, "top_k": 0}, headers=headers)
    current = client.get("/api/chat/config", headers=headers)

    assert rejected.status_code == 400
    assert rejected.json()["error"] == "validation_error"
    assert set(rejected.json()["fields"]) == {"temperature", "top_k"}
    assert current.json()["temperature"] == 1.0


def test_config_update_applies(make_client):
    client, _ = make_client()
    session_id, _ = initialized(client)

    response = client.put(
        "/api/chat/config",
        json={"temperature": 0.2, "memory_mode": "off"},
        headers={"X-Session-ID": session_id},
    )

    assert response.status_code == 200
    assert response.json()["temperature"] == 0.2
    assert response.json()["memory_mode"] == "off"
    assert response.json()["top_k"] == 40


def test_schema_errors_use_validation_shape(make_client):
    client, _ = make_client()

    response = client.post("/api/chat/send", json={"message": ""})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert "message" in response.json()["fields"]


def test_clear_session(make_client):
    client, harness = make_client()
    session_id, _ = initialized(client)

    response = client.delete("/api/chat/session", headers={"X-Session-ID": session_id})
    after = client.get("/api/chat/status", headers={"X-Session-ID": session_id})

    assert response.json() == {"session_id": session_id, "cleared": True}
    assert after.headers["X-Session-ID"] != session_id
    assert after.json()["initialized"] is False


def test_resume_from_history(make_client):
    client, _ = make_client(replies=[TextReply(text="Nice to meet you, Ada.")])
    session_id, body = initialized(client)
    client.post(
        "/api/chat/send",
        json={"message": "My name is Ada"},
        headers={"X-Session-ID": session_id},
    )

    history = client.get("/api/history").json()["conversations"]
    resumed = client.post("/api/chat/initialize", json={"resume_id": body["conversation_id"]}).json()

    assert [item["id"] for item in history] == [body["conversation_id"]]
    assert history[0]["preview"] == "My name is Ada"
    assert history[0]["turn_count"] == 2
    assert resumed["resumed"] is True
    assert [turn["content"] for turn in resumed["turns"]] == [
        "My name is Ada",
        "Nice to meet you, Ada.",
    ]


class VanishingRegistry(SessionRegistry):
    """Loses every session right after handing it out."""

    def get(self, identifier):
        return None


def test_session_lost_after_resolve_is_503(make_client):
    client, harness = make_client()
    harness.service.registry = VanishingRegistry(timeout_minutes=30, max_sessions=100)

    response = client.get("/api/chat/status")

    assert response.status_code == 503
    assert response.json()["error"] == "session_invalidated"
    assert response.json()["message"] == "Session was invalidated, please retry"
