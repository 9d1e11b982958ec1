"""
Test doubles for providers, adapters and stores.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sage.core.config import Settings
from sage.llm.base import (
    Completion,
    FallbackClient,
    PrimaryChat,
    PrimaryProvider,
    TextReply,
    ToolResult,
)
from sage.memory.conversation import Turn
from sage.memory.store import InMemoryConversationStore
from sage.tools.base import AdapterResult


def make_settings(**overrides: Any) -> Settings:
    values = dict(
        app_name="Sage",
        app_env="testing",
        log_level="WARNING",
        log_to_file=False,
        gemini_api_key="test-gemini-key",
        gemini_model="gemini-test",
        groq_api_key=None,
        groq_model="groq-test",
        fallback_model="fallback-test",
        tavily_api_key=None,
        database_url="sqlite:///:memory:",
        memory_persistent=False,
        session_timeout_minutes=30,
        max_sessions=10000,
        session_sweep_interval_minutes=5,
        max_tool_rounds=5,
        workspace_dir=".",
        enable_audit_logging=False,
    )
    values.update(overrides)
    return Settings(**values)


class FakeClock:
    """Controllable clock for registry tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeChat(PrimaryChat):
    def __init__(self, provider: "FakePrimaryProvider"):
        self.provider = provider

    async def send(self, text: str):
        self.provider.sent.append(text)
        return self.provider.next_reply()

    async def send_tool_results(self, results: List[ToolResult]):
        self.provider.submitted.append(list(results))
        return self.provider.next_reply()


class FakePrimaryProvider(PrimaryProvider):
    """
    Scripted primary provider.

    `replies` are returned in order; an exception instance in the script
    is raised instead. Once exhausted, replies default to "ok".
    """

    def __init__(self, replies: Optional[List[Any]] = None, model_name: str = "fake-primary"):
        self.replies = list(replies or [])
        self.model_name = model_name
        self.sent: List[str] = []
        self.submitted: List[List[ToolResult]] = []
        self.histories: List[List[Turn]] = []
        self.round_trips = 0

    def start_chat(self, history: List[Turn]) -> PrimaryChat:
        self.histories.append(list(history))
        return FakeChat(self)

    def next_reply(self):
        self.round_trips += 1
        reply = self.replies.pop(0) if self.replies else TextReply(text="ok")
        if isinstance(reply, BaseException):
            raise reply
        return reply


class ProviderFactoryRecorder:
    """Provider factory that hands out one fake and records how it was built."""

    def __init__(self, provider: Optional[FakePrimaryProvider] = None, error: Optional[Exception] = None):
        self.provider = provider or FakePrimaryProvider()
        self.error = error
        self.builds: List[Dict[str, Any]] = []

    def __call__(self, config, tools, system_instruction):
        if self.error is not None:
            raise self.error
        self.builds.append({"config": config, "tools": tools, "instruction": system_instruction})
        return self.provider

    @property
    def tool_names(self) -> List[str]:
        return [tool["name"] for tool in self.builds[-1]["tools"]]


class FakeFallbackClient(FallbackClient):
    def __init__(self, content: str = "fallback reply", model: str = "fallback-model", error: Optional[Exception] = None):
        self.content = content
        self.model = model
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    async def complete(self, messages, temperature=None, max_tokens=None) -> Completion:
        self.requests.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error
        return Completion(content=self.content, model=self.model)


class RecordingAdapter:
    """Async adapter that records its calls and returns a fixed result."""

    def __init__(self, result: Optional[AdapterResult] = None, error: Optional[Exception] = None):
        self.result = result or AdapterResult.ok()
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> AdapterResult:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


class FailingStore(InMemoryConversationStore):
    """Store whose writes (and optionally reads) always fail."""

    def __init__(self, fail_loads: bool = False):
        super().__init__()
        self.fail_loads = fail_loads

    async def append_turn(self, conversation_id: str, turn: Turn) -> None:
        raise RuntimeError("disk full")

    async def load_conversation(self, conversation_id: str):
        if self.fail_loads:
            raise RuntimeError("database unavailable")
        return await super().load_conversation(conversation_id)


class RateLimitError(Exception):
    """Shaped like an SDK error carrying an HTTP status."""

    def __init__(self, message: str = "Too Many Requests", status_code: int = 429):
        super().__init__(message)
        self.status_code = status_code
