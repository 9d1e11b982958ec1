import pytest

from sage.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NotInitializedError,
    UnavailableError,
    ValidationError,
)
from sage.llm.base import TextReply, ToolCall, ToolCallsReply
from sage.memory.conversation import Turn
from sage.memory.store import InMemoryConversationStore
from sage.services.events import EventCollector
from sage.services.orchestrator import ConversationOrchestrator, ConversationState
from sage.tools.base import AdapterResult, CapabilityAdapters, require_confirmation
from tests.utils import (
    FailingStore,
    FakePrimaryProvider,
    ProviderFactoryRecorder,
    RecordingAdapter,
    make_settings,
)


def build(replies=None, adapters=None, store=None, settings=None, **kwargs):
    provider = FakePrimaryProvider(replies)
    factory = ProviderFactoryRecorder(provider)
    orchestrator = ConversationOrchestrator(
        provider_factory=factory,
        adapters=adapters,
        store=store if store is not None else InMemoryConversationStore(),
        settings=settings or make_settings(),
        **kwargs,
    )
    return orchestrator, provider, factory


@pytest.mark.asyncio
async def test_send_before_initialize_raises():
    orchestrator, _, _ = build()

    with pytest.raises(NotInitializedError):
        await orchestrator.send_message("hello")

    assert orchestrator.state is ConversationState.UNINITIALIZED


@pytest.mark.asyncio
async def test_initialize_fresh_conversation():
    orchestrator, _, _ = build()

    result = await orchestrator.initialize()

    assert result.resumed is False
    assert result.turns == []
    assert result.conversation_id
    assert orchestrator.is_ready


@pytest.mark.asyncio
async def test_initialize_propagates_configuration_error():
    factory = ProviderFactoryRecorder(error=ConfigurationError("GEMINI_API_KEY not configured"))
    orchestrator = ConversationOrchestrator(provider_factory=factory, settings=make_settings())

    with pytest.raises(ConfigurationError):
        await orchestrator.initialize()

    assert orchestrator.state is ConversationState.UNINITIALIZED


@pytest.mark.asyncio
async def test_default_factory_without_key_raises_configuration_error():
    orchestrator = ConversationOrchestrator(settings=make_settings(gemini_api_key=None))

    with pytest.raises(ConfigurationError):
        await orchestrator.initialize()


@pytest.mark.asyncio
async def test_initialize_resumes_stored_conversation():
    store = InMemoryConversationStore()
    await store.append_turn("conv-1", Turn(role="user", content="hi"))
    await store.append_turn("conv-1", Turn(role="model", content="hello!"))
    orchestrator, provider, _ = build(store=store)

    result = await orchestrator.initialize(resume_id="conv-1")
    await orchestrator.send_message("and now?")

    assert result.resumed is True
    assert result.conversation_id == "conv-1"
    assert [t.content for t in result.turns] == ["hi", "hello!"]
    assert [t.content for t in provider.histories[0]] == ["hi", "hello!"]


@pytest.mark.asyncio
async def test_initialize_unknown_resume_id_starts_fresh():
    orchestrator, _, _ = build()

    result = await orchestrator.initialize(resume_id="missing")

    assert result.resumed is False
    assert result.conversation_id != "missing"


@pytest.mark.asyncio
async def test_initialize_load_failure_starts_fresh():
    orchestrator, _, _ = build(store=FailingStore(fail_loads=True))

    result = await orchestrator.initialize(resume_id="conv-1")

    assert result.resumed is False
    assert orchestrator.is_ready


@pytest.mark.asyncio
async def test_initialize_applies_partial_config():
    orchestrator, _, factory = build()

    await orchestrator.initialize(model_config={"temperature": 0.2, "memory_mode": "off"})

    assert orchestrator.get_config().temperature == 0.2
    assert factory.builds[-1]["config"].memory_mode == "off"


@pytest.mark.asyncio
async def test_plain_reply_appends_two_turns_and_no_tool_calls():
    store = InMemoryConversationStore()
    orchestrator, provider, _ = build([TextReply(text="Hi there!")], store=store)
    await orchestrator.initialize()

    result = await orchestrator.send_message("Hello")

    assert result.success is True
    assert result.reply == "Hi there!"
    assert result.tool_calls == []
    assert result.search_used is False
    assert result.fallback is False
    assert result.model == "fake-primary"
    assert [(t.role, t.content) for t in orchestrator.turns] == [
        ("user", "Hello"),
        ("model", "Hi there!"),
    ]
    assert provider.round_trips == 1
    stored = await store.load_conversation(orchestrator.conversation_id)
    assert [t.role for t in stored] == ["user", "model"]


@pytest.mark.asyncio
async def test_history_excludes_current_turn():
    orchestrator, provider, _ = build([TextReply(text="one"), TextReply(text="two")])
    await orchestrator.initialize()

    await orchestrator.send_message("first")
    await orchestrator.send_message("second")

    assert provider.histories[0] == []
    assert [t.content for t in provider.histories[1]] == ["first", "one"]
    assert provider.sent == ["first", "second"]


@pytest.mark.asyncio
async def test_single_tool_call_means_one_adapter_call_and_two_round_trips():
    read_file = RecordingAdapter(AdapterResult.ok(path="notes.txt", content="remember the milk"))
    orchestrator, provider, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="read_file", args={"file_path": "notes.txt"})]),
            TextReply(text="Your notes say: remember the milk"),
        ],
        adapters=CapabilityAdapters(read_file=read_file),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("What's in notes.txt?")

    assert read_file.calls == [{"file_path": "notes.txt"}]
    assert provider.round_trips == 2
    assert result.tool_calls == ["read_file"]
    assert result.reply == "Your notes say: remember the milk"
    submitted = provider.submitted[0]
    assert len(submitted) == 1
    assert submitted[0].name == "read_file"
    assert submitted[0].response == {"success": True, "path": "notes.txt", "content": "remember the milk"}
    assert orchestrator.turns[-1].tool_calls == ["read_file"]


@pytest.mark.asyncio
async def test_multiple_tool_rounds_are_followed():
    recall = RecordingAdapter(AdapterResult.ok(facts=[]))
    remember = RecordingAdapter(AdapterResult.ok(stored=True))
    orchestrator, provider, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="recall_info", args={"query": "food"})]),
            ToolCallsReply(calls=[ToolCall(name="remember_info", args={"content": "likes pizza", "category": "preference"})]),
            TextReply(text="Noted!"),
        ],
        adapters=CapabilityAdapters(remember_fact=remember, recall_facts=recall),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("I like pizza")

    assert result.tool_calls == ["recall_info", "remember_info"]
    assert provider.round_trips == 3
    assert remember.calls == [{"content": "likes pizza", "category": "preference"}]


@pytest.mark.asyncio
async def test_tool_rounds_are_bounded():
    search_files = RecordingAdapter(AdapterResult.ok(files=[]))
    looping = [
        ToolCallsReply(calls=[ToolCall(name="search_files", args={"pattern": "*.md"})], text="still looking")
        for _ in range(10)
    ]
    orchestrator, provider, _ = build(
        looping,
        adapters=CapabilityAdapters(search_files=search_files),
        settings=make_settings(max_tool_rounds=2),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("find the docs")

    assert len(search_files.calls) == 2
    assert provider.round_trips == 3
    assert result.success is True
    assert result.reply == "still looking"


@pytest.mark.asyncio
async def test_malformed_and_unknown_calls_are_skipped():
    read_file = RecordingAdapter(AdapterResult.ok(content="data"))
    orchestrator, provider, _ = build(
        [
            ToolCallsReply(calls=[
                ToolCall(name=None, args={"file_path": "a"}),
                ToolCall(name="read_file", args=None),
                ToolCall(name="launch_rockets", args={}),
                ToolCall(name="read_file", args={"file_path": "a.txt"}),
            ]),
            TextReply(text="done"),
        ],
        adapters=CapabilityAdapters(read_file=read_file),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("read a.txt")

    assert read_file.calls == [{"file_path": "a.txt"}]
    assert result.tool_calls == ["read_file"]
    submitted = provider.submitted[0]
    assert [r.name for r in submitted] == ["unknown", "read_file", "launch_rockets", "read_file"]
    skipped = {"success": False, "error": "Skipped malformed tool call"}
    assert [r.response for r in submitted[:3]] == [skipped, skipped, skipped]
    assert submitted[3].response == {"success": True, "content": "data"}


@pytest.mark.asyncio
async def test_round_with_only_skipped_calls_ends_with_reply_text():
    orchestrator, provider, _ = build(
        [ToolCallsReply(calls=[ToolCall(name="nope", args={})], text="Here is what I know.")]
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("hi")

    assert result.reply == "Here is what I know."
    assert result.tool_calls == []
    assert provider.round_trips == 1


@pytest.mark.asyncio
async def test_adapter_exception_becomes_failure_result():
    write_file = RecordingAdapter(error=PermissionError("read-only filesystem"))
    orchestrator, provider, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="write_file", args={"file_path": "x.txt", "content": "x"})]),
            TextReply(text="I couldn't write the file."),
        ],
        adapters=CapabilityAdapters(write_file=write_file),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("write x.txt")

    assert result.success is True
    response = provider.submitted[0][0].response
    assert response["success"] is False
    assert "read-only filesystem" in response["error"]


@pytest.mark.asyncio
async def test_cancelled_confirmation_is_a_normal_failure_result():
    write_file = RecordingAdapter(AdapterResult.ok(path="x.txt"))

    async def decline(**kwargs):
        return False

    orchestrator, provider, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="write_file", args={"file_path": "x.txt", "content": "x"})]),
            TextReply(text="Okay, I won't write it."),
        ],
        adapters=CapabilityAdapters(write_file=require_confirmation(write_file, decline)),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("write x.txt")

    assert result.success is True
    assert write_file.calls == []
    assert provider.submitted[0][0].response == {"success": False, "error": "Cancelled by user"}
    assert result.tool_calls == ["write_file"]


@pytest.mark.asyncio
async def test_search_augments_request_but_not_stored_turn():
    search = RecordingAdapter(AdapterResult.ok(results=[
        {"title": "Paris weather", "content": "Sunny, 22C", "url": "https://weather.example/paris"},
        {"title": "Forecast", "content": "Rain tomorrow", "url": "https://forecast.example/paris"},
    ]))
    store = InMemoryConversationStore()
    orchestrator, provider, _ = build(
        [TextReply(text="It's sunny in Paris.")],
        adapters=CapabilityAdapters(search=search),
        store=store,
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("What's the weather in Paris?")

    assert result.search_used is True
    assert search.calls == [{"query": "the weather in Paris"}]
    sent = provider.sent[0]
    assert sent.startswith("What's the weather in Paris?\n")
    assert 'Here are current search results for "the weather in Paris"' in sent
    assert "Sunny, 22C" in sent
    stored = await store.load_conversation(orchestrator.conversation_id)
    assert stored[0].content == "What's the weather in Paris?"
    assert orchestrator.turns[0].content == "What's the weather in Paris?"
    assert orchestrator.turns[1].search_used is True


@pytest.mark.asyncio
async def test_search_failure_is_not_fatal():
    search = RecordingAdapter(AdapterResult.fail("service down"))
    events = EventCollector()
    orchestrator, provider, _ = build(
        [TextReply(text="I can't check right now.")],
        adapters=CapabilityAdapters(search=search),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("What's the weather in Paris?", events=events)

    assert result.success is True
    assert result.search_used is False
    assert provider.sent == ["What's the weather in Paris?"]
    assert "search_failed" in events.kinds()


@pytest.mark.asyncio
async def test_search_exception_is_not_fatal():
    search = RecordingAdapter(error=TimeoutError("search timed out"))
    orchestrator, provider, _ = build(adapters=CapabilityAdapters(search=search))
    await orchestrator.initialize()

    result = await orchestrator.send_message("latest news about python")

    assert result.success is True
    assert result.search_used is False


@pytest.mark.asyncio
async def test_non_search_message_does_not_call_search():
    search = RecordingAdapter(AdapterResult.ok(results=["x"]))
    orchestrator, _, _ = build(adapters=CapabilityAdapters(search=search))
    await orchestrator.initialize()

    await orchestrator.send_message("Write me a haiku")

    assert search.calls == []


@pytest.mark.asyncio
async def test_persistence_failure_does_not_abort_reply():
    orchestrator, _, _ = build([TextReply(text="still here")], store=FailingStore())
    await orchestrator.initialize()

    result = await orchestrator.send_message("hello")

    assert result.success is True
    assert result.reply == "still here"
    assert len(orchestrator.turns) == 2


@pytest.mark.asyncio
async def test_provider_error_is_classified_and_returned():
    orchestrator, _, _ = build([Exception("API key not valid. Please pass a valid API key.")])
    await orchestrator.initialize()

    result = await orchestrator.send_message("hello")

    assert result.success is False
    assert isinstance(result.error, AuthenticationError)
    assert result.reply == result.error.message
    with pytest.raises(AuthenticationError):
        result.raise_for_error()


@pytest.mark.asyncio
async def test_error_during_tool_resubmission_is_classified():
    orchestrator, _, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="recall_info", args={"query": "x"})]),
            RuntimeError("something odd happened"),
        ],
        adapters=CapabilityAdapters(recall_facts=RecordingAdapter()),
    )
    await orchestrator.initialize()

    result = await orchestrator.send_message("hello")

    assert isinstance(result.error, UnavailableError)


@pytest.mark.asyncio
async def test_events_are_emitted_in_order():
    events = EventCollector()
    orchestrator, _, _ = build(
        [
            ToolCallsReply(calls=[ToolCall(name="recall_info", args={"query": "x"})]),
            TextReply(text="done"),
        ],
        adapters=CapabilityAdapters(recall_facts=RecordingAdapter()),
    )
    await orchestrator.initialize()

    await orchestrator.send_message("hello", events=events)

    assert events.kinds() == ["thinking", "tool_invoked", "tool_results_submitted"]


@pytest.mark.asyncio
async def test_memory_tools_hidden_when_memory_off():
    adapters = CapabilityAdapters(
        read_file=RecordingAdapter(),
        remember_fact=RecordingAdapter(),
        recall_facts=RecordingAdapter(),
    )
    orchestrator, _, factory = build(adapters=adapters)

    await orchestrator.initialize(model_config={"memory_mode": "off"})
    assert factory.tool_names == ["read_file"]

    orchestrator.update_config({"memory_mode": "active"})
    assert factory.tool_names == ["read_file", "remember_info", "recall_info"]


@pytest.mark.asyncio
async def test_update_config_rejects_out_of_range_and_keeps_previous():
    orchestrator, _, _ = build()
    await orchestrator.initialize()
    before = orchestrator.get_config()

    with pytest.raises(ValidationError) as exc_info:
        orchestrator.update_config({"temperature": 3.5})

    assert "temperature" in exc_info.value.fields
    assert orchestrator.get_config() == before


@pytest.mark.asyncio
async def test_update_config_rolls_back_on_configuration_error():
    orchestrator = ConversationOrchestrator(settings=make_settings(gemini_api_key=None, groq_api_key=None))
    factory = ProviderFactoryRecorder()
    orchestrator._provider_factory = factory
    await orchestrator.initialize()

    factory.error = ConfigurationError("GROQ_API_KEY not configured")
    with pytest.raises(ConfigurationError):
        orchestrator.update_config({"provider": "groq"})

    assert orchestrator.get_config().provider == "gemini"


def test_update_config_before_initialize_only_stores_config():
    orchestrator, _, factory = build()

    config = orchestrator.update_config({"top_k": 10})

    assert config.top_k == 10
    assert factory.builds == []
