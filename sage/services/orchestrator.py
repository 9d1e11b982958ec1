"""
Conversation Orchestrator - Drives one conversation.

This service owns a conversation's turn history and model configuration
and runs the send-message protocol:
1. Append and persist the user turn
2. Augment the provider input with web search results when the message
   asks for current information
3. Submit history plus input to the primary provider
4. Resolve tool calls through the capability adapters, resubmitting the
   results until the provider answers in text
5. Append and persist the model turn

Provider failures are classified once, here. A rate-limited primary is
retried through the Fallback Protocol when a secondary provider exists;
every other failure is returned as a structured ChatResult.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from sage.core.config import Settings, get_settings
from sage.core.exceptions import NotInitializedError, RateLimited, SageException
from sage.core.logging_config import get_logger
from sage.llm.base import FallbackClient, PrimaryProvider, ToolResult
from sage.llm.errors import classify_provider_error
from sage.llm.factory import build_primary_provider
from sage.llm.model_config import ModelConfig
from sage.llm.prompts import build_system_instruction
from sage.memory.conversation import Turn
from sage.memory.long_term import LongTermMemory
from sage.memory.store import ConversationStore
from sage.services import events as ev
from sage.services.fallback import FallbackProtocol
from sage.tools.base import AdapterResult, CapabilityAdapters
from sage.tools.dispatcher import ToolDispatcher, skipped_result
from sage.tools.search import build_search_prompt, detect_search_intent, extract_search_query

logger = get_logger(__name__)

EMPTY_REPLY = "I wasn't able to produce a response for that. Please try rephrasing."

ProviderFactory = Callable[[ModelConfig, List[Dict[str, Any]], str], PrimaryProvider]


class ConversationState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass
class InitializeResult:
    resumed: bool
    conversation_id: str
    turns: List[Turn] = field(default_factory=list)


@dataclass
class ChatResult:
    """
    Outcome of send_message.

    On failure `error` holds the classified exception and `reply` its
    user-facing message.
    """
    success: bool
    reply: str
    search_used: bool = False
    tool_calls: List[str] = field(default_factory=list)
    fallback: bool = False
    model: Optional[str] = None
    conversation_id: Optional[str] = None
    error: Optional[SageException] = None

    def raise_for_error(self) -> "ChatResult":
        """Re-throw the classified error, for callers without a result channel."""
        if self.error is not None:
            raise self.error
        return self


class ConversationOrchestrator:
    """
    One conversation against a primary provider, with optional fallback.

    Example:
        >>> orchestrator = ConversationOrchestrator(adapters=adapters, store=store)
        >>> await orchestrator.initialize()
        >>> result = await orchestrator.send_message("What's the weather in Paris?")
        >>> result.search_used
        True
    """

    def __init__(
        self,
        provider_factory: Optional[ProviderFactory] = None,
        fallback_client: Optional[FallbackClient] = None,
        adapters: Optional[CapabilityAdapters] = None,
        store: Optional[ConversationStore] = None,
        memory: Optional[LongTermMemory] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.adapters = adapters or CapabilityAdapters()
        self.store = store
        self.memory = memory
        self.fallback_client = fallback_client
        self._provider_factory = provider_factory or self._default_provider_factory

        self.state = ConversationState.UNINITIALIZED
        self.config = ModelConfig()
        self.conversation_id: Optional[str] = None
        self.turns: List[Turn] = []

        self._provider: Optional[PrimaryProvider] = None
        self._dispatcher = ToolDispatcher(self.adapters, self.config.memory_mode)

    def _default_provider_factory(
        self,
        config: ModelConfig,
        tools: List[Dict[str, Any]],
        system_instruction: str
    ) -> PrimaryProvider:
        return build_primary_provider(config, tools, system_instruction, self.settings)

    @property
    def is_ready(self) -> bool:
        return self.state is ConversationState.READY

    @property
    def has_fallback(self) -> bool:
        return self.fallback_client is not None

    # ============================================================
    # Lifecycle
    # ============================================================

    def _build_provider(self, config: ModelConfig) -> Tuple[PrimaryProvider, ToolDispatcher]:
        dispatcher = ToolDispatcher(self.adapters, config.memory_mode)
        instruction = build_system_instruction(config.memory_mode, self.settings.workspace_dir)
        provider = self._provider_factory(config, dispatcher.declarations(), instruction)
        return provider, dispatcher

    async def initialize(
        self,
        resume_id: Optional[str] = None,
        model_config: Optional[Union[ModelConfig, Mapping[str, Any]]] = None
    ) -> InitializeResult:
        """
        Set up the provider and, optionally, resume a stored conversation.

        Args:
            resume_id: Conversation to load from the store
            model_config: Full ModelConfig or a partial update of the defaults

        Returns:
            InitializeResult with the resumed flag and loaded turns

        Raises:
            ValidationError: If model_config is out of range
            ConfigurationError: If the provider has no usable credential
        """
        config = self.config
        if isinstance(model_config, ModelConfig):
            config = model_config
        elif model_config:
            config = ModelConfig().apply_update(model_config)

        provider, dispatcher = self._build_provider(config)

        loaded: Optional[List[Turn]] = None
        if resume_id and self.store is not None:
            try:
                loaded = await self.store.load_conversation(resume_id)
            except Exception as e:
                logger.warning(f"Could not load conversation {resume_id}, starting fresh: {e}")
                loaded = None

        self.config = config
        self._provider = provider
        self._dispatcher = dispatcher

        if loaded:
            self.conversation_id = resume_id
            self.turns = list(loaded)
        else:
            self.conversation_id = str(uuid.uuid4())
            self.turns = []

        self.state = ConversationState.READY

        logger.info(
            f"Conversation ready: id={self.conversation_id}, "
            f"resumed={bool(loaded)}, turns={len(self.turns)}, "
            f"provider={config.provider}"
        )

        return InitializeResult(
            resumed=bool(loaded),
            conversation_id=self.conversation_id,
            turns=list(self.turns),
        )

    def get_config(self) -> ModelConfig:
        return self.config

    def update_config(self, partial: Mapping[str, Any]) -> ModelConfig:
        """
        Validate and apply a partial configuration update.

        The provider is rebuilt when the conversation is ready; if that
        fails the previous configuration stays in place.

        Raises:
            ValidationError: listing every out-of-range field
            ConfigurationError: If the new provider has no credential
        """
        new_config = self.config.apply_update(partial)

        if self.is_ready:
            provider, dispatcher = self._build_provider(new_config)
            self._provider = provider
            self._dispatcher = dispatcher

        self.config = new_config
        logger.info(f"Model config updated: {sorted(partial)}")
        return self.config

    # ============================================================
    # Messaging
    # ============================================================

    async def _persist(self, turn: Turn) -> None:
        if self.store is None:
            return
        try:
            await self.store.append_turn(self.conversation_id, turn)
        except Exception as e:
            logger.warning(f"Failed to persist {turn.role} turn for {self.conversation_id}: {e}")

    async def _augment_with_search(
        self,
        text: str,
        events: Optional[ev.EventSink]
    ) -> Tuple[str, bool]:
        search = self.adapters.search
        if search is None or not detect_search_intent(text):
            return text, False

        query = extract_search_query(text) or text
        ev.emit(events, ev.SEARCH_STARTED, query=query)

        try:
            result = await search(query=query)
        except Exception as e:
            logger.warning(f"Search adapter raised: {e}")
            result = AdapterResult.fail(str(e))

        results = (result.data.get("results") or []) if result.success else []
        if not results:
            error = result.error or "No search results found"
            logger.info(f"Proceeding without search: {error}")
            ev.emit(events, ev.SEARCH_FAILED, query=query, error=error)
            return text, False

        return build_search_prompt(text, query, results), True

    async def _run_primary(
        self,
        history: List[Turn],
        provider_input: str,
        events: Optional[ev.EventSink]
    ) -> Tuple[str, List[str]]:
        chat = self._provider.start_chat(history)

        ev.emit(events, ev.THINKING)
        reply = await chat.send(provider_input)

        invoked: List[str] = []
        rounds = 0

        while reply.kind == "toolCalls":
            if rounds >= self.settings.max_tool_rounds:
                logger.warning(f"Tool round limit reached ({rounds}), answering with current text")
                break
            rounds += 1

            results: List[ToolResult] = []
            executed = 0
            for call in reply.calls:
                result = await self._dispatcher.dispatch(call)
                if result is None:
                    results.append(skipped_result(call))
                    continue
                executed += 1
                invoked.append(call.name)
                results.append(result)
                ev.emit(
                    events,
                    ev.TOOL_INVOKED,
                    name=call.name,
                    success=bool(result.response.get("success")),
                )

            if not executed:
                break

            reply = await chat.send_tool_results(results)
            ev.emit(events, ev.TOOL_RESULTS_SUBMITTED, count=len(results), round=rounds)

        return reply.text or EMPTY_REPLY, invoked

    def _failure(self, error: SageException) -> ChatResult:
        logger.warning(f"Message failed for {self.conversation_id}: {error.error_code}: {error.message}")
        return ChatResult(
            success=False,
            reply=error.message,
            conversation_id=self.conversation_id,
            error=error,
        )

    async def send_message(self, text: str, events: Optional[ev.EventSink] = None) -> ChatResult:
        """
        Process one user message.

        Args:
            text: The user's literal message
            events: Optional sink for lifecycle events

        Returns:
            ChatResult; provider failures are reported in it, not raised

        Raises:
            NotInitializedError: If initialize() has not succeeded yet
        """
        if not self.is_ready:
            raise NotInitializedError()

        user_turn = Turn(role="user", content=text)
        self.turns.append(user_turn)
        await self._persist(user_turn)

        provider_input, search_used = await self._augment_with_search(text, events)
        history = self.turns[:-1]

        fallback = False
        try:
            reply, tool_calls = await self._run_primary(history, provider_input, events)
            model = self._provider.model_name
        except Exception as exc:
            error = classify_provider_error(exc)
            if not isinstance(error, RateLimited) or self.fallback_client is None:
                return self._failure(error)

            logger.warning(f"Primary provider rate-limited, engaging fallback: {exc}")
            ev.emit(events, ev.FALLBACK_ENGAGED)
            try:
                completion = await FallbackProtocol(self.fallback_client, self.memory).run(
                    self.turns, provider_input, self.config
                )
            except Exception as fallback_exc:
                logger.error(f"Fallback provider failed: {fallback_exc}")
                ev.emit(events, ev.FALLBACK_FAILED, error=str(fallback_exc))
                return self._failure(error)

            reply, tool_calls, model, fallback = completion.content, [], completion.model, True

        model_turn = Turn(
            role="model",
            content=reply,
            search_used=search_used,
            tool_calls=tool_calls,
            fallback=fallback,
            model=model,
        )
        self.turns.append(model_turn)
        await self._persist(model_turn)

        logger.info(
            f"Message processed: conversation={self.conversation_id}, "
            f"search={search_used}, tools={tool_calls}, fallback={fallback}"
        )

        return ChatResult(
            success=True,
            reply=reply,
            search_used=search_used,
            tool_calls=tool_calls,
            fallback=fallback,
            model=model,
            conversation_id=self.conversation_id,
        )
