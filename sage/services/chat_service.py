"""
Chat Service - Session-scoped entry point for conversations.

Routes stay thin: they resolve a session and call this service, which
attaches one ConversationOrchestrator to each session and translates
results into response models.

Why a service layer:
1. Testability - orchestration can be exercised without HTTP
2. Reusability - the same calls back the API and any other surface
3. Session state - the per-session orchestrator lives here
"""
from typing import Any, Callable, Dict, List, Mapping, Optional

from sage.core.config import Settings, get_settings
from sage.core.logging_config import get_logger
from sage.llm.factory import build_fallback_client
from sage.llm.model_config import ModelConfig
from sage.memory import get_conversation_store, get_long_term_memory
from sage.memory.long_term import LongTermMemory
from sage.memory.store import ConversationStore
from sage.models.chat import (
    InitializeResponse,
    ModelConfigResponse,
    StatusResponse,
    TurnResponse,
)
from sage.services.events import EventSink
from sage.services.orchestrator import ChatResult, ConversationOrchestrator
from sage.sessions.registry import Session, SessionRegistry, get_session_registry
from sage.tools.base import CapabilityAdapters
from sage.tools.files import FileOperations
from sage.tools.memory import MemoryAdapters
from sage.tools.search import TavilySearch

logger = get_logger(__name__)

OrchestratorFactory = Callable[[], ConversationOrchestrator]


def build_default_adapters(settings: Settings, memory: LongTermMemory) -> CapabilityAdapters:
    """
    Adapters backed by the configured services.

    Search is only offered when TAVILY_API_KEY is set.
    """
    files = FileOperations(settings.workspace_dir)
    memory_adapters = MemoryAdapters(memory)
    search = TavilySearch(settings.tavily_api_key) if settings.tavily_api_key else None

    return CapabilityAdapters(
        search=search,
        read_file=files.read_file,
        write_file=files.write_file,
        search_files=files.search_files,
        remember_fact=memory_adapters.remember_fact,
        recall_facts=memory_adapters.recall_facts,
    )


def config_response(config: ModelConfig) -> ModelConfigResponse:
    return ModelConfigResponse(**config.to_dict())


class ChatService:
    """
    Service for session-scoped chat.

    Example:
        >>> service = ChatService()
        >>> session = service.registry.resolve(None)
        >>> await service.initialize(session)
        >>> result = await service.send_message(session, "Hello!")
        >>> result.reply
    """

    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        orchestrator_factory: Optional[OrchestratorFactory] = None,
        store: Optional[ConversationStore] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the chat service.

        Args:
            registry: Session registry; the global one if not provided
            orchestrator_factory: Builds a conversation for a new session;
                defaults to one wired to the configured providers and stores
            store: Conversation store for history listings
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self.registry = registry or get_session_registry()
        self.store = store or get_conversation_store()
        self._orchestrator_factory = orchestrator_factory or self._default_orchestrator
        logger.info("ChatService initialized")

    def _default_orchestrator(self) -> ConversationOrchestrator:
        memory = get_long_term_memory()
        return ConversationOrchestrator(
            fallback_client=build_fallback_client(self.settings),
            adapters=build_default_adapters(self.settings, memory),
            store=self.store,
            memory=memory,
            settings=self.settings,
        )

    def conversation(self, session: Session) -> ConversationOrchestrator:
        """The session's orchestrator, attached on first use."""
        if session.conversation is None:
            session.conversation = self._orchestrator_factory()
        return session.conversation

    async def initialize(
        self,
        session: Session,
        resume_id: Optional[str] = None,
        model_config: Optional[Mapping[str, Any]] = None
    ) -> InitializeResponse:
        """
        Initialize (or re-initialize) the session's conversation.

        Raises:
            ValidationError: If model_config is out of range
            ConfigurationError: If the provider has no credential
        """
        orchestrator = self.conversation(session)
        result = await orchestrator.initialize(resume_id=resume_id, model_config=model_config)

        logger.info(
            f"Session {session.session_id[:8]}... initialized: "
            f"conversation={result.conversation_id}, resumed={result.resumed}"
        )

        return InitializeResponse(
            session_id=session.session_id,
            conversation_id=result.conversation_id,
            resumed=result.resumed,
            turns=[TurnResponse(**turn.to_dict()) for turn in result.turns],
            config=config_response(orchestrator.get_config()),
        )

    async def send_message(
        self,
        session: Session,
        text: str,
        events: Optional[EventSink] = None
    ) -> ChatResult:
        """
        Send a message within the session's conversation.

        Raises:
            NotInitializedError: If the session has not been initialized
        """
        logger.info(
            f"Processing message: session={session.session_id[:8]}..., "
            f"message_length={len(text)}"
        )
        return await self.conversation(session).send_message(text, events=events)

    def get_config(self, session: Session) -> ModelConfigResponse:
        return config_response(self.conversation(session).get_config())

    def update_config(self, session: Session, partial: Mapping[str, Any]) -> ModelConfigResponse:
        """
        Apply a partial config update.

        Raises:
            ValidationError: listing every violated field
        """
        return config_response(self.conversation(session).update_config(partial))

    def clear_session(self, session_id: str) -> bool:
        """Drop the session and its conversation. Idempotent."""
        cleared = self.registry.delete(session_id)
        logger.info(f"Session cleared: {session_id[:8]}... (existed={cleared})")
        return cleared

    def get_status(self, session: Session) -> StatusResponse:
        orchestrator = self.conversation(session)
        return StatusResponse(
            session_id=session.session_id,
            initialized=orchestrator.is_ready,
            conversation_id=orchestrator.conversation_id,
            turn_count=len(orchestrator.turns),
            fallback_available=orchestrator.has_fallback,
            config=config_response(orchestrator.get_config()),
        )

    async def list_history(self, limit: int = 20) -> List[Dict]:
        """Stored conversations, most recently active first."""
        return await self.store.list_conversations(limit)


# Singleton instance
_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Get or create the global ChatService."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service


def reset_chat_service() -> None:
    """Reset the global ChatService (useful for testing)."""
    global _chat_service
    _chat_service = None
