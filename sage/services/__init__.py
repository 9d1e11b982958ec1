"""
Services module - Conversation orchestration.

- orchestrator.py : one conversation's send-message protocol and tool loop
- fallback.py     : one-shot retry against the secondary provider
- events.py       : lifecycle events for presentation layers
- chat_service.py : session-scoped facade used by the API
"""
from sage.services.chat_service import ChatService, get_chat_service, reset_chat_service
from sage.services.events import ChatEvent, EventCollector
from sage.services.fallback import FallbackProtocol
from sage.services.orchestrator import (
    ChatResult,
    ConversationOrchestrator,
    ConversationState,
    InitializeResult,
)

__all__ = [
    "ChatService",
    "get_chat_service",
    "reset_chat_service",
    "ChatEvent",
    "EventCollector",
    "FallbackProtocol",
    "ChatResult",
    "ConversationOrchestrator",
    "ConversationState",
    "InitializeResult",
]
