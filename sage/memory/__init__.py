"""
Memory Package - Conversation history and long-term memory.

## Conversation history
- Turn: one ordered, append-only message
- ConversationStore: in-memory or SQL-backed persistence

## Long-term memory
- Facts about the user that survive across conversations
- Recalled by tools and summarised for the fallback provider

Use `get_conversation_store()` / `get_long_term_memory()` to get the
implementation selected by MEMORY_PERSISTENT.
"""
from typing import Optional

from sage.core.config import get_settings
from sage.memory.conversation import Turn, utcnow
from sage.memory.store import (
    ConversationStore,
    InMemoryConversationStore,
    SQLConversationStore,
)
from sage.memory.long_term import (
    Fact,
    LongTermMemory,
    InMemoryLongTermMemory,
    SQLLongTermMemory,
    MEMORY_CATEGORIES,
)

_conversation_store: Optional[ConversationStore] = None
_long_term_memory: Optional[LongTermMemory] = None


def get_conversation_store() -> ConversationStore:
    """
    Get the conversation store selected by configuration.

    Returns:
        - SQLConversationStore if MEMORY_PERSISTENT=true
        - InMemoryConversationStore otherwise
    """
    global _conversation_store
    if _conversation_store is None:
        if get_settings().memory_persistent:
            _conversation_store = SQLConversationStore()
        else:
            _conversation_store = InMemoryConversationStore()
    return _conversation_store


def get_long_term_memory() -> LongTermMemory:
    """Get the long-term memory selected by configuration."""
    global _long_term_memory
    if _long_term_memory is None:
        if get_settings().memory_persistent:
            _long_term_memory = SQLLongTermMemory()
        else:
            _long_term_memory = InMemoryLongTermMemory()
    return _long_term_memory


def reset_memory() -> None:
    """Forget the global stores (useful for testing)."""
    global _conversation_store, _long_term_memory
    _conversation_store = None
    _long_term_memory = None


__all__ = [
    "Turn",
    "utcnow",
    "ConversationStore",
    "InMemoryConversationStore",
    "SQLConversationStore",
    "Fact",
    "LongTermMemory",
    "InMemoryLongTermMemory",
    "SQLLongTermMemory",
    "MEMORY_CATEGORIES",
    "get_conversation_store",
    "get_long_term_memory",
    "reset_memory",
]
