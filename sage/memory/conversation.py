"""
Conversation Turns - Data structures for conversation history.

A conversation is an append-only, ordered list of turns. Ordering is
what consumers rely on for replay and for rebuilding provider messages.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Literal


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass
class Turn:
    """
    Represents a single message in a conversation.

    Attributes:
        role: Who produced the turn ('user' or 'model')
        content: The literal text (never the search-augmented prompt)
        timestamp: When the turn was created
        search_used: The reply was grounded on web search results
        tool_calls: Names of the tools invoked while producing the reply
        fallback: The reply was served by the secondary provider
        model: Identifier of the model that produced the reply

    Example:
        >>> turn = Turn(role="user", content="Hello!")
        >>> turn.flags()
        {}
    """
    role: Literal["user", "model"]
    content: str
    timestamp: datetime = field(default_factory=utcnow)
    search_used: bool = False
    tool_calls: List[str] = field(default_factory=list)
    fallback: bool = False
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to full dict including flags."""
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "search_used": self.search_used,
            "tool_calls": list(self.tool_calls),
            "fallback": self.fallback,
            "model": self.model,
        }

    def flags(self) -> Dict[str, Any]:
        """Only the optional flags that are set, for compact storage."""
        flags: Dict[str, Any] = {}
        if self.search_used:
            flags["search_used"] = True
        if self.tool_calls:
            flags["tool_calls"] = list(self.tool_calls)
        if self.fallback:
            flags["fallback"] = True
        if self.model:
            flags["model"] = self.model
        return flags

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        """Rebuild a turn from to_dict() output or a stored record."""
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        if timestamp is None:
            timestamp = utcnow()
        elif timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return cls(
            role="model" if data.get("role") == "model" else "user",
            content=data.get("content") or "",
            timestamp=timestamp,
            search_used=bool(data.get("search_used", False)),
            tool_calls=list(data.get("tool_calls") or []),
            fallback=bool(data.get("fallback", False)),
            model=data.get("model"),
        )
