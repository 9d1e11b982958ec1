"""
Provider contracts and reply variants.

Raw provider payloads are translated exactly once, inside each provider
adapter, into one of two tagged replies:

- TextReply:      {kind: "text", text}
- ToolCallsReply: {kind: "toolCalls", calls, text}

The orchestration loop only ever branches on `kind`.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from sage.memory.conversation import Turn


@dataclass
class ToolCall:
    """
    A structured action request emitted by the primary provider.

    `args` is None when the provider sent something that is not a JSON
    object; such calls are skipped by the dispatcher.
    """
    name: Optional[str]
    args: Optional[Dict[str, Any]]
    call_id: Optional[str] = None


@dataclass
class ToolResult:
    """Outcome of one tool call, tagged with the originating tool name."""
    name: str
    response: Dict[str, Any]
    call_id: Optional[str] = None


@dataclass
class TextReply:
    text: str
    kind: Literal["text"] = "text"


@dataclass
class ToolCallsReply:
    calls: List[ToolCall]
    text: str = ""
    kind: Literal["toolCalls"] = "toolCalls"


ProviderReply = Union[TextReply, ToolCallsReply]


@dataclass
class Completion:
    """A single-shot completion from the secondary provider."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class PrimaryChat(ABC):
    """One provider-side chat, bound to the history it was started with."""

    @abstractmethod
    async def send(self, text: str) -> ProviderReply:
        """Submit the next user input."""

    @abstractmethod
    async def send_tool_results(self, results: List[ToolResult]) -> ProviderReply:
        """Resubmit all tool results of one round."""


class PrimaryProvider(ABC):
    """A tool-calling model provider."""

    #: Identifier reported as the `model` of replies it produced
    model_name: str = ""

    @abstractmethod
    def start_chat(self, history: List[Turn]) -> PrimaryChat:
        """Open a chat seeded with prior turns."""


class FallbackClient(ABC):
    """A single-shot completion provider without tool calling."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Completion:
        """Return one completion or raise."""
