"""
Lifecycle events emitted while a message is processed.

Presentation layers pass an event sink to send_message to show progress
("searching...", "using read_file...") without the orchestrator knowing
about any UI.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

SEARCH_STARTED = "search_started"
SEARCH_FAILED = "search_failed"
THINKING = "thinking"
TOOL_INVOKED = "tool_invoked"
TOOL_RESULTS_SUBMITTED = "tool_results_submitted"
FALLBACK_ENGAGED = "fallback_engaged"
FALLBACK_FAILED = "fallback_failed"


@dataclass
class ChatEvent:
    kind: str
    data: Dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[ChatEvent], None]


class EventCollector:
    """Sink that records events, e.g. for returning them in an API response."""

    def __init__(self):
        self.events: List[ChatEvent] = []

    def __call__(self, event: ChatEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]


def emit(sink: Optional[EventSink], kind: str, **data: Any) -> None:
    if sink is not None:
        sink(ChatEvent(kind=kind, data=data))
