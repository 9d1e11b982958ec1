"""
Capability adapter contracts.

A capability adapter is an async function performing one side-effecting
action (search, file I/O, memory). Adapters report outcomes as an
AdapterResult instead of raising, so a failed capability never aborts
the user's turn.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

CANCELLED_MESSAGE = "Cancelled by user"


@dataclass
class AdapterResult:
    """
    Structured outcome of an adapter call.

    Attributes:
        success: Whether the action completed
        data: Payload on success (results, content, path, facts...)
        error: Human-readable reason on failure
    """
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def ok(cls, **data: Any) -> "AdapterResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "AdapterResult":
        return cls(success=False, error=error)

    @classmethod
    def cancelled(cls) -> "AdapterResult":
        """A declined confirmation; handled exactly like any failure."""
        return cls.fail(CANCELLED_MESSAGE)

    def to_response(self) -> Dict[str, Any]:
        """JSON-safe payload returned to the provider as a tool result."""
        if self.success:
            return {"success": True, **self.data}
        return {"success": False, "error": self.error or "Unknown error"}


Adapter = Callable[..., Awaitable[AdapterResult]]
Confirm = Callable[..., Awaitable[bool]]


@dataclass
class CapabilityAdapters:
    """
    The adapters available to one conversation.

    Any adapter left as None is simply not offered to the model.
    """
    search: Optional[Adapter] = None
    read_file: Optional[Adapter] = None
    write_file: Optional[Adapter] = None
    search_files: Optional[Adapter] = None
    remember_fact: Optional[Adapter] = None
    recall_facts: Optional[Adapter] = None


def require_confirmation(adapter: Adapter, confirm: Confirm) -> Adapter:
    """
    Gate an adapter behind an out-of-band user confirmation.

    The confirm callback receives the same arguments as the adapter. A
    declined confirmation yields the cancelled result rather than an
    exception.

    Args:
        adapter: The adapter to protect
        confirm: Async callback returning True to proceed

    Returns:
        An adapter with the same signature
    """
    async def confirmed(*args: Any, **kwargs: Any) -> AdapterResult:
        if not await confirm(*args, **kwargs):
            return AdapterResult.cancelled()
        return await adapter(*args, **kwargs)

    return confirmed
