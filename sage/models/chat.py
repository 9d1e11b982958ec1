"""
Request and Response models for the Chat API.

These Pydantic models define the contract between client and server.
Model-configuration ranges are deliberately not enforced here: the
orchestrator validates updates as a whole so every violated field is
reported together.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ModelConfigUpdate(BaseModel):
    """Partial model configuration; omitted fields are left unchanged."""
    provider: Optional[str] = Field(default=None, examples=["gemini"])
    temperature: Optional[float] = Field(default=None, examples=[0.7])
    max_output_tokens: Optional[int] = Field(default=None, examples=[2048])
    top_p: Optional[float] = Field(default=None, examples=[0.95])
    top_k: Optional[int] = Field(default=None, examples=[40])
    memory_mode: Optional[str] = Field(default=None, examples=["active"])

    def to_partial(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ModelConfigResponse(BaseModel):
    provider: str
    temperature: float
    max_output_tokens: int
    top_p: float
    top_k: int
    memory_mode: str


class InitializeRequest(BaseModel):
    """
    Request model for /api/chat/initialize.

    Attributes:
        resume_id: Stored conversation to continue, if any
        config: Initial model configuration overrides
    """
    resume_id: Optional[str] = Field(
        default=None,
        description="Conversation ID to resume from storage"
    )
    config: Optional[ModelConfigUpdate] = Field(
        default=None,
        description="Initial model configuration overrides"
    )


class TurnResponse(BaseModel):
    role: str
    content: str
    timestamp: datetime
    search_used: bool = False
    tool_calls: List[str] = Field(default_factory=list)
    fallback: bool = False
    model: Optional[str] = None


class InitializeResponse(BaseModel):
    session_id: str
    conversation_id: str
    resumed: bool
    turns: List[TurnResponse] = Field(default_factory=list)
    config: ModelConfigResponse


class SendMessageRequest(BaseModel):
    """Request model for /api/chat/send."""
    message: str = Field(
        ...,
        min_length=1,
        max_length=10000,
        description="The user's message",
        examples=["What's the weather in Paris?"]
    )
    include_events: bool = Field(
        default=False,
        description="Return the lifecycle events emitted while processing"
    )


class ChatEventResponse(BaseModel):
    kind: str
    data: Dict[str, Any] = Field(default_factory=dict)


class SendMessageResponse(BaseModel):
    """
    Response model for /api/chat/send.

    `fallback` and `model` attribute the reply to the provider that
    produced it.
    """
    reply: str = Field(..., description="The assistant's reply")
    session_id: str
    conversation_id: str
    search_used: bool = False
    tool_calls: List[str] = Field(default_factory=list)
    fallback: bool = False
    model: Optional[str] = None
    events: Optional[List[ChatEventResponse]] = None
    timestamp: datetime = Field(default_factory=_now)


class StatusResponse(BaseModel):
    session_id: str
    initialized: bool
    conversation_id: Optional[str] = None
    turn_count: int = 0
    fallback_available: bool = False
    config: ModelConfigResponse


class SessionClearResponse(BaseModel):
    session_id: str
    cleared: bool


class ConversationSummary(BaseModel):
    id: str
    preview: str
    created_at: datetime
    last_activity: datetime
    turn_count: int


class HistoryResponse(BaseModel):
    conversations: List[ConversationSummary] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for the /health endpoint."""
    status: str = Field(default="healthy")
    version: str
    timestamp: datetime = Field(default_factory=_now)


class ReadinessResponse(BaseModel):
    status: str
    database: Optional[str] = None
    active_sessions: int
    primary_configured: bool
    fallback_configured: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    message: str
    details: Optional[str] = None
    fields: Optional[Dict[str, str]] = None
    timestamp: datetime = Field(default_factory=_now)
