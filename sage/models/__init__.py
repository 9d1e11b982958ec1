"""
Models module - Pydantic schemas for the HTTP boundary.

- Request models: input validation for API endpoints
- Response models: output formatting for API responses
"""
from sage.models.chat import (
    ChatEventResponse,
    ConversationSummary,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    InitializeRequest,
    InitializeResponse,
    ModelConfigResponse,
    ModelConfigUpdate,
    ReadinessResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionClearResponse,
    StatusResponse,
    TurnResponse,
)

__all__ = [
    "ChatEventResponse",
    "ConversationSummary",
    "ErrorResponse",
    "HealthResponse",
    "HistoryResponse",
    "InitializeRequest",
    "InitializeResponse",
    "ModelConfigResponse",
    "ModelConfigUpdate",
    "ReadinessResponse",
    "SendMessageRequest",
    "SendMessageResponse",
    "SessionClearResponse",
    "StatusResponse",
    "TurnResponse",
]
