"""
Chat Routes - API endpoints for conversational interactions.

Every endpoint is scoped to the session named by the X-Session-ID
header; a new session is issued when the header is missing or stale.
"""
from fastapi import APIRouter, Depends

from sage.core.exceptions import ValidationError
from sage.core.logging_config import get_logger
from sage.core.validators import validate_message
from sage.api.deps import chat_service, current_session
from sage.models.chat import (
    ChatEventResponse,
    ErrorResponse,
    InitializeRequest,
    InitializeResponse,
    ModelConfigResponse,
    ModelConfigUpdate,
    SendMessageRequest,
    SendMessageResponse,
    SessionClearResponse,
    StatusResponse,
)
from sage.services.chat_service import ChatService
from sage.services.events import EventCollector
from sage.sessions.registry import Session

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/chat",
    tags=["Chat"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        503: {"model": ErrorResponse, "description": "Provider or session unavailable"},
    }
)


@router.post(
    "/initialize",
    response_model=InitializeResponse,
    summary="Initialize the session's conversation",
    description="""
    Set up the model provider for this session.

    - Pass `resume_id` to continue a stored conversation
    - Pass `config` to override the default model configuration

    Fails with `configuration_error` when the selected provider has no API key.
    """
)
async def initialize(
    request: InitializeRequest,
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> InitializeResponse:
    partial = request.config.to_partial() if request.config else None
    return await service.initialize(session, resume_id=request.resume_id, model_config=partial)


@router.post(
    "/send",
    response_model=SendMessageResponse,
    summary="Send a message to the assistant",
    description="""
    Send a message within the session's conversation.

    The reply reports whether web search was used, which tools ran, and
    whether the fallback provider answered (`fallback`, `model`).
    """
)
async def send_message(
    request: SendMessageRequest,
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> SendMessageResponse:
    is_valid, sanitized_message, error = validate_message(request.message)
    if not is_valid:
        raise ValidationError(error, field="message")

    collector = EventCollector() if request.include_events else None
    result = await service.send_message(session, sanitized_message, events=collector)

    # Classified provider failures are rendered by the exception handlers
    result.raise_for_error()

    return SendMessageResponse(
        reply=result.reply,
        session_id=session.session_id,
        conversation_id=result.conversation_id,
        search_used=result.search_used,
        tool_calls=result.tool_calls,
        fallback=result.fallback,
        model=result.model,
        events=[
            ChatEventResponse(kind=event.kind, data=event.data)
            for event in collector.events
        ] if collector is not None else None,
    )


@router.get(
    "/config",
    response_model=ModelConfigResponse,
    summary="Get the session's model configuration",
)
async def get_config(
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> ModelConfigResponse:
    return service.get_config(session)


@router.put(
    "/config",
    response_model=ModelConfigResponse,
    summary="Update the session's model configuration",
    description="""
    Partial update; omitted fields keep their values.

    Out-of-range values are rejected, never clamped, and every invalid
    field is listed in the error's `fields`.
    """
)
async def update_config(
    update: ModelConfigUpdate,
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> ModelConfigResponse:
    return service.update_config(session, update.to_partial())


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Session and conversation status",
)
async def status(
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> StatusResponse:
    return service.get_status(session)


@router.delete(
    "/session",
    response_model=SessionClearResponse,
    summary="Clear the session",
    description="Drops the session and its in-memory conversation. Stored history is kept.",
)
async def clear_session(
    session: Session = Depends(current_session),
    service: ChatService = Depends(chat_service),
) -> SessionClearResponse:
    cleared = service.clear_session(session.session_id)
    return SessionClearResponse(session_id=session.session_id, cleared=cleared)
