"""
History Routes - Stored conversations.
"""
from fastapi import APIRouter, Depends, Query

from sage.api.deps import chat_service
from sage.core.logging_config import get_logger
from sage.models.chat import ConversationSummary, HistoryResponse
from sage.services.chat_service import ChatService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/history", tags=["History"])


@router.get(
    "",
    response_model=HistoryResponse,
    summary="List stored conversations",
    description="Most recently active first. Use a conversation `id` as `resume_id` to continue it.",
)
async def list_history(
    limit: int = Query(default=20, ge=1, le=100),
    service: ChatService = Depends(chat_service),
) -> HistoryResponse:
    conversations = await service.list_history(limit)
    logger.debug(f"Listed {len(conversations)} conversations")
    return HistoryResponse(
        conversations=[ConversationSummary(**item) for item in conversations]
    )
